"""Entry point for ``python -m codex_ping.mcp``."""

from __future__ import annotations

import argparse

from codex_ping.mcp.server import mcp


def main() -> None:
    parser = argparse.ArgumentParser(description="codex-ping MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    args = parser.parse_args()
    mcp.run(transport=args.transport)


if __name__ == "__main__":
    main()
