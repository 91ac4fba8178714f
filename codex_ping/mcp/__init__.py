"""codex-ping MCP server, exposing reset status and auto-ping toggles as tools."""

from __future__ import annotations


def __getattr__(name: str):  # noqa: N807
    if name == "mcp":
        from codex_ping.mcp.server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["mcp"]
