"""Run the reset monitor from the command line.

Usage:
    python -m codex_ping
    python -m codex_ping --once
    python -m codex_ping --no-secondary --poll-interval 120
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from codex_ping.config import settings
from codex_ping.logging_config import setup_logging
from codex_ping.monitor import Monitor, build_monitor
from codex_ping.status import build_status

logger = logging.getLogger("codex_ping")


async def _run_once(monitor: Monitor) -> None:
    scheduler = monitor.scheduler
    try:
        await scheduler.poll_once()
        # Let a reset ping started by this poll finish before reporting
        await scheduler.drain()
        status = build_status(scheduler, scheduler.has_credentials())
        print(status.model_dump_json(indent=2))
    finally:
        await monitor.stop()


async def _run_forever(monitor: Monitor) -> None:
    await monitor.start()
    try:
        await asyncio.Event().wait()
    finally:
        await monitor.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Ping Codex the moment each rate-limit window resets",
    )
    parser.add_argument(
        "--once", action="store_true",
        help="Poll once, print the status as JSON and exit",
    )
    parser.add_argument(
        "--poll-interval", type=float, default=None,
        help=f"Seconds between periodic polls (default: {settings.poll_interval_seconds})",
    )
    parser.add_argument(
        "--no-primary", action="store_true",
        help="Do not auto-ping when the primary (5h) window resets",
    )
    parser.add_argument(
        "--no-secondary", action="store_true",
        help="Do not auto-ping when the secondary (7d) window resets",
    )
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--log-format", choices=["text", "json"], default=settings.log_format)
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_format)

    monitor = build_monitor(
        primary_enabled=False if args.no_primary else None,
        secondary_enabled=False if args.no_secondary else None,
        poll_interval=args.poll_interval,
    )
    runner = _run_once if args.once else _run_forever
    try:
        asyncio.run(runner(monitor))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
