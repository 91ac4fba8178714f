"""FastMCP server running the reset monitor and exposing it as tools."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP

from codex_ping.config import settings
from codex_ping.logging_config import setup_logging
from codex_ping.monitor import Monitor, build_monitor
from codex_ping.services.limits import Window
from codex_ping.status import build_status


_monitor: Monitor | None = None


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Start the monitor for the lifetime of the server."""
    global _monitor  # noqa: PLW0603
    setup_logging(settings.log_level, settings.log_format)
    _monitor = build_monitor()
    await _monitor.start()
    try:
        yield
    finally:
        await _monitor.stop()
        _monitor = None


mcp = FastMCP(
    name="codex-ping",
    instructions=(
        "codex-ping watches the Codex primary (5h) and secondary (7d) rate-limit "
        "windows and sends a tiny request the moment each window resets, so usage "
        "numbers are always fresh. Use get_limit_status to see usage and the next "
        "reset, set_auto_ping to turn the reset ping on or off per window, and "
        "poll_now to refresh limits immediately."
    ),
    lifespan=_lifespan,
)


def _get_monitor() -> Monitor:
    assert _monitor is not None, "MCP server not started, monitor unavailable"
    return _monitor


def _status(monitor: Monitor) -> dict[str, Any]:
    scheduler = monitor.scheduler
    result = build_status(scheduler, scheduler.has_credentials()).model_dump(mode="json")
    result["metrics"] = scheduler.metrics.snapshot()
    return result


@mcp.tool()
async def get_limit_status() -> dict[str, Any]:
    """Get current Codex rate-limit usage and reset schedule.

    Returns:
        Dict with authenticated flag, a one-line summary, per-window usage
        (used_percent, reset_at, resets_in, auto_ping, phase), next_ping_at,
        last_ping_at, ping_count and scheduler metrics.
    """
    return _status(_get_monitor())


@mcp.tool()
async def set_auto_ping(window: str, enabled: bool) -> dict[str, Any]:
    """Turn the automatic reset ping on or off for one window.

    Disabling keeps the known reset time, so re-enabling resumes the same
    deadline instead of waiting for the next poll.

    Args:
        window: "primary" (5h window) or "secondary" (7d window).
        enabled: True to ping at reset, False to stop.

    Returns:
        The updated status, same shape as get_limit_status.
    """
    try:
        target = Window(window.strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown window {window!r}; expected 'primary' or 'secondary'"
        ) from None
    monitor = _get_monitor()
    monitor.scheduler.set_enabled(target, enabled)
    return _status(monitor)


@mcp.tool()
async def poll_now() -> dict[str, Any]:
    """Ping Codex right now and reconcile the reset schedule.

    Returns:
        The updated status, same shape as get_limit_status.
    """
    monitor = _get_monitor()
    await monitor.scheduler.poll_once()
    return _status(monitor)
