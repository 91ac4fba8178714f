"""Status text and status models built from a :class:`ResetScheduler`."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from codex_ping.schemas import LimitStatus, WindowStatus
from codex_ping.services.limits import Window
from codex_ping.services.scheduler import ResetScheduler

logger = logging.getLogger(__name__)

AUTH_REQUIRED = "Authentication required. Run `codex login`."


def format_duration(ms: int | float) -> str:
    """Render a millisecond span as ``Ns``, ``Nm`` or ``Nh``."""
    if ms < 60_000:
        return f"{round(ms / 1000)}s"
    if ms < 3_600_000:
        return f"{round(ms / 60_000)}m"
    return f"{round(ms / 3_600_000)}h"


def next_ping_at(scheduler: ResetScheduler) -> int | None:
    """Earliest reset instant among enabled windows, in epoch ms."""
    pending = [
        reset_at
        for window, reset_at in scheduler.get_next_fire_times().items()
        if reset_at is not None and scheduler.is_enabled(window)
    ]
    return min(pending) if pending else None


def status_line(scheduler: ResetScheduler, authenticated: bool) -> str:
    if not authenticated:
        return AUTH_REQUIRED
    upcoming = next_ping_at(scheduler)
    if upcoming is None:
        return "No reset pending"
    remaining = upcoming - scheduler.now()
    if remaining <= 0:
        return "Reset due, waiting for fresh limits"
    return f"Next ping in {format_duration(remaining)}"


def _as_datetime(ms: int | None) -> datetime | None:
    if ms is None:
        return None
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def build_status(scheduler: ResetScheduler, authenticated: bool) -> LimitStatus:
    state = scheduler.get_state()
    fire_times = scheduler.get_next_fire_times()
    now = scheduler.now()

    windows: dict[str, WindowStatus] = {}
    for window in Window:
        info = state.last_limits.window(window) if state.last_limits else None
        reset_at = fire_times[window.value]
        windows[window.value] = WindowStatus(
            used_percent=info.used_percent if info else None,
            reset_at=_as_datetime(reset_at),
            resets_in=format_duration(max(0, reset_at - now)) if reset_at is not None else None,
            auto_ping=scheduler.is_enabled(window),
            phase=scheduler.phase(window).value,
        )

    return LimitStatus(
        authenticated=authenticated,
        summary=status_line(scheduler, authenticated),
        primary=windows["primary"],
        secondary=windows["secondary"],
        next_ping_at=_as_datetime(next_ping_at(scheduler)),
        last_ping_at=state.last_ping_at,
        ping_count=state.ping_count,
    )


class LogStatusSink:
    """Default render sink: logs the status line whenever it changes."""

    def __init__(self) -> None:
        self.last_line: str | None = None

    def __call__(self, scheduler: ResetScheduler) -> None:
        line = status_line(scheduler, scheduler.has_credentials())
        if line != self.last_line:
            logger.info("Status: %s", line)
        self.last_line = line
