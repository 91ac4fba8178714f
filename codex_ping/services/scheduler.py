"""Reset scheduler for the primary and secondary Codex windows.

Each window owns at most one live timer. Server-reported "seconds until
reset" values are turned into absolute instants; whenever a new instant
differs from the stored one (by even a millisecond) the old timer is
cancelled and a new one armed. When a timer fires we ping, read the new
limits and reconcile again, which keeps the chain going as long as the
server keeps reporting reset times.

All of this runs on one asyncio loop. Cancellation is synchronous: a
timer is cancelled and its generation retired before a replacement is
created, so a late callback from a cancelled timer is always ignored.

Re-entrancy: a fire never reconciles synchronously. It records the
attempt and hands the ping to a task, so a reconcile that arms an
already-elapsed window returns before that window's next reconcile runs.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Callable, Protocol

from codex_ping.exceptions import (
    CodexPingError,
    NoCredentials,
    NoLimitHeaders,
    TransportFailure,
)
from codex_ping.services.credentials import CodexCredentials, CredentialProvider
from codex_ping.services.limits import RateLimitsSnapshot, Window, extract_limits
from codex_ping.services.metrics import MetricsCollector
from codex_ping.services.ping_context import window_var
from codex_ping.services.pinger import PingResult

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


class Pinger(Protocol):
    async def ping(self, credentials: CodexCredentials) -> PingResult:
        ...


def _loop_timer(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


def _to_datetime(ms: int) -> datetime | None:
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _format_instant(ms: int) -> str:
    instant = _to_datetime(ms)
    return instant.isoformat() if instant is not None else f"{ms} ms"


class WindowPhase(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    FIRING = "firing"
    DISARMED = "disarmed"
    ELAPSED = "elapsed"


@dataclass
class WindowSchedule:
    """Schedule of one window. Only the scheduler mutates it."""

    window: Window
    enabled: bool = True
    reset_at: int | None = None  # epoch milliseconds
    timer: TimerHandle | None = field(default=None, repr=False)
    generation: int = 0
    in_flight: int = 0

    @property
    def phase(self) -> WindowPhase:
        if self.in_flight:
            return WindowPhase.FIRING
        if self.reset_at is None:
            return WindowPhase.IDLE
        if not self.enabled:
            return WindowPhase.DISARMED
        if self.timer is not None:
            return WindowPhase.ARMED
        return WindowPhase.ELAPSED


@dataclass(frozen=True)
class LimitState:
    """Last known limits; replaced as a whole on every change."""

    last_limits: RateLimitsSnapshot | None = None
    last_ping_at: datetime | None = None
    ping_count: int = 0


RenderSink = Callable[["ResetScheduler"], None]


class ResetScheduler:
    """Owns both window schedules and the shared :class:`LimitState`."""

    def __init__(
        self,
        pinger: Pinger,
        credentials: CredentialProvider,
        *,
        on_render: RenderSink | None = None,
        clock: Callable[[], int] | None = None,
        timers: TimerFactory | None = None,
        metrics: MetricsCollector | None = None,
        primary_enabled: bool = True,
        secondary_enabled: bool = True,
    ) -> None:
        self._pinger = pinger
        self._credentials = credentials
        self._on_render = on_render
        self._clock = clock or _wall_clock_ms
        self._timers = timers or _loop_timer
        self.metrics = metrics or MetricsCollector()

        self._schedules: dict[Window, WindowSchedule] = {
            Window.PRIMARY: WindowSchedule(Window.PRIMARY, enabled=primary_enabled),
            Window.SECONDARY: WindowSchedule(Window.SECONDARY, enabled=secondary_enabled),
        }
        self._state = LimitState()
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    # -- read-only views -----------------------------------------------------

    def get_state(self) -> LimitState:
        return self._state

    def get_next_fire_times(self) -> dict[str, int | None]:
        return {w.value: s.reset_at for w, s in self._schedules.items()}

    def is_enabled(self, window: Window | str) -> bool:
        return self._schedules[Window(window)].enabled

    def phase(self, window: Window | str) -> WindowPhase:
        return self._schedules[Window(window)].phase

    def has_credentials(self) -> bool:
        return self._credentials.load() is not None

    def now(self) -> int:
        return self._clock()

    # -- operations ----------------------------------------------------------

    async def poll_once(self) -> RateLimitsSnapshot | None:
        """Run one check-and-reconcile cycle.

        Returns the snapshot that was applied, or *None* when the cycle
        produced nothing; existing schedules are kept in that case.
        """
        self.metrics.inc_poll()
        snapshot: RateLimitsSnapshot | None = None
        try:
            credentials = self._require_credentials()
            snapshot = await self._fetch(credentials)
            self._apply(snapshot)
        except NoCredentials:
            logger.info("No Codex credentials found, skipping poll. Run `codex login`.")
            self.metrics.inc_skipped()
        except CodexPingError as exc:
            logger.warning("Poll produced no limit data: %s", exc)
        except Exception:
            logger.exception("Applying polled limits failed")
        self._render()
        return snapshot

    def reconcile(self, snapshot: RateLimitsSnapshot) -> None:
        """Fold fresh reset information into both window schedules.

        Windows without a reset value in *snapshot* keep their schedule.
        Must be called with a running event loop.
        """
        now = self._clock()
        for window, schedule in self._schedules.items():
            info = snapshot.window(window)
            if info is None or info.resets_in_seconds is None:
                continue
            candidate = now + round(info.resets_in_seconds * 1000)
            if candidate == schedule.reset_at:
                continue
            self._cancel(schedule)
            schedule.reset_at = candidate
            if schedule.enabled:
                self._arm(schedule)

    def set_enabled(self, window: Window | str, enabled: bool) -> None:
        """Turn auto-ping for *window* on or off.

        Turning it off keeps the known reset instant, so turning it back
        on resumes the same deadline.
        """
        schedule = self._schedules[Window(window)]
        enabled = bool(enabled)
        if schedule.enabled == enabled:
            return
        schedule.enabled = enabled
        logger.info(
            "Auto-ping %s for %s window",
            "enabled" if enabled else "disabled", window_label(schedule.window),
        )
        if enabled:
            self._arm(schedule)
        else:
            self._cancel(schedule)
        self._render()

    async def drain(self) -> None:
        """Wait for in-flight fires, including any they start."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel both timers and any in-flight fires."""
        self._closed = True
        for schedule in self._schedules.values():
            self._cancel(schedule)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -- internal ------------------------------------------------------------

    def _require_credentials(self) -> CodexCredentials:
        credentials = self._credentials.load()
        if credentials is None:
            raise NoCredentials("no Codex credentials available")
        return credentials

    async def _fetch(self, credentials: CodexCredentials) -> RateLimitsSnapshot:
        try:
            result = await self._pinger.ping(credentials)
        except TransportFailure:
            self.metrics.inc_ping("transport_failure")
            raise
        snapshot = extract_limits(result.headers)
        if snapshot is None:
            self.metrics.inc_ping("no_headers", result.status_code)
            raise NoLimitHeaders(result.status_code)
        self.metrics.inc_ping("ok", result.status_code)
        return snapshot

    def _apply(self, snapshot: RateLimitsSnapshot) -> None:
        self._state = replace(self._state, last_limits=snapshot)
        self.reconcile(snapshot)

    def _cancel(self, schedule: WindowSchedule) -> None:
        schedule.generation += 1
        if schedule.timer is not None:
            schedule.timer.cancel()
            schedule.timer = None
            self.metrics.inc_timer_cancelled()

    def _arm(self, schedule: WindowSchedule) -> None:
        if self._closed or schedule.reset_at is None or not schedule.enabled:
            return
        self._cancel(schedule)

        label = window_label(schedule.window)
        delay_ms = max(0, schedule.reset_at - self._clock())
        if delay_ms == 0:
            if schedule.in_flight:
                logger.warning(
                    "%s limit still reported as reset while its reset ping is in flight, "
                    "pinging back to back",
                    label,
                )
            else:
                logger.info("%s limit already reset, pinging now", label)
            self._fire(schedule, immediate=True)
            return

        schedule.timer = self._timers(
            delay_ms / 1000,
            partial(self._on_timer, schedule.window, schedule.generation),
        )
        self.metrics.inc_timer_armed()
        logger.info(
            "%s limit reset scheduled in %ds (%s)",
            label, round(delay_ms / 1000), _format_instant(schedule.reset_at),
        )

    def _on_timer(self, window: Window, generation: int) -> None:
        schedule = self._schedules[window]
        if generation != schedule.generation or schedule.timer is None:
            logger.debug("Ignoring stale %s timer", window.value)
            return
        schedule.timer = None
        self._fire(schedule)

    def _fire(self, schedule: WindowSchedule, immediate: bool = False) -> None:
        label = window_label(schedule.window)
        try:
            credentials = self._require_credentials()
        except NoCredentials:
            logger.warning("%s limit reset but no Codex credentials, skipping ping", label)
            self.metrics.inc_skipped()
            self._render()
            return

        self._state = replace(
            self._state,
            ping_count=self._state.ping_count + 1,
            last_ping_at=_to_datetime(self._clock()),
        )
        self.metrics.inc_fire(immediate)
        schedule.in_flight += 1
        logger.info("%s limit reset! Pinging Codex (ping #%d)", label, self._state.ping_count)

        task = asyncio.get_running_loop().create_task(
            self._complete_fire(schedule, credentials)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _complete_fire(
        self, schedule: WindowSchedule, credentials: CodexCredentials,
    ) -> None:
        label = window_label(schedule.window)
        token = window_var.set(schedule.window.value)
        try:
            snapshot = await self._fetch(credentials)
            self._apply(snapshot)
            logger.info("%s reset ping sent", label)
        except CodexPingError as exc:
            logger.warning("%s reset ping produced no limit data: %s", label, exc)
        except Exception:
            logger.exception("%s reset ping failed unexpectedly", label)
        finally:
            schedule.in_flight -= 1
            window_var.reset(token)
        self._render()

    def _render(self) -> None:
        if self._on_render is None:
            return
        try:
            self._on_render(self)
        except Exception:
            logger.exception("Status render failed")


def window_label(window: Window) -> str:
    return window.value.capitalize()
