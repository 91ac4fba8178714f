"""Thread-safe in-memory counters for the ping scheduler."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field


@dataclass
class MetricsCollector:
    """Counts polls, fires, ping outcomes and timer churn.

    Thread-safe via a single ``threading.Lock`` so a host running the
    MCP server in another thread may take snapshots safely.
    """

    polls: int = field(default=0, init=False)
    fires: int = field(default=0, init=False)
    immediate_fires: int = field(default=0, init=False)
    pings_ok: int = field(default=0, init=False)
    transport_failures: int = field(default=0, init=False)
    no_limit_headers: int = field(default=0, init=False)
    skipped_no_credentials: int = field(default=0, init=False)
    timers_armed: int = field(default=0, init=False)
    timers_cancelled: int = field(default=0, init=False)
    status_codes: dict[int, int] = field(default_factory=dict, init=False)

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _start_time: float = field(default_factory=time.monotonic, init=False, repr=False)

    # -- Counter helpers ---------------------------------------------------

    def inc_poll(self) -> None:
        with self._lock:
            self.polls += 1

    def inc_fire(self, immediate: bool = False) -> None:
        with self._lock:
            self.fires += 1
            if immediate:
                self.immediate_fires += 1

    def inc_ping(self, outcome: str, status_code: int | None = None) -> None:
        with self._lock:
            if outcome == "ok":
                self.pings_ok += 1
            elif outcome == "no_headers":
                self.no_limit_headers += 1
            else:
                self.transport_failures += 1
            if status_code is not None:
                self.status_codes[status_code] = self.status_codes.get(status_code, 0) + 1

    def inc_skipped(self) -> None:
        with self._lock:
            self.skipped_no_credentials += 1

    def inc_timer_armed(self) -> None:
        with self._lock:
            self.timers_armed += 1

    def inc_timer_cancelled(self) -> None:
        with self._lock:
            self.timers_cancelled += 1

    # -- Snapshot / reset --------------------------------------------------

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "uptime_seconds": round(time.monotonic() - self._start_time, 2),
                "polls": self.polls,
                "fires": {
                    "total": self.fires,
                    "immediate": self.immediate_fires,
                },
                "pings": {
                    "ok": self.pings_ok,
                    "transport_failures": self.transport_failures,
                    "no_limit_headers": self.no_limit_headers,
                    "status_codes": dict(self.status_codes),
                },
                "skipped_no_credentials": self.skipped_no_credentials,
                "timers": {
                    "armed": self.timers_armed,
                    "cancelled": self.timers_cancelled,
                },
            }

    def reset(self) -> None:
        with self._lock:
            self.polls = 0
            self.fires = 0
            self.immediate_fires = 0
            self.pings_ok = 0
            self.transport_failures = 0
            self.no_limit_headers = 0
            self.skipped_no_credentials = 0
            self.timers_armed = 0
            self.timers_cancelled = 0
            self.status_codes.clear()
            self._start_time = time.monotonic()
