from __future__ import annotations

from collections import deque

import pytest

from codex_ping.exceptions import TransportFailure
from codex_ping.services.credentials import CodexCredentials
from codex_ping.services.pinger import PingResult
from codex_ping.services.scheduler import ResetScheduler


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTimer:
    def __init__(self, delay: float, callback) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def live(self) -> bool:
        return not self.cancelled and not self.fired


class FakeTimers:
    """Timer factory that records timers instead of scheduling them."""

    def __init__(self) -> None:
        self.created: list[FakeTimer] = []

    def __call__(self, delay: float, callback) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.created.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.created if t.live]

    def fire(self, timer: FakeTimer) -> None:
        timer.fired = True
        timer.callback()


class FakePinger:
    """Returns queued header dicts; ``None`` in the queue means transport failure."""

    def __init__(self) -> None:
        self.responses: deque = deque()
        self.calls: list[CodexCredentials] = []

    def queue(self, headers: dict[str, str] | None, status_code: int = 200) -> None:
        self.responses.append((headers, status_code))

    async def ping(self, credentials: CodexCredentials) -> PingResult:
        self.calls.append(credentials)
        headers, status_code = self.responses.popleft() if self.responses else (None, 0)
        if headers is None:
            raise TransportFailure("connection refused")
        return PingResult(status_code=status_code, headers=headers, session_id="0" * 32)


class FakeCredentials:
    def __init__(self, credentials: CodexCredentials | None = None) -> None:
        self.credentials = credentials
        self.loads = 0

    def load(self) -> CodexCredentials | None:
        self.loads += 1
        return self.credentials


def limit_headers(
    primary_used: str | None = "10",
    primary_reset: str | None = None,
    secondary_used: str | None = None,
    secondary_reset: str | None = None,
) -> dict[str, str]:
    headers: dict[str, str] = {}
    if primary_used is not None:
        headers["x-codex-primary-used-percent"] = primary_used
    if primary_reset is not None:
        headers["x-codex-primary-reset-after-seconds"] = primary_reset
    if secondary_used is not None:
        headers["x-codex-secondary-used-percent"] = secondary_used
    if secondary_reset is not None:
        headers["x-codex-secondary-reset-after-seconds"] = secondary_reset
    return headers


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def pinger():
    return FakePinger()


@pytest.fixture
def credentials():
    return FakeCredentials(CodexCredentials(access_token="tok", account_id="acct"))


@pytest.fixture
def renders():
    return []


@pytest.fixture
def scheduler(pinger, credentials, clock, timers, renders):
    return ResetScheduler(
        pinger,
        credentials,
        on_render=renders.append,
        clock=clock,
        timers=timers,
    )
