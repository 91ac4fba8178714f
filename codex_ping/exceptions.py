"""Exception hierarchy for codex-ping.

None of these are fatal: the scheduler absorbs them at the poll/fire
boundary and keeps its existing schedules.
"""

from __future__ import annotations


class CodexPingError(Exception):
    """Base exception for all codex-ping errors."""


class NoCredentials(CodexPingError):
    """Raised when no Codex credentials are available for a cycle."""


class TransportFailure(CodexPingError):
    """Raised when a ping produced no HTTP response at all."""


class NoLimitHeaders(CodexPingError):
    """Raised when the server responded without parseable limit headers."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"response {status_code} carried no rate-limit headers")


class MalformedHeaderValue(CodexPingError, ValueError):
    """Raised when a single rate-limit header is not a finite number."""

    def __init__(self, header: str, value: str) -> None:
        self.header = header
        self.value = value
        super().__init__(f"{header}: {value!r} is not a finite number")
