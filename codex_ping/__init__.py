"""codex-ping: ping Codex the moment each rate-limit window resets."""

from __future__ import annotations

from codex_ping.exceptions import (
    CodexPingError,
    MalformedHeaderValue,
    NoCredentials,
    NoLimitHeaders,
    TransportFailure,
)
from codex_ping.services.credentials import CodexCredentials, FileCredentialProvider
from codex_ping.services.limits import (
    RateLimitsSnapshot,
    RateWindowInfo,
    Window,
    extract_limits,
)
from codex_ping.services.pinger import CodexPinger, PingResult
from codex_ping.services.scheduler import LimitState, ResetScheduler, WindowPhase

__all__ = [
    "CodexCredentials",
    "CodexPingError",
    "CodexPinger",
    "FileCredentialProvider",
    "LimitState",
    "MalformedHeaderValue",
    "NoCredentials",
    "NoLimitHeaders",
    "PingResult",
    "RateLimitsSnapshot",
    "RateWindowInfo",
    "ResetScheduler",
    "TransportFailure",
    "Window",
    "WindowPhase",
    "extract_limits",
]
