"""Context of the ping currently being sent, for log correlation.

``session_id_var`` is set by :class:`CodexPinger` for the duration of one
request. ``window_var`` is set by the scheduler while a reset ping for a
window is in flight, so every log line of that fire names its window.
Both default to ``""`` outside a ping.
"""

from __future__ import annotations

import secrets
from contextvars import ContextVar

session_id_var: ContextVar[str] = ContextVar("session_id", default="")
window_var: ContextVar[str] = ContextVar("window", default="")


def generate_session_id() -> str:
    """Return a new 32-character hex session ID (16 random bytes)."""
    return secrets.token_hex(16)


def get_session_id() -> str:
    return session_id_var.get()


def get_window() -> str:
    return window_var.get()


def ping_context() -> dict[str, str]:
    """Non-empty context fields of the current ping, keyed for log output."""
    fields = {"window": window_var.get(), "session_id": session_id_var.get()}
    return {key: value for key, value in fields.items() if value}
