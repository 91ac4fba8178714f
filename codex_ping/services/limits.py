"""Rate-limit models and the header reader for the two Codex windows."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping

from codex_ping.exceptions import MalformedHeaderValue

logger = logging.getLogger(__name__)

PRIMARY_USED_PERCENT = "x-codex-primary-used-percent"
PRIMARY_RESET_AFTER = "x-codex-primary-reset-after-seconds"
SECONDARY_USED_PERCENT = "x-codex-secondary-used-percent"
SECONDARY_RESET_AFTER = "x-codex-secondary-reset-after-seconds"

# Longest reset horizon accepted, well past the 7-day secondary window
MAX_RESET_AFTER_SECONDS = 366 * 24 * 60 * 60


class Window(str, Enum):
    """One of the two independent rate-limit buckets."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class RateWindowInfo:
    """Usage of a single window as observed on one response."""

    used_percent: float
    resets_in_seconds: float | None = None


@dataclass(frozen=True)
class RateLimitsSnapshot:
    """Both windows as observed on one response.

    At least one window is always present; "nothing observed" is
    represented by ``None`` rather than an empty snapshot.
    """

    primary: RateWindowInfo | None = None
    secondary: RateWindowInfo | None = None

    def __post_init__(self) -> None:
        if self.primary is None and self.secondary is None:
            raise ValueError("RateLimitsSnapshot needs at least one window")

    def window(self, window: Window) -> RateWindowInfo | None:
        if window is Window.PRIMARY:
            return self.primary
        return self.secondary


_FIELDS: dict[Window, tuple[str, str]] = {
    Window.PRIMARY: (PRIMARY_USED_PERCENT, PRIMARY_RESET_AFTER),
    Window.SECONDARY: (SECONDARY_USED_PERCENT, SECONDARY_RESET_AFTER),
}


def parse_header_value(header: str, raw: str) -> float:
    """Parse a numeric header value, raising if it is not a finite float."""
    try:
        value = float(raw.strip())
    except ValueError:
        raise MalformedHeaderValue(header, raw) from None
    if not math.isfinite(value):
        raise MalformedHeaderValue(header, raw)
    return value


def parse_reset_value(header: str, raw: str) -> float:
    """Parse a reset-after value, rejecting horizons beyond a year either way."""
    value = parse_header_value(header, raw)
    if abs(value) > MAX_RESET_AFTER_SECONDS:
        raise MalformedHeaderValue(header, raw)
    return value


def _read_field(
    headers: Mapping[str, str],
    name: str,
    parse: Callable[[str, str], float] = parse_header_value,
) -> float | None:
    raw = headers.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return parse(name, raw)
    except MalformedHeaderValue as exc:
        # Only this field is lost; the rest of the read goes on
        logger.debug("Dropping malformed header: %s", exc)
        return None


def extract_limits(headers: Mapping[str, str]) -> RateLimitsSnapshot | None:
    """Build a snapshot from ``x-codex-*`` headers, or *None* if absent.

    Header names are matched case-insensitively. A window is present only
    when its used-percent parses; its reset value is kept only when that
    parses too.
    """
    lowered = {str(k).lower(): v for k, v in headers.items()}

    windows: dict[str, RateWindowInfo] = {}
    for window, (used_name, reset_name) in _FIELDS.items():
        used = _read_field(lowered, used_name)
        if used is None:
            continue
        windows[window.value] = RateWindowInfo(
            used_percent=used,
            resets_in_seconds=_read_field(lowered, reset_name, parse_reset_value),
        )

    if not windows:
        return None
    return RateLimitsSnapshot(**windows)
