"""Pydantic models describing scheduler status for host surfaces."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class WindowStatus(BaseModel):
    """Status of one rate-limit window."""

    used_percent: float | None = Field(
        None, description="Percent of the window's quota used at the last observation"
    )
    reset_at: datetime | None = Field(
        None, description="When the next reset ping is due (UTC)"
    )
    resets_in: str | None = Field(
        None, description="Human-readable time until reset, e.g. '42m'"
    )
    auto_ping: bool = Field(..., description="Whether a ping fires at reset")
    phase: str = Field(
        ..., description="idle, armed, firing, disarmed or elapsed"
    )


class LimitStatus(BaseModel):
    """Full status snapshot: auth, both windows and ping history."""

    authenticated: bool = Field(..., description="Whether Codex credentials were found")
    summary: str = Field(..., description="One-line status text")
    primary: WindowStatus = Field(..., description="Short (~5h) window")
    secondary: WindowStatus = Field(..., description="Long (~7d) window")
    next_ping_at: datetime | None = Field(
        None, description="Earliest pending ping among enabled windows (UTC)"
    )
    last_ping_at: datetime | None = Field(None, description="Time of the last reset ping")
    ping_count: int = Field(0, description="Reset pings attempted since start")
