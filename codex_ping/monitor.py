"""Periodic poll driver wiring the pinger, credentials and scheduler."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from codex_ping.config import Settings, settings
from codex_ping.services.credentials import FileCredentialProvider, default_auth_path
from codex_ping.services.pinger import CodexPinger
from codex_ping.services.scheduler import RenderSink, ResetScheduler
from codex_ping.status import LogStatusSink

logger = logging.getLogger(__name__)


class Monitor:
    """Polls once on start and then every *poll_interval* seconds.

    Per-window reset pings are scheduled by the :class:`ResetScheduler`
    itself; this loop only supplies the periodic re-check.
    """

    def __init__(
        self,
        scheduler: ResetScheduler,
        poll_interval: float = 60.0,
        *,
        pinger: CodexPinger | None = None,
    ) -> None:
        self.scheduler = scheduler
        self._poll_interval = max(1.0, float(poll_interval))
        self._pinger = pinger
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Codex ping started, monitoring rate limit resets (poll every %ds)",
            round(self._poll_interval),
        )
        await self._poll()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.scheduler.aclose()
        if self._pinger is not None:
            await self._pinger.close()
        logger.info("Codex ping stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            await self._poll()

    async def _poll(self) -> None:
        try:
            await self.scheduler.poll_once()
        except Exception:
            logger.exception("Poll cycle failed")


def build_monitor(
    config: Settings | None = None,
    *,
    auth_path: Path | None = None,
    on_render: RenderSink | None = None,
    primary_enabled: bool | None = None,
    secondary_enabled: bool | None = None,
    poll_interval: float | None = None,
) -> Monitor:
    """Assemble a :class:`Monitor` from settings, with optional overrides."""
    cfg = config or settings
    pinger = CodexPinger(
        cfg.codex_base_url,
        cfg.ping_timeout,
        user_agent=cfg.user_agent,
        model=cfg.ping_model,
    )
    credentials = FileCredentialProvider(auth_path or default_auth_path(cfg.codex_home))
    scheduler = ResetScheduler(
        pinger,
        credentials,
        on_render=on_render if on_render is not None else LogStatusSink(),
        primary_enabled=cfg.primary_auto_ping if primary_enabled is None else primary_enabled,
        secondary_enabled=(
            cfg.secondary_auto_ping if secondary_enabled is None else secondary_enabled
        ),
    )
    return Monitor(
        scheduler,
        poll_interval if poll_interval is not None else cfg.poll_interval_seconds,
        pinger=pinger,
    )
