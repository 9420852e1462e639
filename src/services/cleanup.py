"""Idle session reaper.

Terminates sandbox containers that have no attached terminal and have seen
no terminal activity for longer than the configured TTL. Disabled unless
SESSION_IDLE_TTL_MINUTES is set.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from ..config import settings
from ..models.errors import BridgeException, NotFoundError
from .container.manager import ContainerLifecycleManager

logger = structlog.get_logger(__name__)


class SessionReaper:
    """Background task terminating idle, unattached sessions."""

    def __init__(
        self,
        manager: ContainerLifecycleManager,
        idle_ttl_seconds: Optional[float] = None,
        interval_seconds: Optional[float] = None,
    ):
        self._manager = manager
        self._idle_ttl = (
            idle_ttl_seconds
            if idle_ttl_seconds is not None
            else settings.session_idle_ttl_minutes * 60
        )
        self._interval = interval_seconds or settings.session_reap_interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the reaper loop."""
        if self._running:
            return
        if self._idle_ttl <= 0:
            logger.info("Idle session reaping disabled")
            return

        self._running = True
        self._task = asyncio.create_task(self._reap_loop())
        logger.info(
            "Session reaper started",
            idle_ttl_seconds=self._idle_ttl,
            interval_seconds=self._interval,
        )

    async def stop(self) -> None:
        """Stop the reaper loop."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Session reaper stopped")

    async def _reap_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            try:
                await self.reap_once()
            except Exception as e:
                logger.error("Session reap sweep failed", error=str(e))

    async def reap_once(self, now: Optional[datetime] = None) -> int:
        """Terminate every idle, unattached session.

        Returns:
            Number of sessions terminated
        """
        now = now or datetime.now(timezone.utc)
        reaped = 0

        for session in await self._manager.list_sessions():
            if session.is_attached or session.idle_seconds(now) < self._idle_ttl:
                continue
            try:
                await self._manager.terminate(session.container_id)
                reaped += 1
                logger.info(
                    "Reaped idle session",
                    container_id=session.short_id,
                    challenge_id=session.challenge_id,
                    idle_seconds=round(session.idle_seconds(now)),
                )
            except NotFoundError:
                pass
            except BridgeException as e:
                logger.warning(
                    "Failed to reap idle session",
                    container_id=session.short_id,
                    error=e.message,
                )

        return reaped
