"""Unit tests for SessionReaper."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from docker.errors import APIError

from src.models.session import StreamAttachment, utcnow
from src.services.cleanup import SessionReaper


class TestReapOnce:
    """Test a single reaping sweep."""

    @pytest.mark.asyncio
    async def test_idle_session_reaped(self, manager):
        """Test an idle, unattached session is terminated."""
        session = await manager.spawn("ch1")
        reaper = SessionReaper(manager, idle_ttl_seconds=60, interval_seconds=1)

        reaped = await reaper.reap_once(now=utcnow() + timedelta(minutes=5))

        assert reaped == 1
        assert session.container_id not in manager.registry
        session.container.remove.assert_called_once_with(force=True)

    @pytest.mark.asyncio
    async def test_recent_session_kept(self, manager):
        """Test a recently active session survives."""
        session = await manager.spawn("ch1")
        reaper = SessionReaper(manager, idle_ttl_seconds=600, interval_seconds=1)

        assert await reaper.reap_once() == 0
        assert session.container_id in manager.registry

    @pytest.mark.asyncio
    async def test_attached_session_kept(self, manager):
        """Test a session with a live terminal is never reaped."""
        session = await manager.spawn("ch1")
        session.attachment = StreamAttachment(
            exec_id="exec-1", stream=MagicMock(), connection_id="conn-1"
        )
        reaper = SessionReaper(manager, idle_ttl_seconds=60, interval_seconds=1)

        assert await reaper.reap_once(now=utcnow() + timedelta(hours=1)) == 0
        assert session.container_id in manager.registry

    @pytest.mark.asyncio
    async def test_engine_failure_skipped(self, manager):
        """Test a container the engine cannot stop does not end the sweep."""
        stuck = await manager.spawn("ch1")
        idle = await manager.spawn("ch2")
        stuck.container.stop.side_effect = APIError("daemon busy")
        reaper = SessionReaper(manager, idle_ttl_seconds=60, interval_seconds=1)

        assert await reaper.reap_once(now=utcnow() + timedelta(minutes=5)) == 1
        assert stuck.container_id in manager.registry
        assert idle.container_id not in manager.registry


class TestReaperLifecycle:
    """Test starting and stopping the background task."""

    @pytest.mark.asyncio
    async def test_disabled_when_ttl_zero(self, manager):
        """Test a zero TTL never starts the loop."""
        reaper = SessionReaper(manager, idle_ttl_seconds=0, interval_seconds=1)

        await reaper.start()

        assert reaper.running is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, manager):
        """Test the loop starts and stops cleanly."""
        reaper = SessionReaper(manager, idle_ttl_seconds=60, interval_seconds=30)

        await reaper.start()
        assert reaper.running is True

        await reaper.stop()
        assert reaper.running is False
