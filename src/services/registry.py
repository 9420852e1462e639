"""In-memory registry of sandbox sessions.

The registry is the single source of truth for which sandboxes exist. It
is the only state shared between concurrent requests, so every access goes
through an asyncio lock and callers never see the underlying dict.
"""

import asyncio
from typing import Dict, List, Optional

import structlog

from ..models.session import Session

logger = structlog.get_logger(__name__)


class SessionRegistry:
    """Lock-guarded mapping of container id to Session."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def get(self, container_id: str) -> Optional[Session]:
        """Look up a session by container id."""
        async with self._lock:
            return self._sessions.get(container_id)

    async def put(self, session: Session) -> None:
        """Insert or overwrite the session for its container id."""
        async with self._lock:
            if session.container_id in self._sessions:
                logger.warning(
                    "Overwriting registered session",
                    container_id=session.short_id,
                )
            self._sessions[session.container_id] = session

    async def remove(self, container_id: str) -> Optional[Session]:
        """Remove a session, returning it if it was registered."""
        async with self._lock:
            return self._sessions.pop(container_id, None)

    async def values(self) -> List[Session]:
        """Snapshot of registered sessions in insertion order."""
        async with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, container_id: object) -> bool:
        return container_id in self._sessions
