"""Session data models.

A Session is this service's record of one sandbox container. It owns the
engine handle for the container and at most one live StreamAttachment.
"""

import asyncio
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StreamAttachment:
    """Live binding between one client connection and one exec stream.

    The owner is held weakly: a bridge going away must not be kept alive
    by the session that it was attached to.
    """

    exec_id: str
    stream: Any  # ExecStream
    connection_id: str
    owner_ref: Optional[weakref.ReferenceType] = None
    attached_at: datetime = field(default_factory=utcnow)

    @property
    def owner(self):
        """Bridge owning this attachment, or None if it is gone."""
        return self.owner_ref() if self.owner_ref is not None else None


@dataclass
class Session:
    """Represents one sandbox container."""

    container_id: str
    challenge_id: str
    container: Any  # docker.models.containers.Container
    image: str = ""
    name: str = ""
    ip_address: str = ""
    spawned_at: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)
    attachment: Optional[StreamAttachment] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def short_id(self) -> str:
        """Truncated container id for logging."""
        return self.container_id[:12]

    @property
    def is_attached(self) -> bool:
        return self.attachment is not None

    def touch(self) -> None:
        """Record terminal activity."""
        self.last_activity = utcnow()

    def idle_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds since the last recorded activity."""
        now = now or utcnow()
        return (now - self.last_activity).total_seconds()

    def __hash__(self):
        return hash(self.container_id)

    def __eq__(self, other):
        if not isinstance(other, Session):
            return False
        return self.container_id == other.container_id
