"""Terminal WebSocket event models.

Frames on the terminal socket are JSON objects of the form
``{"event": <name>, "data": <payload>}``.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ClientEvent(str, Enum):
    """Events sent by the client."""

    ATTACH_TERMINAL = "attach-terminal"
    TERMINAL_INPUT = "terminal-input"
    TERMINAL_RESIZE = "terminal-resize"
    DISCONNECT = "disconnect"


class ServerEvent(str, Enum):
    """Events sent by the server."""

    TERMINAL_OUTPUT = "terminal-output"
    TERMINAL_DISCONNECTED = "terminal-disconnected"
    ERROR = "error"


class BridgeState(str, Enum):
    """Terminal bridge states."""

    IDLE = "idle"
    ATTACHING = "attaching"
    ATTACHED = "attached"
    CLOSING = "closing"
    CLOSED = "closed"


class EventFrame(BaseModel):
    """One frame on the terminal socket."""

    event: str = Field(..., min_length=1)
    data: Any = None


class AttachTerminal(BaseModel):
    """Payload of attach-terminal."""

    model_config = ConfigDict(populate_by_name=True)

    container_id: str = Field(..., alias="containerId", min_length=1)
    rows: Optional[int] = Field(default=None, ge=1, le=1000)
    cols: Optional[int] = Field(default=None, ge=1, le=1000)


class TerminalInput(BaseModel):
    """Payload of terminal-input."""

    data: str


class TerminalResize(BaseModel):
    """Payload of terminal-resize."""

    rows: int = Field(..., ge=1, le=1000)
    cols: int = Field(..., ge=1, le=1000)
