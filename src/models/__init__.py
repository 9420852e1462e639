"""Data models for the Docker terminal bridge."""

from .session import Session, StreamAttachment
from .containers import (
    SpawnRequest,
    SpawnResponse,
    ContainerIdRequest,
    OperationResponse,
    ContainerSummary,
    ContainerListResponse,
    HealthResponse,
)
from .terminal import (
    BridgeState,
    ClientEvent,
    ServerEvent,
    EventFrame,
    AttachTerminal,
    TerminalInput,
    TerminalResize,
)
from .errors import (
    ErrorType,
    ErrorDetail,
    ErrorResponse,
    BridgeException,
    NotFoundError,
    EngineError,
    StreamError,
)

__all__ = [
    # Session models
    "Session",
    "StreamAttachment",
    # Container endpoint models
    "SpawnRequest",
    "SpawnResponse",
    "ContainerIdRequest",
    "OperationResponse",
    "ContainerSummary",
    "ContainerListResponse",
    "HealthResponse",
    # Terminal models
    "BridgeState",
    "ClientEvent",
    "ServerEvent",
    "EventFrame",
    "AttachTerminal",
    "TerminalInput",
    "TerminalResize",
    # Error models
    "ErrorType",
    "ErrorDetail",
    "ErrorResponse",
    "BridgeException",
    "NotFoundError",
    "EngineError",
    "StreamError",
]
