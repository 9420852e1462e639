"""Services for the Docker terminal bridge."""

from .registry import SessionRegistry
from .container import ContainerLifecycleManager
from .terminal import ExecStream, TerminalBridge
from .cleanup import SessionReaper

__all__ = [
    "SessionRegistry",
    "ContainerLifecycleManager",
    "ExecStream",
    "TerminalBridge",
    "SessionReaper",
]
