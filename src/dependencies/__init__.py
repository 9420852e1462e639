"""Dependencies package for the Docker terminal bridge."""

from .services import (
    get_session_registry,
    get_container_manager,
    ContainerManagerDep,
)

__all__ = [
    "get_session_registry",
    "get_container_manager",
    "ContainerManagerDep",
]
