"""Service dependency injection for the Docker terminal bridge."""

# Standard library imports
from functools import lru_cache
from typing import Annotated

# Third-party imports
from fastapi import Depends
import structlog

# Local application imports
from ..services.registry import SessionRegistry
from ..services.container import ContainerLifecycleManager

logger = structlog.get_logger(__name__)


@lru_cache()
def get_session_registry() -> SessionRegistry:
    """Get the process-wide session registry."""
    return SessionRegistry()


@lru_cache()
def get_container_manager() -> ContainerLifecycleManager:
    """Get the container lifecycle manager bound to the shared registry."""
    manager = ContainerLifecycleManager(registry=get_session_registry())
    logger.info("Container lifecycle manager initialized")
    return manager


# Type aliases for dependency injection
ContainerManagerDep = Annotated[
    ContainerLifecycleManager, Depends(get_container_manager)
]
