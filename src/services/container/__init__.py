"""Container management services.

This package provides Docker container management functionality split into:
- manager.py: Sandbox container lifecycle management
- utils.py: Shared utilities for container operations
"""

from .manager import ContainerLifecycleManager
from .utils import (
    ENGINE_ERRORS,
    build_container_name,
    get_container_ip,
    run_in_executor,
    wait_for_container_ready,
)

__all__ = [
    "ContainerLifecycleManager",
    "ENGINE_ERRORS",
    "build_container_name",
    "get_container_ip",
    "run_in_executor",
    "wait_for_container_ready",
]
