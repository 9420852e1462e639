"""Container lifecycle endpoints."""

from fastapi import APIRouter
import structlog

from ..dependencies.services import ContainerManagerDep
from ..models.containers import (
    ContainerIdRequest,
    ContainerListResponse,
    ContainerSummary,
    OperationResponse,
    SpawnRequest,
    SpawnResponse,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/containers", response_model=SpawnResponse, summary="Spawn a sandbox container"
)
async def spawn_container(request: SpawnRequest, manager: ContainerManagerDep):
    """Create and start a sandbox container for a challenge."""
    session = await manager.spawn(request.challenge_id, request.image)
    return SpawnResponse(
        container_id=session.container_id,
        ip_address=session.ip_address,
    )


@router.post(
    "/containers/terminate",
    response_model=OperationResponse,
    summary="Terminate a sandbox container",
)
async def terminate_container(
    request: ContainerIdRequest, manager: ContainerManagerDep
):
    """Stop and remove a sandbox container."""
    await manager.terminate(request.container_id)
    return OperationResponse(message="Container terminated successfully")


@router.post(
    "/containers/reset",
    response_model=OperationResponse,
    summary="Reset a sandbox container",
)
async def reset_container(request: ContainerIdRequest, manager: ContainerManagerDep):
    """Restart a sandbox container in place."""
    await manager.reset(request.container_id)
    return OperationResponse(message="Container reset successfully")


@router.get(
    "/containers",
    response_model=ContainerListResponse,
    summary="List sandbox containers",
)
async def list_containers(manager: ContainerManagerDep):
    """Snapshot of the registered sandbox containers."""
    sessions = await manager.list_sessions()
    containers = [
        ContainerSummary(challenge_id=s.challenge_id, spawned_at=s.spawned_at)
        for s in sessions
    ]
    return ContainerListResponse(containers=containers, count=len(containers))
