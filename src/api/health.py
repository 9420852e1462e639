"""Health check endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import structlog

from ..dependencies.services import ContainerManagerDep
from ..models.containers import HealthResponse

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Basic health check")
async def basic_health_check():
    """Basic health check; does not touch the Docker engine."""
    return HealthResponse()


@router.get("/health/docker", summary="Docker engine health check")
async def docker_health_check(manager: ContainerManagerDep):
    """Check that the Docker engine answers and report registered sessions."""
    reachable = await manager.ping()
    content = {
        "service": "docker",
        "status": "ok" if reachable else "unavailable",
        "sessions": len(manager.registry),
    }
    if not reachable:
        logger.warning("Docker health check failed")
        return JSONResponse(status_code=503, content=content)
    return content
