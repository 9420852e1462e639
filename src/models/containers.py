"""Request and response models for the container lifecycle endpoints.

Field names follow the camelCase wire format used by the web client;
Python code uses the snake_case attribute names.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SpawnRequest(_CamelModel):
    """Request to spawn a sandbox container."""

    challenge_id: str = Field(
        ...,
        alias="challengeId",
        min_length=1,
        max_length=128,
        description="Label identifying the exercise the sandbox is for",
    )
    image: Optional[str] = Field(
        default=None,
        min_length=1,
        description="Image to run; defaults to the configured sandbox image",
    )


class ContainerIdRequest(_CamelModel):
    """Request naming an existing container."""

    container_id: str = Field(..., alias="containerId", min_length=1)


class SpawnResponse(_CamelModel):
    """Response for a successful spawn."""

    success: bool = True
    container_id: str = Field(..., alias="containerId")
    ip_address: str = Field(..., alias="ipAddress")
    message: str = "Container spawned successfully"


class OperationResponse(BaseModel):
    """Response for terminate and reset."""

    success: bool = True
    message: str


class ContainerSummary(_CamelModel):
    """Public view of one registered session."""

    challenge_id: str = Field(..., alias="challengeId")
    spawned_at: datetime = Field(..., alias="spawnedAt")


class ContainerListResponse(BaseModel):
    """Snapshot of registered sessions."""

    success: bool = True
    containers: List[ContainerSummary] = Field(default_factory=list)
    count: int = 0


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    message: str = "Docker bridge is running"
