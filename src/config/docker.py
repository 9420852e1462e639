"""Docker engine and sandbox container configuration."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DockerConfig(BaseSettings):
    """Container engine connection and sandbox container settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    docker_base_url: Optional[str] = Field(default=None)
    docker_timeout: int = Field(default=60, ge=1, le=600)

    default_image: str = Field(default="parrotsec/security:latest")
    image_pull_enabled: bool = Field(default=True)
    container_shell: str = Field(default="/bin/bash")
    container_name_prefix: str = Field(default="parrot")
    container_network_mode: str = Field(default="bridge")
    container_stop_timeout: int = Field(default=10, ge=0, le=300)
    container_ready_timeout: float = Field(default=2.0, ge=0.0, le=60.0)
    container_fallback_ip: str = Field(default="172.17.0.2")
