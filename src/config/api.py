"""API server configuration."""

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """HTTP/WebSocket server settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3001, ge=1, le=65535)
    api_debug: bool = Field(default=False)
    api_reload: bool = Field(default=False)
    api_prefix: str = Field(default="/api")

    enable_cors: bool = Field(default=True)
    cors_origins: List[str] = Field(default_factory=list)
    enable_docs: bool = Field(default=True)
