"""Configuration management for the Docker terminal bridge.

This module provides a unified Settings class with flat fields loaded from
the environment, plus grouped read-only views over them.

Usage:
    from src.config import settings

    # Access grouped settings
    settings.api.api_prefix
    settings.docker.default_image

    # Or flat access
    settings.api_prefix
    settings.default_image
"""

from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Import grouped configurations
from .api import APIConfig
from .docker import DockerConfig
from .logging import LoggingConfig


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3001, ge=1, le=65535)
    api_debug: bool = Field(default=False)
    api_reload: bool = Field(default=False)
    api_prefix: str = Field(
        default="/api",
        description="Path prefix shared by every HTTP and WebSocket route",
    )

    # Docker Engine Configuration
    docker_base_url: Optional[str] = Field(
        default=None,
        description="Docker daemon URL; when unset the client is built from the environment",
    )
    docker_timeout: int = Field(default=60, ge=1, le=600)

    # Sandbox Container Configuration
    default_image: str = Field(
        default="parrotsec/security:latest",
        description="Image used when a spawn request does not name one",
    )
    image_pull_enabled: bool = Field(
        default=True,
        description="Try to pull the image before each spawn (failures are non-fatal)",
    )
    container_shell: str = Field(default="/bin/bash")
    container_name_prefix: str = Field(default="parrot")
    container_network_mode: str = Field(default="bridge")
    container_stop_timeout: int = Field(
        default=10,
        ge=0,
        le=300,
        description="Seconds the engine waits before killing a stopping container",
    )
    container_ready_timeout: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Seconds to wait for a started container to report running",
    )
    container_fallback_ip: str = Field(
        default="172.17.0.2",
        description="Address reported when the engine returns no container IP",
    )

    # Terminal Configuration
    terminal_attach_policy: Literal["replace", "reject"] = Field(
        default="replace",
        description="What happens when a container already has a live terminal",
    )
    terminal_read_chunk_size: int = Field(default=4096, ge=256, le=65536)
    terminal_default_rows: int = Field(default=24, ge=1, le=1000)
    terminal_default_cols: int = Field(default=80, ge=1, le=1000)

    # Session Lifecycle Configuration
    session_idle_ttl_minutes: int = Field(
        default=0,
        ge=0,
        le=1440,
        description="Terminate unattached sessions idle for this long (0 disables)",
    )
    session_reap_interval_seconds: int = Field(default=60, ge=1, le=3600)
    cleanup_on_shutdown: bool = Field(
        default=True,
        description="Terminate every registered container when the server stops",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    enable_access_logs: bool = Field(default=True)

    # Development Configuration
    enable_cors: bool = Field(default=True)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])
    enable_docs: bool = Field(default=True)

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v):
        """Ensure the prefix starts with a slash and has no trailing slash."""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Only accept level names the logging module understands."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Log format is either json or console."""
        fmt = v.lower()
        if fmt not in {"json", "console"}:
            raise ValueError("log_format must be 'json' or 'console'")
        return fmt

    # ========================================================================
    # GROUPED CONFIG ACCESS
    # ========================================================================

    @property
    def api(self) -> APIConfig:
        """Access API configuration group."""
        return APIConfig(
            api_host=self.api_host,
            api_port=self.api_port,
            api_debug=self.api_debug,
            api_reload=self.api_reload,
            api_prefix=self.api_prefix,
            enable_cors=self.enable_cors,
            cors_origins=self.cors_origins,
            enable_docs=self.enable_docs,
        )

    @property
    def docker(self) -> DockerConfig:
        """Access Docker configuration group."""
        return DockerConfig(
            docker_base_url=self.docker_base_url,
            docker_timeout=self.docker_timeout,
            default_image=self.default_image,
            image_pull_enabled=self.image_pull_enabled,
            container_shell=self.container_shell,
            container_name_prefix=self.container_name_prefix,
            container_network_mode=self.container_network_mode,
            container_stop_timeout=self.container_stop_timeout,
            container_ready_timeout=self.container_ready_timeout,
            container_fallback_ip=self.container_fallback_ip,
        )

    @property
    def logging(self) -> LoggingConfig:
        """Access logging configuration group."""
        return LoggingConfig(
            log_level=self.log_level,
            log_format=self.log_format,
            enable_access_logs=self.enable_access_logs,
        )

    # ========================================================================
    # HELPER METHODS
    # ========================================================================

    def idle_reaping_enabled(self) -> bool:
        """Check if idle sessions should be reaped."""
        return self.session_idle_ttl_minutes > 0


# Global settings instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    # Grouped configs
    "APIConfig",
    "DockerConfig",
    "LoggingConfig",
]
