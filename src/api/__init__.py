"""API endpoints for the Docker terminal bridge."""

from . import containers, health, terminal

__all__ = ["containers", "health", "terminal"]
