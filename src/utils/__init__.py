"""Utility modules for the Docker terminal bridge."""

from .logging import setup_logging

__all__ = ["setup_logging"]
