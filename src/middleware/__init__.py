"""Middleware for the Docker terminal bridge."""

from .logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
