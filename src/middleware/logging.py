"""Request logging middleware."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request

from ..config import settings

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = b"x-request-id"


class RequestLoggingMiddleware:
    """Access log for HTTP requests.

    Binds a request id into the structlog context for the lifetime of the
    request, so every log line emitted while handling it carries the id,
    and echoes it back in the ``X-Request-ID`` response header. Health
    probes are logged only the first time.
    """

    def __init__(self, app: Callable):
        self.app = app
        self.health_path = f"{settings.api.api_prefix}/health"
        self.enabled = settings.logging.enable_access_logs
        self._health_seen = False

    def _should_log(self, path: str) -> bool:
        if path != self.health_path:
            return True
        first, self._health_seen = not self._health_seen, True
        return first

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        if scope["type"] != "http" or not self.enabled:
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        log_this = self._should_log(request.url.path)
        started = time.perf_counter()
        status = 500

        async def send_with_request_id(message):
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                await self.app(scope, receive, send_with_request_id)
            finally:
                if log_this:
                    fields = dict(
                        method=request.method,
                        path=request.url.path,
                        status=status,
                        duration_ms=round((time.perf_counter() - started) * 1000, 2),
                    )
                    if status >= 500:
                        logger.error("Request completed", **fields)
                    elif status >= 400:
                        logger.warning("Request completed", **fields)
                    else:
                        logger.info("Request completed", **fields)
