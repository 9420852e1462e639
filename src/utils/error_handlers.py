"""Global error handlers for the Docker terminal bridge.

Every HTTP failure leaves the service as the same JSON envelope
(``ErrorResponse``). Terminal socket failures never come through here;
the bridge reports those as ``error`` events.
"""

# Standard library imports
import traceback
import uuid
from typing import Optional, Union

# Third-party imports
import structlog
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

# Local application imports
from ..models.errors import (
    BridgeException,
    ErrorResponse,
    ErrorType,
    ErrorDetail,
)

logger = structlog.get_logger(__name__)

# Error category reported for plain HTTP errors raised by the framework
STATUS_ERROR_TYPES = {
    400: ErrorType.VALIDATION,
    404: ErrorType.RESOURCE_NOT_FOUND,
    405: ErrorType.VALIDATION,
    409: ErrorType.RESOURCE_CONFLICT,
    415: ErrorType.VALIDATION,
    422: ErrorType.VALIDATION,
    502: ErrorType.EXTERNAL_SERVICE,
    503: ErrorType.SERVICE_UNAVAILABLE,
}


def generate_request_id() -> str:
    """Generate a unique request ID for error tracking."""
    return uuid.uuid4().hex[:16]


def _request_context(request: Request) -> dict:
    client_ip = request.client.host if request.client else "unknown"
    return {
        "path": request.url.path,
        "method": request.method,
        "client_ip": client_ip,
    }


def _error_json(
    status_code: int, body: ErrorResponse, headers: Optional[dict] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=body.model_dump(), headers=headers
    )


async def bridge_exception_handler(
    request: Request, exc: BridgeException
) -> JSONResponse:
    """Render a BridgeException with its own status code and category."""
    exc.request_id = exc.request_id or generate_request_id()

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request failed",
        error=exc.message,
        error_type=exc.error_type.value,
        status_code=exc.status_code,
        operation=getattr(exc, "operation", None),
        request_id=exc.request_id,
        **_request_context(request),
    )

    return _error_json(exc.status_code, exc.to_response())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (unknown route, bad method) in the envelope."""
    request_id = generate_request_id()
    logger.warning(
        "HTTP error",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id,
        **_request_context(request),
    )

    body = ErrorResponse(
        error=str(exc.detail),
        error_type=STATUS_ERROR_TYPES.get(exc.status_code, ErrorType.INTERNAL_SERVER),
        request_id=request_id,
    )
    return _error_json(exc.status_code, body, getattr(exc, "headers", None))


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, PydanticValidationError]
) -> JSONResponse:
    """Report malformed request bodies as 422 with one detail per field."""
    request_id = generate_request_id()
    details = [
        ErrorDetail(
            field=".".join(str(part) for part in error["loc"]),
            message=error["msg"],
            code=error["type"],
        )
        for error in exc.errors()
    ]

    logger.warning(
        "Invalid request body",
        request_id=request_id,
        fields=[d.field for d in details],
        **_request_context(request),
    )

    body = ErrorResponse(
        error="Request validation failed",
        error_type=ErrorType.VALIDATION,
        details=details,
        request_id=request_id,
    )
    return _error_json(422, body)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, expose nothing internal."""
    request_id = generate_request_id()
    logger.error(
        "Unhandled exception",
        request_id=request_id,
        exception_type=type(exc).__name__,
        exception_message=str(exc),
        traceback=traceback.format_exc(),
        **_request_context(request),
    )

    body = ErrorResponse(
        error="An unexpected error occurred",
        error_type=ErrorType.INTERNAL_SERVER,
        request_id=request_id,
    )
    return _error_json(500, body)
