"""Main FastAPI application for the Docker terminal bridge."""

# Standard library imports
from contextlib import asynccontextmanager

# Third-party imports
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Local application imports
from .api import containers, health, terminal
from .config import settings
from .dependencies.services import get_container_manager
from .middleware.logging import RequestLoggingMiddleware
from .models.errors import BridgeException
from .services.cleanup import SessionReaper
from .utils.error_handlers import (
    bridge_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from .utils.logging import setup_logging

# Setup logging
setup_logging()
logger = structlog.get_logger()


async def _startup_engine_check() -> None:
    """Verify the Docker engine answers; the server starts either way."""
    manager = get_container_manager()
    if await manager.ping():
        logger.info("Docker engine reachable")
    else:
        logger.warning("Docker engine not reachable - make sure the Docker daemon is running")


async def _startup_reaper(app: FastAPI) -> None:
    """Start the idle session reaper if enabled."""
    if not settings.idle_reaping_enabled():
        logger.info("Idle session reaping disabled")
        return
    try:
        reaper = SessionReaper(get_container_manager())
        await reaper.start()
        app.state.session_reaper = reaper
    except Exception as e:
        logger.error("Failed to start session reaper", error=str(e))


async def _shutdown_services(app: FastAPI) -> None:
    """Stop the reaper, clean up containers and close the engine client."""
    reaper = getattr(app.state, "session_reaper", None)
    if reaper:
        try:
            await reaper.stop()
        except Exception as e:
            logger.error("Error stopping session reaper", error=str(e))

    manager = get_container_manager()
    if settings.cleanup_on_shutdown and len(manager.registry):
        try:
            count = await manager.terminate_all()
            logger.info("Terminated containers on shutdown", count=count)
        except Exception as e:
            logger.error("Error terminating containers on shutdown", error=str(e))

    await manager.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Docker bridge", version="1.0.0")

    await _startup_engine_check()
    await _startup_reaper(app)

    api = settings.api
    address = f"{api.api_host}:{api.api_port}"
    logger.info(
        "Docker bridge ready",
        server=f"http://{address}",
        websocket=f"ws://{address}{api.api_prefix}/terminal",
        health=f"http://{address}{api.api_prefix}/health",
    )

    yield

    logger.info("Shutting down Docker bridge")
    await _shutdown_services(app)
    logger.info("Docker bridge shutdown completed")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    api = settings.api
    app = FastAPI(
        title="Docker Bridge",
        description="Sandbox containers with interactive terminals over WebSocket",
        version="1.0.0",
        docs_url="/docs" if api.enable_docs else None,
        redoc_url="/redoc" if api.enable_docs else None,
        debug=api.api_debug,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    if api.enable_cors:
        origins = api.cors_origins if api.cors_origins else ["*"]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=origins != ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )
        logger.info("CORS enabled", origins=origins)

    # Register global error handlers
    app.add_exception_handler(BridgeException, bridge_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    prefix = api.api_prefix
    app.include_router(health.router, prefix=prefix, tags=["health"])
    app.include_router(containers.router, prefix=prefix, tags=["containers"])
    app.include_router(terminal.router, prefix=prefix, tags=["terminal"])

    return app


app = create_app()


def run_server():
    api = settings.api
    logging_config = settings.logging
    logger.info(f"Starting HTTP server on {api.api_host}:{api.api_port}")
    uvicorn.run(
        "src.main:app",
        host=api.api_host,
        port=api.api_port,
        reload=api.api_reload,
        log_level=logging_config.log_level.lower(),
        access_log=logging_config.enable_access_logs,
        timeout_keep_alive=120,
    )


if __name__ == "__main__":
    run_server()
