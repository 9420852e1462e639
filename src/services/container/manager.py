"""Sandbox container lifecycle management using the Docker engine."""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

import docker
import structlog
from docker.errors import APIError, NotFound

from ...config import settings
from ...models.errors import (
    BridgeException,
    EngineError,
    NotFoundError,
)
from ...models.session import Session
from ..registry import SessionRegistry
from .utils import (
    ENGINE_ERRORS,
    build_container_name,
    get_container_ip,
    run_in_executor,
    wait_for_container_ready,
)

logger = structlog.get_logger(__name__)

LABEL_PREFIX = "com.docker-bridge"


class ContainerLifecycleManager:
    """Manages sandbox container lifecycle operations.

    Creates, stops, restarts and removes sandbox containers, keeping the
    SessionRegistry in step with what exists on the engine. Every Docker
    SDK call runs in the thread pool.
    """

    def __init__(
        self,
        registry: Optional[SessionRegistry] = None,
        client: Optional[docker.DockerClient] = None,
    ):
        """Initialize the lifecycle manager.

        Args:
            registry: Session registry to keep in sync (a fresh one if omitted)
            client: Docker client; built lazily from settings if omitted
        """
        self._registry = registry if registry is not None else SessionRegistry()
        self._client = client
        self._client_lock = asyncio.Lock()

    @property
    def registry(self) -> SessionRegistry:
        """Get the session registry."""
        return self._registry

    def _build_client(self) -> docker.DockerClient:
        config = settings.docker
        if config.docker_base_url:
            return docker.DockerClient(
                base_url=config.docker_base_url, timeout=config.docker_timeout
            )
        return docker.from_env(timeout=config.docker_timeout)

    async def get_client(self) -> docker.DockerClient:
        """Get the Docker client, connecting on first use."""
        if self._client is not None:
            return self._client

        async with self._client_lock:
            if self._client is None:
                try:
                    self._client = await run_in_executor(self._build_client)
                except ENGINE_ERRORS as e:
                    logger.error("Failed to connect to Docker engine", error=str(e))
                    raise EngineError(
                        f"Docker engine unavailable: {e}", operation="connect"
                    )
                logger.info(
                    "Connected to Docker engine",
                    base_url=settings.docker.docker_base_url or "environment",
                )
        return self._client

    async def ping(self) -> bool:
        """Check that the Docker engine answers."""
        try:
            client = await self.get_client()
            return bool(await run_in_executor(client.ping))
        except (BridgeException,) + ENGINE_ERRORS as e:
            logger.warning("Docker engine ping failed", error=str(e))
            return False

    async def _ensure_image(self, client: docker.DockerClient, image: str) -> None:
        """Best-effort pull; a failure is fine when the image is already local."""
        if not settings.docker.image_pull_enabled:
            return
        try:
            await run_in_executor(client.images.pull, image)
            logger.info("Image pulled", image=image)
        except ENGINE_ERRORS as e:
            logger.warning(
                "Image pull failed, using local image if present",
                image=image,
                error=str(e),
            )

    async def spawn(self, challenge_id: str, image: Optional[str] = None) -> Session:
        """Create, start and register a sandbox container.

        Args:
            challenge_id: Label identifying the exercise
            image: Image to run (defaults to the configured sandbox image)

        Returns:
            The registered Session

        Raises:
            EngineError: If the container cannot be created or started
        """
        config = settings.docker
        image = image or config.default_image
        client = await self.get_client()

        logger.info("Spawning container", challenge_id=challenge_id, image=image)
        await self._ensure_image(client, image)

        name = build_container_name(config.container_name_prefix, challenge_id)
        spawned_at = datetime.now(timezone.utc)
        labels = {
            f"{LABEL_PREFIX}.managed": "true",
            f"{LABEL_PREFIX}.challenge-id": challenge_id,
            f"{LABEL_PREFIX}.created-at": spawned_at.isoformat(),
        }

        try:
            container = await run_in_executor(
                client.containers.create,
                image,
                command=[config.container_shell],
                name=name,
                tty=True,
                stdin_open=True,
                labels=labels,
                network_mode=config.container_network_mode,
            )
        except ENGINE_ERRORS as e:
            logger.error(
                "Failed to create container",
                challenge_id=challenge_id,
                image=image,
                error=str(e),
            )
            raise EngineError(f"Failed to create container: {e}", operation="create")

        try:
            await run_in_executor(container.start)
            ready = await wait_for_container_ready(
                container, max_wait=config.container_ready_timeout
            )
            if not ready and getattr(container, "status", "") in ("exited", "dead"):
                raise EngineError(
                    f"Container exited right after start (status={container.status})",
                    operation="start",
                )
            await run_in_executor(container.reload)
        except ENGINE_ERRORS + (EngineError,) as e:
            logger.error(
                "Failed to start container",
                container_id=container.id[:12],
                challenge_id=challenge_id,
                error=str(e),
            )
            await self._discard(container)
            if isinstance(e, EngineError):
                raise
            raise EngineError(f"Failed to start container: {e}", operation="start")

        session = Session(
            container_id=container.id,
            challenge_id=challenge_id,
            container=container,
            image=image,
            name=name,
            ip_address=get_container_ip(container, config.container_fallback_ip),
            spawned_at=spawned_at,
        )
        await self._registry.put(session)

        logger.info(
            "Container spawned",
            container_id=session.short_id,
            challenge_id=challenge_id,
            ip_address=session.ip_address,
        )
        return session

    async def get_session(self, container_id: str) -> Session:
        """Get a registered session.

        Raises:
            NotFoundError: If the container id is unknown
        """
        session = await self._registry.get(container_id)
        if session is None:
            raise NotFoundError(container_id)
        return session

    async def _ensure_registered(self, session: Session) -> None:
        """Fail if the session left the registry; call with its lock held."""
        if await self._registry.get(session.container_id) is not session:
            raise NotFoundError(session.container_id)

    async def terminate(self, container_id: str) -> None:
        """Stop and remove a container, then drop it from the registry.

        Raises:
            NotFoundError: If the container id is unknown (or already terminated)
            EngineError: If the engine refuses to stop or remove it
        """
        session = await self.get_session(container_id)

        async with session.lock:
            # A concurrent terminate may have won while we waited for the lock.
            await self._ensure_registered(session)

            await self.release_attachment(session, reason="terminated")
            await self._stop_and_remove(session)
            await self._registry.remove(container_id)

        logger.info(
            "Container terminated",
            container_id=session.short_id,
            challenge_id=session.challenge_id,
        )

    async def reset(self, container_id: str) -> None:
        """Restart a container in place.

        The container id and registry entry are unchanged; any live
        terminal is torn down and the client must attach again.

        Raises:
            NotFoundError: If the container id is unknown
            EngineError: If the restart fails
        """
        session = await self.get_session(container_id)

        async with session.lock:
            await self._ensure_registered(session)
            await self.release_attachment(session, reason="reset")
            config = settings.docker

            try:
                await run_in_executor(
                    session.container.restart, timeout=config.container_stop_timeout
                )
                client = await self.get_client()
                session.container = await run_in_executor(
                    client.containers.get, container_id
                )
            except ENGINE_ERRORS as e:
                logger.error(
                    "Failed to reset container",
                    container_id=session.short_id,
                    error=str(e),
                )
                raise EngineError(f"Failed to reset container: {e}", operation="restart")

            session.ip_address = get_container_ip(
                session.container, session.ip_address or config.container_fallback_ip
            )
            session.touch()

        logger.info("Container reset", container_id=session.short_id)

    async def list_sessions(self) -> List[Session]:
        """Snapshot of registered sessions in insertion order."""
        return await self._registry.values()

    async def terminate_all(self) -> int:
        """Terminate every registered container, best effort.

        Returns:
            Number of containers terminated
        """
        terminated = 0
        for session in await self._registry.values():
            try:
                await self.terminate(session.container_id)
                terminated += 1
            except NotFoundError:
                pass
            except BridgeException as e:
                logger.warning(
                    "Failed to terminate container during cleanup",
                    container_id=session.short_id,
                    error=e.message,
                )
        return terminated

    async def release_attachment(self, session: Session, reason: str) -> None:
        """Tear down the live terminal of a session, if any."""
        attachment = session.attachment
        if attachment is None:
            return

        bridge = attachment.owner
        if bridge is not None:
            await bridge.invalidate(session.container_id)
        else:
            session.attachment = None
            attachment.stream.close()

        logger.info(
            "Terminal attachment released",
            container_id=session.short_id,
            connection_id=attachment.connection_id,
            reason=reason,
        )

    async def _stop_and_remove(self, session: Session) -> None:
        """Stop then remove the container; a missing container counts as done."""
        try:
            await run_in_executor(
                session.container.stop,
                timeout=settings.docker.container_stop_timeout,
            )
        except NotFound:
            logger.info("Container already gone", container_id=session.short_id)
            return
        except ENGINE_ERRORS as e:
            logger.error(
                "Failed to stop container",
                container_id=session.short_id,
                error=str(e),
            )
            raise EngineError(f"Failed to stop container: {e}", operation="stop")

        try:
            await run_in_executor(session.container.remove, force=True)
        except NotFound:
            pass
        except ENGINE_ERRORS as e:
            # 409: the engine is already removing it
            if isinstance(e, APIError) and e.status_code == 409:
                return
            logger.error(
                "Failed to remove container",
                container_id=session.short_id,
                error=str(e),
            )
            raise EngineError(f"Failed to remove container: {e}", operation="remove")

    async def _discard(self, container) -> None:
        """Force-remove a container that never made it into the registry."""
        try:
            await run_in_executor(container.remove, force=True)
        except ENGINE_ERRORS as e:
            logger.warning(
                "Failed to discard container",
                container_id=container.id[:12],
                error=str(e),
            )

    async def close(self) -> None:
        """Close the Docker client."""
        if self._client is not None:
            try:
                await run_in_executor(self._client.close)
            except Exception as e:
                logger.warning("Error closing Docker client", error=str(e))
            self._client = None
