"""Interactive exec stream inside a sandbox container.

Wraps the raw socket that the Docker engine hands back for an exec started
with ``socket=True`` and a TTY. With a TTY the engine does not multiplex
stdout and stderr, so the socket carries plain terminal bytes both ways.
"""

import socket
import threading
from typing import Optional

import docker
import structlog

from ...models.errors import StreamError
from ..container.utils import ENGINE_ERRORS, run_in_executor

logger = structlog.get_logger(__name__)


class ExecStream:
    """Duplex byte stream of one exec process with a pseudo-terminal.

    ``close`` may be triggered from several places (client disconnect,
    engine EOF, session teardown); the socket is released exactly once.
    """

    def __init__(
        self,
        client: docker.DockerClient,
        exec_id: str,
        sock,
        container_id: str = "",
    ):
        self._client = client
        self.exec_id = exec_id
        self.container_id = container_id
        self._sock = sock
        # exec_start returns a SocketIO wrapper on unix sockets
        self._raw = getattr(sock, "_sock", sock)
        self._closed = False
        self._close_lock = threading.Lock()

    @classmethod
    async def open(
        cls,
        client: docker.DockerClient,
        container_id: str,
        shell: str,
        rows: Optional[int] = None,
        cols: Optional[int] = None,
    ) -> "ExecStream":
        """Start an interactive shell inside a container.

        Args:
            client: Docker client
            container_id: Container to exec into
            shell: Shell command to run
            rows: Optional initial terminal height
            cols: Optional initial terminal width

        Returns:
            An open ExecStream

        Raises:
            StreamError: If the exec cannot be created or started
        """

        def _start():
            exec_info = client.api.exec_create(
                container_id,
                cmd=[shell],
                stdin=True,
                stdout=True,
                stderr=True,
                tty=True,
                environment={"TERM": "xterm-256color"},
            )
            sock = client.api.exec_start(exec_info["Id"], socket=True, tty=True)
            return exec_info["Id"], sock

        try:
            exec_id, sock = await run_in_executor(_start)
        except ENGINE_ERRORS as e:
            logger.error(
                "Failed to start exec",
                container_id=container_id[:12],
                error=str(e),
            )
            raise StreamError(f"Failed to open terminal: {e}")

        stream = cls(client, exec_id, sock, container_id)
        logger.debug(
            "Exec stream opened",
            container_id=container_id[:12],
            exec_id=exec_id[:12],
        )

        if rows and cols:
            try:
                await stream.resize(rows, cols)
            except StreamError as e:
                logger.warning("Initial resize failed", exec_id=exec_id[:12], error=e.message)

        return stream

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self, size: int = 4096) -> bytes:
        """Read the next chunk; empty bytes at EOF or once closed."""
        if self.closed:
            return b""
        try:
            return await run_in_executor(self._raw.recv, size)
        except OSError as e:
            if self.closed:
                return b""
            raise StreamError(f"Terminal read failed: {e}")

    async def write(self, data: bytes) -> None:
        """Write bytes to the exec stdin."""
        if self.closed:
            raise StreamError("Terminal stream is closed")
        try:
            await run_in_executor(self._raw.sendall, data)
        except OSError as e:
            raise StreamError(f"Terminal write failed: {e}")

    async def resize(self, rows: int, cols: int) -> None:
        """Resize the exec pseudo-terminal."""
        try:
            await run_in_executor(
                self._client.api.exec_resize,
                self.exec_id,
                height=max(rows, 1),
                width=max(cols, 1),
            )
        except ENGINE_ERRORS as e:
            raise StreamError(f"Terminal resize failed: {e}")

    def close(self) -> bool:
        """Release the socket.

        Shutting the socket down first unblocks a read that is pending in
        the thread pool.

        Returns:
            True if this call closed the stream, False if it was already closed
        """
        with self._close_lock:
            if self._closed:
                return False
            self._closed = True

        try:
            self._raw.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # peer already gone
            logger.debug("Exec socket shutdown failed", exec_id=self.exec_id[:12], error=str(e))

        handles = [self._sock] if self._raw is self._sock else [self._sock, self._raw]
        for handle in handles:
            try:
                handle.close()
            except OSError as e:
                logger.debug("Exec socket close failed", exec_id=self.exec_id[:12], error=str(e))

        logger.debug("Exec stream closed", exec_id=self.exec_id[:12])
        return True
