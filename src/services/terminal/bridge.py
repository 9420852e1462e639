"""Terminal bridge between one client connection and one exec stream.

Each client connection gets its own TerminalBridge. The bridge owns the
connection's StreamAttachment and drives it through

    IDLE -> ATTACHING -> ATTACHED -> CLOSING -> CLOSED

Output chunks are forwarded by a single reader task, so stream order is
kept. Input is written as the connection delivers it. Every path into
CLOSED goes through ``_release``, which runs at most once per attachment.
"""

import asyncio
import codecs
import uuid
import weakref
from typing import Any, Awaitable, Callable, Optional

import structlog

from ...config import settings
from ...models.errors import BridgeException, NotFoundError, StreamError
from ...models.session import Session, StreamAttachment
from ...models.terminal import BridgeState, ServerEvent
from ..container.manager import ContainerLifecycleManager
from .stream import ExecStream

logger = structlog.get_logger(__name__)

SendEvent = Callable[[str, Any], Awaitable[None]]
StreamOpener = Callable[[Session, Optional[int], Optional[int]], Awaitable[ExecStream]]


class TerminalBridge:
    """Multiplexes one exec stream against one client connection."""

    def __init__(
        self,
        manager: ContainerLifecycleManager,
        send: SendEvent,
        connection_id: Optional[str] = None,
        stream_opener: Optional[StreamOpener] = None,
        attach_policy: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ):
        """Initialize the bridge.

        Args:
            manager: Lifecycle manager (registry lookups and engine client)
            send: Coroutine delivering ``(event, data)`` to the client
            connection_id: Identifier of the client connection, for logging
            stream_opener: Opens the exec stream for a session
            attach_policy: ``replace`` or ``reject`` when the container already
                has a live terminal on another connection
            chunk_size: Maximum bytes per output read
        """
        self._manager = manager
        self._send = send
        self.connection_id = connection_id or uuid.uuid4().hex[:12]
        self._open_stream = stream_opener or self._open_exec_stream
        self._attach_policy = attach_policy or settings.terminal_attach_policy
        self._chunk_size = chunk_size or settings.terminal_read_chunk_size

        self.state = BridgeState.IDLE
        self._session: Optional[Session] = None
        self._attachment: Optional[StreamAttachment] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._decoder = None
        self._disconnected = False

    @property
    def container_id(self) -> Optional[str]:
        """Container the bridge is attached to, if any."""
        return self._session.container_id if self._session else None

    @property
    def disconnected(self) -> bool:
        """True once the client connection has gone away."""
        return self._disconnected

    async def _open_exec_stream(
        self, session: Session, rows: Optional[int], cols: Optional[int]
    ) -> ExecStream:
        client = await self._manager.get_client()
        return await ExecStream.open(
            client,
            session.container_id,
            settings.docker.container_shell,
            rows or settings.terminal_default_rows,
            cols or settings.terminal_default_cols,
        )

    # ------------------------------------------------------------------
    # Client events
    # ------------------------------------------------------------------

    async def attach(
        self, container_id: str, rows: Optional[int] = None, cols: Optional[int] = None
    ) -> bool:
        """Attach this connection to an interactive shell in a container.

        Failures are reported to the client as ``error`` events.

        Returns:
            True if the terminal is attached
        """
        if self.disconnected:
            logger.debug("Ignoring attach after disconnect", connection_id=self.connection_id)
            return False
        if self.state == BridgeState.ATTACHING:
            await self._emit_error("Terminal attach already in progress")
            return False

        logger.info(
            "Attaching terminal",
            container_id=container_id[:12],
            connection_id=self.connection_id,
        )

        session = await self._manager.registry.get(container_id)
        if session is None:
            await self._emit_error(NotFoundError(container_id).message)
            return False

        if self._attachment is not None:
            await self._release(notify=False, reason="replaced")

        self.state = BridgeState.ATTACHING
        try:
            async with session.lock:
                if await self._manager.registry.get(container_id) is not session:
                    raise NotFoundError(container_id)

                if session.attachment is not None:
                    if self._attach_policy == "reject":
                        raise StreamError("Terminal already attached to this container")
                    await self._manager.release_attachment(session, reason="replaced")

                stream = await self._open_stream(session, rows, cols)

                if self.disconnected:
                    # the client left while the exec was starting
                    stream.close()
                    logger.info(
                        "Discarding terminal opened after disconnect",
                        container_id=session.short_id,
                        connection_id=self.connection_id,
                    )
                    return False

                attachment = StreamAttachment(
                    exec_id=stream.exec_id,
                    stream=stream,
                    connection_id=self.connection_id,
                    owner_ref=weakref.ref(self),
                )
                session.attachment = attachment
                self._session = session
                self._attachment = attachment
                self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
                self.state = BridgeState.ATTACHED
        except BridgeException as e:
            self.state = BridgeState.CLOSED if self.disconnected else BridgeState.IDLE
            logger.warning(
                "Error attaching to container",
                container_id=container_id[:12],
                connection_id=self.connection_id,
                error=e.message,
            )
            await self._emit_error(e.message)
            return False

        session.touch()
        self._reader_task = asyncio.create_task(self._pump_output(attachment))
        logger.info(
            "Terminal attached",
            container_id=session.short_id,
            connection_id=self.connection_id,
            exec_id=attachment.exec_id[:12],
        )
        return True

    async def write(self, data: str) -> None:
        """Forward client input verbatim to the exec stdin."""
        attachment = self._attachment
        if self.state != BridgeState.ATTACHED or attachment is None:
            logger.debug("Dropping terminal input, no attached terminal", connection_id=self.connection_id)
            return

        try:
            await attachment.stream.write(data.encode("utf-8"))
        except StreamError as e:
            if self._attachment is not attachment:
                return
            logger.warning(
                "Terminal write failed",
                connection_id=self.connection_id,
                error=e.message,
            )
            await self._emit_error(e.message)
            await self._release(notify=True, reason="write_failed")
            return

        if self._session is not None:
            self._session.touch()

    async def resize(self, rows: int, cols: int) -> None:
        """Resize the terminal; a failed resize never ends the session."""
        attachment = self._attachment
        if self.state != BridgeState.ATTACHED or attachment is None:
            logger.debug("Ignoring resize, no attached terminal", connection_id=self.connection_id)
            return

        try:
            await attachment.stream.resize(rows, cols)
        except StreamError as e:
            logger.warning(
                "Resize error",
                connection_id=self.connection_id,
                rows=rows,
                cols=cols,
                error=e.message,
            )

    async def close(self) -> None:
        """Client disconnected: release the stream and go quiet."""
        if self.disconnected:
            return
        self._disconnected = True
        await self._release(notify=False, reason="client_disconnect")
        self.state = BridgeState.CLOSED
        logger.info("Terminal connection closed", connection_id=self.connection_id)

    async def invalidate(self, container_id: str) -> None:
        """The session is being terminated or reset under this terminal."""
        if self.container_id != container_id:
            return
        await self._release(notify=True, reason="invalidated")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _pump_output(self, attachment: StreamAttachment) -> None:
        """Forward exec output to the client until EOF."""
        error: Optional[str] = None
        try:
            while True:
                chunk = await attachment.stream.read(self._chunk_size)
                if not chunk:
                    break
                if self._attachment is not attachment:
                    return
                text = self._decoder.decode(chunk)
                if text:
                    await self._emit(ServerEvent.TERMINAL_OUTPUT, text)
                if self._session is not None:
                    self._session.touch()
        except StreamError as e:
            error = e.message
        except Exception as e:
            logger.exception("Unexpected terminal reader error", connection_id=self.connection_id)
            error = f"Terminal stream failed: {e}"

        if self._attachment is not attachment:
            return

        tail = self._decoder.decode(b"", final=True)
        if tail:
            await self._emit(ServerEvent.TERMINAL_OUTPUT, tail)

        if error:
            logger.warning("Container stream failed", connection_id=self.connection_id, error=error)
            await self._emit_error(error)
        else:
            logger.info("Container stream ended", connection_id=self.connection_id)
        await self._release(notify=True, reason="stream_end")

    async def _release(self, notify: bool, reason: str) -> bool:
        """Tear down the current attachment.

        Returns:
            True if an attachment was released by this call
        """
        attachment = self._attachment
        if attachment is None:
            return False

        self.state = BridgeState.CLOSING
        session = self._session
        self._attachment = None
        self._session = None
        if session is not None and session.attachment is attachment:
            session.attachment = None

        attachment.stream.close()

        task = self._reader_task
        self._reader_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        # a new attach may have started while the reader was winding down
        if self.state == BridgeState.CLOSING:
            self.state = BridgeState.CLOSED
        logger.info(
            "Terminal detached",
            container_id=session.short_id if session else None,
            connection_id=self.connection_id,
            reason=reason,
        )

        if notify:
            await self._emit(ServerEvent.TERMINAL_DISCONNECTED, None)
        return True

    async def _emit(self, event: ServerEvent, data: Any) -> None:
        if self.disconnected:
            return
        try:
            await self._send(event.value, data)
        except Exception as e:
            logger.warning(
                "Failed to send terminal event",
                connection_id=self.connection_id,
                event_name=event.value,
                error=str(e),
            )

    async def _emit_error(self, message: str) -> None:
        await self._emit(ServerEvent.ERROR, {"message": message})
