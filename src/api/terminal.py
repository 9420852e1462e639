"""Terminal WebSocket endpoint.

Each WebSocket connection gets its own TerminalBridge. Frames are JSON
objects ``{"event": ..., "data": ...}``; see ``src.models.terminal``.
"""

import asyncio
import json
import uuid
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect

from ..dependencies.services import ContainerManagerDep
from ..models.terminal import (
    AttachTerminal,
    ClientEvent,
    EventFrame,
    ServerEvent,
    TerminalInput,
    TerminalResize,
)
from ..services.terminal import TerminalBridge

logger = structlog.get_logger(__name__)
router = APIRouter()


def _frame_text(message: dict) -> str:
    if message.get("text") is not None:
        return message["text"]
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(loc) for loc in first.get("loc", ()))
    return f"Invalid payload: {field} {first.get('msg', '')}".strip()


async def dispatch_event(bridge: TerminalBridge, send, raw: str) -> bool:
    """Route one client frame to the bridge.

    Returns:
        False when the client asked to disconnect
    """
    try:
        frame = EventFrame.model_validate_json(raw)
    except ValidationError:
        await send(ServerEvent.ERROR.value, {"message": "Malformed event frame"})
        return True

    try:
        if frame.event == ClientEvent.ATTACH_TERMINAL.value:
            payload = AttachTerminal.model_validate(frame.data or {})
            await bridge.attach(payload.container_id, payload.rows, payload.cols)
        elif frame.event == ClientEvent.TERMINAL_INPUT.value:
            data: Any = frame.data
            if isinstance(data, dict):
                data = TerminalInput.model_validate(data).data
            if not isinstance(data, str):
                raise ValueError("terminal-input data must be a string")
            await bridge.write(data)
        elif frame.event == ClientEvent.TERMINAL_RESIZE.value:
            payload = TerminalResize.model_validate(frame.data or {})
            await bridge.resize(payload.rows, payload.cols)
        elif frame.event == ClientEvent.DISCONNECT.value:
            return False
        else:
            await send(
                ServerEvent.ERROR.value, {"message": f"Unknown event: {frame.event}"}
            )
    except ValidationError as e:
        await send(ServerEvent.ERROR.value, {"message": _validation_message(e)})
    except ValueError as e:
        await send(ServerEvent.ERROR.value, {"message": str(e)})
    return True


@router.websocket("/terminal")
async def terminal_socket(websocket: WebSocket, manager: ContainerManagerDep):
    """Interactive terminal connection."""
    await websocket.accept()
    connection_id = uuid.uuid4().hex[:12]
    send_lock = asyncio.Lock()

    async def send(event: str, data: Any) -> None:
        # output and error events come from different tasks
        async with send_lock:
            await websocket.send_text(json.dumps({"event": event, "data": data}))

    bridge = TerminalBridge(manager, send, connection_id=connection_id)
    logger.info("Client connected", connection_id=connection_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if not await dispatch_event(bridge, send, _frame_text(message)):
                await websocket.close()
                break
    except WebSocketDisconnect:
        pass
    finally:
        await bridge.close()
        logger.info("Client disconnected", connection_id=connection_id)
