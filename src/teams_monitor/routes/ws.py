"""WebSocket endpoint with channel subscriptions."""

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from teams_monitor.events.hub import ClientConnection, now_ms

if TYPE_CHECKING:
    from teams_monitor.events.control import ControlHandler
    from teams_monitor.events.hub import Broadcaster

logger = structlog.get_logger()

router = APIRouter(tags=["events"])

# RFC 6455 "try again later"
CLOSE_TRY_AGAIN = 1013


async def _pump(websocket: WebSocket, client: ClientConnection) -> None:
    """Forward queued events to the socket until it fails or closes."""
    while not client.closed:
        event = await client.next_event()
        try:
            await websocket.send_text(event.model_dump_json())
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug("ws_send_failed", client_id=client.client_id, error=str(e))
            client.closed = True
            return


@router.websocket("/ws")
async def websocket_stream(websocket: WebSocket) -> None:
    """Bidirectional event stream filtered by channel subscriptions.

    Sends ``connected`` on accept, then events for the client's channels
    (all events until the first subscribe). Inbound frames are control
    messages; anything unrecognized is ignored.

    Args:
        websocket: Accepted client connection.
    """
    hub: Broadcaster = websocket.app.state.broadcaster
    control: ControlHandler = websocket.app.state.control

    await websocket.accept()
    try:
        client = await hub.connect("ws")
    except ValueError:
        await websocket.close(code=CLOSE_TRY_AGAIN, reason="Too many stream clients")
        return

    pump_task: asyncio.Task[None] | None = None
    try:
        await websocket.send_json({"type": "connected", "timestamp": now_ms()})
        pump_task = asyncio.create_task(_pump(websocket, client))

        while not client.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue

            reply = control.handle(client.client_id, raw)
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(client.client_id)
        if pump_task is not None:
            pump_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pump_task
