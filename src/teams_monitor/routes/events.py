"""SSE streaming endpoint for state change events."""

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

if TYPE_CHECKING:
    from teams_monitor.events.hub import Broadcaster

router = APIRouter(tags=["events"])


@router.get("/events")
async def event_stream(request: Request) -> EventSourceResponse:
    """Stream every state change event via Server-Sent Events.

    This transport has no subscriptions: each client receives all events,
    preceded by a ``connected`` event and interleaved with heartbeats.

    Args:
        request: FastAPI request object.

    Returns:
        SSE response stream.

    Raises:
        HTTPException: 503 if the client limit is reached.
    """
    hub: Broadcaster = request.app.state.broadcaster
    try:
        client = await hub.connect("sse")
    except ValueError:
        raise HTTPException(status_code=503, detail="Too many stream clients") from None

    return EventSourceResponse(
        hub.create_sse_generator(client),
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
