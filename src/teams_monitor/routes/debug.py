"""Debug log endpoints."""

from fastapi import APIRouter, HTTPException, Query, Request

from teams_monitor.snapshots import DebugLogTail, DebugSessionInfo, SnapshotReader

router = APIRouter(prefix="/debug", tags=["debug"])


def _tail(request: Request, session_id: str, lines: int | None, default: int) -> DebugLogTail:
    reader: SnapshotReader = request.app.state.reader
    log = reader.get_debug_log(session_id, lines or default)
    if log is None:
        raise HTTPException(status_code=404, detail="Debug session not found")
    return log


@router.get("/sessions", response_model=list[DebugSessionInfo])
async def list_sessions(request: Request) -> list[DebugSessionInfo]:
    """List debug logs, most recently modified first."""
    reader: SnapshotReader = request.app.state.reader
    return reader.list_debug_sessions()


@router.get("/sessions/{session_id}", response_model=DebugLogTail)
async def get_session_log(
    session_id: str,
    request: Request,
    lines: int | None = Query(default=None, ge=1, description="Lines to return"),
) -> DebugLogTail:
    """Get the full-view window of a debug log.

    Raises:
        HTTPException: 404 if the log does not exist.
    """
    return _tail(request, session_id, lines, request.app.state.settings.debug_log_lines)


@router.get("/sessions/{session_id}/tail", response_model=DebugLogTail)
async def get_session_tail(
    session_id: str,
    request: Request,
    lines: int | None = Query(default=None, ge=1, description="Lines to return"),
) -> DebugLogTail:
    """Get the short tail of a debug log.

    Raises:
        HTTPException: 404 if the log does not exist.
    """
    return _tail(request, session_id, lines, request.app.state.settings.debug_tail_lines)
