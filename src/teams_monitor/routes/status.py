"""Status summary and aggregated dashboard endpoints."""

from fastapi import APIRouter, Request

from teams_monitor.events.hub import Broadcaster, now_ms
from teams_monitor.events.watcher import ChangeWatcher
from teams_monitor.snapshots import DashboardTeam, SnapshotReader, StatusResponse

router = APIRouter(tags=["status"])


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    """Summarize watched roots, teams and live stream clients."""
    reader: SnapshotReader = request.app.state.reader
    hub: Broadcaster = request.app.state.broadcaster
    watcher: ChangeWatcher = request.app.state.watcher

    teams = reader.list_teams()
    return StatusResponse(
        timestamp=now_ms(),
        paths=reader.watch_paths(),
        team_count=len(teams),
        teams=[t.name for t in teams],
        connections=hub.connection_counts(),
        watched_sessions=[s.session_id for s in watcher.tail.sessions() if s.interested],
    )


@router.get("/dashboard", response_model=list[DashboardTeam])
async def dashboard(request: Request) -> list[DashboardTeam]:
    """Roster, tasks and message count for every team in one call."""
    reader: SnapshotReader = request.app.state.reader
    return reader.dashboard()
