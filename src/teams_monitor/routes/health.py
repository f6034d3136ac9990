"""Health check endpoints for liveness and readiness probes."""
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from teams_monitor.events.watcher import ChangeWatcher
from teams_monitor.paths import WatchedRoot

router = APIRouter(prefix="/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Response model for liveness probe.

    Attributes:
        status: Always 'alive' when process is running.
    """

    status: Literal["alive"]


class RootCheck(BaseModel):
    """Watch state of one root.

    Attributes:
        name: Root kind and path.
        status: 'watching', 'missing' (not created yet), 'unwatched'
            (created after startup) or 'failed'.
        message: Error details when status is 'failed'.
    """

    name: str
    status: Literal["watching", "missing", "unwatched", "failed"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Response model for readiness probe.

    Attributes:
        status: 'ready' while the watcher runs and no root failed.
        checks: Per-root watch state.
    """

    status: Literal["ready", "not_ready"]
    checks: list[RootCheck]


def _check_root(root: WatchedRoot, watcher: ChangeWatcher) -> RootCheck:
    name = f"{root.kind}:{root.path}"
    failed = watcher.failed_roots
    if root.kind in failed:
        return RootCheck(name=name, status="failed", message=failed[root.kind])
    if root in watcher.watched_roots:
        return RootCheck(name=name, status="watching")
    if not root.exists:
        return RootCheck(name=name, status="missing")
    return RootCheck(name=name, status="unwatched")


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe endpoint."""
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    Roots the agent runtime has not created yet do not make the monitor
    unready; a root whose watch failed does.

    Returns:
        200 when ready, 503 otherwise, with per-root checks.
    """
    watcher: ChangeWatcher = request.app.state.watcher
    checks = [_check_root(root, watcher) for root in request.app.state.paths.roots()]
    ok = watcher.is_running and all(c.status != "failed" for c in checks)
    response = ReadinessResponse(status="ready" if ok else "not_ready", checks=checks)
    code = status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=code)
