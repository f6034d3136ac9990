"""Team, task, inbox and agent command endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from teams_monitor.services.agent_control import CONTROL_ACTIONS, AgentController
from teams_monitor.snapshots import (
    ActionResponse,
    AgentControlRequest,
    AgentMessageRequest,
    SnapshotReader,
    TeamDetail,
    TeamSummary,
)

router = APIRouter(prefix="/teams", tags=["teams"])


def _reader(request: Request) -> SnapshotReader:
    return request.app.state.reader


def _controller(request: Request) -> AgentController:
    return request.app.state.agent_controller


@router.get("", response_model=list[TeamSummary])
async def list_teams(request: Request) -> list[TeamSummary]:
    """List every team with a readable config."""
    return _reader(request).list_teams()


@router.get("/{team_name}", response_model=TeamDetail)
async def get_team(team_name: str, request: Request) -> TeamDetail:
    """Get a team's roster and lead identifiers.

    Raises:
        HTTPException: 404 if the team config does not exist or is unreadable.
    """
    team = _reader(request).get_team(team_name)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


@router.get("/{team_name}/tasks")
async def list_tasks(team_name: str, request: Request) -> list[dict[str, Any]]:
    return _reader(request).list_tasks(team_name)


@router.get("/{team_name}/tasks/{task_id}")
async def get_task(team_name: str, task_id: str, request: Request) -> Any:
    task = _reader(request).get_task(team_name, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


# /inboxes is kept as an alias of /messages for older dashboards
@router.get("/{team_name}/messages")
@router.get("/{team_name}/inboxes")
async def list_messages(team_name: str, request: Request) -> dict[str, list[Any]]:
    return _reader(request).list_inboxes(team_name)


@router.get("/{team_name}/messages/{agent_name}")
@router.get("/{team_name}/inboxes/{agent_name}")
async def get_agent_messages(team_name: str, agent_name: str, request: Request) -> list[Any]:
    return _reader(request).get_inbox(team_name, agent_name)


@router.post("/{team_name}/agents/{agent_name}/message", response_model=ActionResponse)
async def send_agent_message(
    team_name: str,
    agent_name: str,
    body: AgentMessageRequest,
    request: Request,
) -> ActionResponse:
    """Append a custom message to an agent's inbox.

    A plain string body is wrapped as ``{"text": ...}``.

    Raises:
        HTTPException: 400 if the message is empty, 500 if the write failed.
    """
    message = body.message if isinstance(body.message, dict) else {"text": body.message}
    if not message or message.get("text") in (None, ""):
        raise HTTPException(status_code=400, detail="Message is required")

    if not _controller(request).send_message(team_name, agent_name, message):
        raise HTTPException(status_code=500, detail="Failed to send message")
    return ActionResponse(success=True, message="Message sent to agent")


@router.post("/{team_name}/agents/{agent_name}/shutdown", response_model=ActionResponse)
async def shutdown_agent(team_name: str, agent_name: str, request: Request) -> ActionResponse:
    """Send a shutdown request to an agent.

    Raises:
        HTTPException: 500 if the write failed.
    """
    if not _controller(request).shutdown_agent(team_name, agent_name):
        raise HTTPException(status_code=500, detail="Failed to send shutdown request")
    return ActionResponse(success=True, message="Shutdown request sent to agent")


@router.post("/{team_name}/agents/{agent_name}/control", response_model=ActionResponse)
async def control_agent(
    team_name: str,
    agent_name: str,
    body: AgentControlRequest,
    request: Request,
) -> ActionResponse:
    """Send a pause, resume or restart request to an agent.

    Raises:
        HTTPException: 400 for an unknown action, 500 if the write failed.
    """
    if body.action not in CONTROL_ACTIONS:
        raise HTTPException(
            status_code=400,
            detail="Invalid action. Must be pause, resume, or restart",
        )

    if not _controller(request).control_agent(team_name, agent_name, body.action):  # type: ignore[arg-type]
        raise HTTPException(status_code=500, detail=f"Failed to send {body.action} request")
    return ActionResponse(success=True, message=f"{body.action} request sent to agent")
