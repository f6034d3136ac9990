"""Pydantic schemas for snapshot API responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, as the dashboard expects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TeamMember(CamelModel):
    """Roster entry from a team config."""

    agent_id: str | None = None
    name: str | None = None
    agent_type: str | None = None
    model: str | None = None
    color: str | None = None
    joined_at: Any = None
    cwd: str | None = None
    backend_type: str | None = None
    prompt: str | None = None
    tmux_pane_id: str | None = None
    subscriptions: list[Any] = Field(default_factory=list)
    plan_mode_required: bool = False


class TeamDetail(CamelModel):
    """Team config with its roster."""

    name: str | None = None
    description: str | None = None
    created_at: Any = None
    lead_agent_id: str | None = None
    lead_session_id: str | None = None
    members: list[TeamMember] = Field(default_factory=list)


class TeamSummary(TeamDetail):
    """Team entry for list responses."""

    member_count: int = 0


class DebugSessionInfo(CamelModel):
    """Debug log file metadata."""

    session_id: str
    size: int
    modified_at: float = Field(description="Last modification, epoch milliseconds")


class DebugLogTail(CamelModel):
    """Last lines of a debug log."""

    total_lines: int
    lines: list[str]
    truncated: bool


class WatchPathsStatus(CamelModel):
    """Watched roots and whether they exist yet."""

    teams_dir: str
    tasks_dir: str
    debug_dir: str
    teams_exists: bool
    tasks_exists: bool
    debug_exists: bool


class DashboardTeam(TeamSummary):
    """Aggregated per-team dashboard entry."""

    tasks: list[dict[str, Any]] = Field(default_factory=list)
    message_count: int = 0


class StatusResponse(CamelModel):
    """Monitor status summary."""

    status: str = "ok"
    timestamp: int
    paths: WatchPathsStatus
    team_count: int
    teams: list[str | None]
    connections: dict[str, int]
    watched_sessions: list[str]


class AgentMessageRequest(BaseModel):
    """Custom message for an agent inbox."""

    message: dict[str, Any] | str


class AgentControlRequest(BaseModel):
    """Pause, resume or restart request."""

    action: str


class ActionResponse(BaseModel):
    """Result of an agent command."""

    success: bool
    message: str
