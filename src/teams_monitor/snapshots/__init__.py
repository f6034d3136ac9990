"""Snapshot readers for agent runtime state files."""

from teams_monitor.snapshots.reader import SnapshotReader, read_json
from teams_monitor.snapshots.schemas import (
    ActionResponse,
    AgentControlRequest,
    AgentMessageRequest,
    DashboardTeam,
    DebugLogTail,
    DebugSessionInfo,
    StatusResponse,
    TeamDetail,
    TeamMember,
    TeamSummary,
    WatchPathsStatus,
)

__all__ = [
    "ActionResponse",
    "AgentControlRequest",
    "AgentMessageRequest",
    "DashboardTeam",
    "DebugLogTail",
    "DebugSessionInfo",
    "SnapshotReader",
    "StatusResponse",
    "TeamDetail",
    "TeamMember",
    "TeamSummary",
    "WatchPathsStatus",
    "read_json",
]
