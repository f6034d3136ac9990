"""Domain event types for agent state changes."""
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """Kinds of normalized filesystem changes."""

    TEAM_CONFIG_CHANGED = "team-config-changed"
    INBOX_CHANGED = "inbox-changed"
    TASK_CHANGED = "task-changed"
    DEBUG_APPENDED = "debug-appended"
    WATCH_ERROR = "watch-error"


TEMP_FILE_PATTERNS: tuple[str, ...] = (
    ".swp",
    ".swo",
    ".swn",
    ".tmp",
    ".temp",
    "~",
    ".DS_Store",
    ".4913",
)

TASK_LOCK_NAME = ".lock"

DEBUG_LOG_SUFFIX = ".txt"

SYSTEM_CHANNEL = "system"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class TeamConfigChanged(_Event):
    """A team's config.json was rewritten.

    Attributes:
        team_name: Team directory name.
        data: Freshly parsed config.
    """

    kind: Literal[EventKind.TEAM_CONFIG_CHANGED] = EventKind.TEAM_CONFIG_CHANGED
    team_name: str
    data: Any = None


class InboxChanged(_Event):
    """An agent's inbox file was rewritten.

    Attributes:
        team_name: Team directory name.
        agent_name: Inbox file stem.
        data: Freshly parsed inbox.
    """

    kind: Literal[EventKind.INBOX_CHANGED] = EventKind.INBOX_CHANGED
    team_name: str
    agent_name: str
    data: Any = None


class TaskChanged(_Event):
    """A task record was rewritten.

    Attributes:
        team_name: Team directory name under the task root.
        task_id: Task file stem.
        data: Freshly parsed task.
    """

    kind: Literal[EventKind.TASK_CHANGED] = EventKind.TASK_CHANGED
    team_name: str
    task_id: str
    data: Any = None


class DebugAppended(_Event):
    """New lines were appended to a watched debug log.

    Attributes:
        session_id: Log file stem.
        lines: Non-empty lines appended since the previous check, in file order.
    """

    kind: Literal[EventKind.DEBUG_APPENDED] = EventKind.DEBUG_APPENDED
    session_id: str
    lines: tuple[str, ...] = ()


class WatchError(_Event):
    """A root could not be watched.

    Attributes:
        message: Human-readable description.
        error: Underlying error text.
        root: Path of the affected root.
    """

    kind: Literal[EventKind.WATCH_ERROR] = EventKind.WATCH_ERROR
    message: str
    error: str = ""
    root: str | None = None


DomainEvent = Annotated[
    Union[TeamConfigChanged, InboxChanged, TaskChanged, DebugAppended, WatchError],
    Field(discriminator="kind"),
]


class OutboundEvent(BaseModel):
    """Event envelope sent to stream clients.

    Attributes:
        type: Outward event label, e.g. ``team:config``.
        data: Label-specific payload.
        timestamp: Dispatch time in epoch milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    data: dict[str, Any]
    timestamp: int
