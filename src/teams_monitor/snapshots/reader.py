"""On-demand readers for team, task, inbox and debug log state."""

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from teams_monitor.paths import UnsafePathError, WatchPaths, safe_join
from teams_monitor.snapshots.schemas import (
    DashboardTeam,
    DebugLogTail,
    DebugSessionInfo,
    TeamDetail,
    TeamMember,
    TeamSummary,
    WatchPathsStatus,
)

logger = structlog.get_logger()


def read_json(path: Path) -> Any | None:
    """Read a JSON file, returning None when missing or mid-write."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.debug("snapshot_read_skipped", file=str(path), error=str(e))
        return None


def _task_sort_key(task: dict[str, Any]) -> tuple[int, float, str]:
    raw = str(task.get("id"))
    try:
        return (0, float(raw), raw)
    except ValueError:
        return (1, 0.0, raw)


def _parse_members(config: dict[str, Any]) -> list[TeamMember]:
    members: list[TeamMember] = []
    for raw in config.get("members") or []:
        if not isinstance(raw, dict):
            continue
        try:
            members.append(TeamMember.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "team_member_invalid",
                team=config.get("name"),
                errors=e.error_count(),
            )
    return members


def _parse_team(config: Any) -> TeamDetail | None:
    if not isinstance(config, dict):
        return None
    try:
        return TeamDetail.model_validate({**config, "members": _parse_members(config)})
    except ValidationError as e:
        logger.warning("team_config_invalid", team=config.get("name"), errors=e.error_count())
        return None


class SnapshotReader:
    """Reads the current agent runtime state from disk.

    Every lookup returns None (or an empty collection) for state that does
    not exist or cannot be parsed right now.
    """

    def __init__(self, paths: WatchPaths) -> None:
        self._paths = paths

    @property
    def paths(self) -> WatchPaths:
        return self._paths

    def watch_paths(self) -> WatchPathsStatus:
        return WatchPathsStatus(
            teams_dir=str(self._paths.teams.path),
            tasks_dir=str(self._paths.tasks.path),
            debug_dir=str(self._paths.debug.path),
            teams_exists=self._paths.teams.exists,
            tasks_exists=self._paths.tasks.exists,
            debug_exists=self._paths.debug.exists,
        )

    def list_teams(self) -> list[TeamSummary]:
        """List every team whose config parses.

        Returns:
            Team summaries in directory-name order.
        """
        root = self._paths.teams.path
        if not root.is_dir():
            return []

        teams: list[TeamSummary] = []
        for entry in sorted(root.iterdir()):
            if not entry.is_dir():
                continue
            team = _parse_team(read_json(entry / "config.json"))
            if team is None:
                continue
            teams.append(
                TeamSummary(**team.model_dump(), member_count=len(team.members))
            )
        return teams

    def get_team(self, team_name: str) -> TeamDetail | None:
        """Get one team's config and roster."""
        try:
            path = safe_join(self._paths.teams.path, team_name, "config.json")
        except UnsafePathError:
            return None
        return _parse_team(read_json(path))

    def list_tasks(self, team_name: str) -> list[dict[str, Any]]:
        """List a team's tasks sorted by id.

        Numeric ids sort numerically and come first. Files without an
        ``id`` are skipped.
        """
        try:
            tasks_dir = safe_join(self._paths.tasks.path, team_name)
        except UnsafePathError:
            return []
        if not tasks_dir.is_dir():
            return []

        tasks: list[dict[str, Any]] = []
        for entry in tasks_dir.iterdir():
            if entry.suffix != ".json":
                continue
            task = read_json(entry)
            if not isinstance(task, dict) or not task.get("id"):
                continue
            tasks.append(task)

        tasks.sort(key=_task_sort_key)
        return tasks

    def get_task(self, team_name: str, task_id: str) -> Any | None:
        try:
            path = safe_join(self._paths.tasks.path, team_name, f"{task_id}.json")
        except UnsafePathError:
            return None
        return read_json(path)

    def get_inbox(self, team_name: str, agent_name: str) -> list[Any]:
        """Get an agent's inbox messages; empty when there is no inbox."""
        try:
            path = safe_join(
                self._paths.teams.path, team_name, "inboxes", f"{agent_name}.json"
            )
        except UnsafePathError:
            return []
        inbox = read_json(path)
        return inbox if isinstance(inbox, list) else []

    def list_inboxes(self, team_name: str) -> dict[str, list[Any]]:
        """Map each agent with an inbox file to its messages."""
        try:
            inbox_dir = safe_join(self._paths.teams.path, team_name, "inboxes")
        except UnsafePathError:
            return {}
        if not inbox_dir.is_dir():
            return {}

        inboxes: dict[str, list[Any]] = {}
        for entry in sorted(inbox_dir.iterdir()):
            if entry.suffix != ".json":
                continue
            inbox = read_json(entry)
            inboxes[entry.stem] = inbox if isinstance(inbox, list) else []
        return inboxes

    def list_debug_sessions(self) -> list[DebugSessionInfo]:
        """List debug logs, most recently modified first."""
        root = self._paths.debug.path
        if not root.is_dir():
            return []

        sessions: list[DebugSessionInfo] = []
        for entry in root.iterdir():
            if entry.suffix != ".txt":
                continue
            try:
                stat = entry.stat()
            except OSError:
                continue
            sessions.append(
                DebugSessionInfo(
                    session_id=entry.stem,
                    size=stat.st_size,
                    modified_at=stat.st_mtime * 1000,
                )
            )

        sessions.sort(key=lambda s: s.modified_at, reverse=True)
        return sessions

    def get_debug_log(self, session_id: str, tail_lines: int = 200) -> DebugLogTail | None:
        """Get the last ``tail_lines`` lines of a debug log.

        Args:
            session_id: Log file stem.
            tail_lines: Maximum lines to return.

        Returns:
            Tail with total line count, or None if the log does not exist.
        """
        try:
            path = safe_join(self._paths.debug.path, f"{session_id}.txt")
        except UnsafePathError:
            return None

        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

        lines = content.split("\n")
        start = max(0, len(lines) - max(tail_lines, 0))
        return DebugLogTail(
            total_lines=len(lines),
            lines=lines[start:],
            truncated=start > 0,
        )

    def dashboard(self) -> list[DashboardTeam]:
        """Aggregate roster, tasks and message counts for every team."""
        entries: list[DashboardTeam] = []
        for team in self.list_teams():
            name = team.name or ""
            inboxes = self.list_inboxes(name) if name else {}
            entries.append(
                DashboardTeam(
                    **team.model_dump(),
                    tasks=self.list_tasks(name) if name else [],
                    message_count=sum(len(msgs) for msgs in inboxes.values()),
                )
            )
        return entries
