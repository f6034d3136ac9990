"""Watched root resolution and safe path joining."""
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from teams_monitor.config import Settings

RootKind = Literal["teams", "tasks", "debug"]

ROOT_KINDS: tuple[RootKind, ...] = ("teams", "tasks", "debug")


class UnsafePathError(Exception):
    """Raised when a caller-supplied name would escape its root."""

    def __init__(self, message: str, name: str) -> None:
        """Initialize unsafe path error.

        Args:
            message: Error description.
            name: The offending name.
        """
        super().__init__(message)
        self.name = name


@dataclass(frozen=True)
class WatchedRoot:
    """One of the three top-level state directories.

    Existence is checked on access because the agent runtime creates its
    directories lazily, possibly after the monitor has started.
    """

    kind: RootKind
    path: Path

    @property
    def exists(self) -> bool:
        return self.path.is_dir()


@dataclass(frozen=True)
class WatchPaths:
    """Resolved team, task and debug roots."""

    teams: WatchedRoot
    tasks: WatchedRoot
    debug: WatchedRoot

    @classmethod
    def from_settings(cls, settings: Settings) -> "WatchPaths":
        """Resolve roots once from configuration.

        Args:
            settings: Monitor configuration.

        Returns:
            Absolute roots for the three state directories.
        """
        return cls(
            teams=WatchedRoot("teams", settings.teams_dir.expanduser().resolve()),
            tasks=WatchedRoot("tasks", settings.tasks_dir.expanduser().resolve()),
            debug=WatchedRoot("debug", settings.debug_dir.expanduser().resolve()),
        )

    def roots(self) -> list[WatchedRoot]:
        return [self.teams, self.tasks, self.debug]


def safe_join(root: Path, *names: str) -> Path:
    """Join caller-supplied path segments onto a root.

    Every segment must be a single plain name: team names, agent names,
    task ids and session ids never contain separators.

    Args:
        root: Directory the result must stay inside.
        *names: Path segments to append.

    Returns:
        Joined path under root.

    Raises:
        UnsafePathError: If a segment is empty, contains a null byte or
            separator, or is a relative directory reference.
    """
    for name in names:
        if not name or "\0" in name:
            raise UnsafePathError("Empty name or null byte", name)
        if "/" in name or "\\" in name:
            raise UnsafePathError("Name contains a path separator", name)
        if name in (".", ".."):
            raise UnsafePathError("Name is a directory reference", name)
    return root.joinpath(*names)
