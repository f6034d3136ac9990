"""Filesystem watcher that turns raw notifications into domain events."""

import json
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from teams_monitor.events.tail import TailTracker
from teams_monitor.events.types import (
    DEBUG_LOG_SUFFIX,
    TASK_LOCK_NAME,
    TEMP_FILE_PATTERNS,
    DebugAppended,
    DomainEvent,
    InboxChanged,
    TaskChanged,
    TeamConfigChanged,
    WatchError,
)
from teams_monitor.paths import RootKind, UnsafePathError, WatchedRoot, WatchPaths, safe_join

logger = structlog.get_logger()

# Opens and close-without-write are produced by our own re-reads.
WRITE_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_TYPE_CREATED,
        EVENT_TYPE_MODIFIED,
        EVENT_TYPE_MOVED,
        EVENT_TYPE_CLOSED,
    }
)


def is_temp_file(path: str) -> bool:
    """Check if path is a temporary file that should be ignored.

    Args:
        path: File path to check.

    Returns:
        True if the file is an editor swap or atomic-write temp file.
    """
    name = Path(path).name
    return any(name.endswith(pattern) for pattern in TEMP_FILE_PATTERNS)


def _decode(path: bytes | str) -> str:
    if isinstance(path, str):
        return path
    return bytes(path).decode("utf-8", errors="replace")


def event_path(event: FileSystemEvent) -> str:
    """Path a notification refers to; the destination for renames."""
    if event.event_type == EVENT_TYPE_MOVED and event.dest_path:
        return _decode(event.dest_path)
    return _decode(event.src_path)


class SettlingHandler(FileSystemEventHandler):
    """Watchdog handler that delays processing until a write settles.

    The first write notification for a path arms a timer; notifications
    arriving while it is armed are coalesced into it. The pending entry is
    cleared before the callback runs, so a write landing during processing
    arms a fresh timer. Callbacks for one handler run one at a time, so a
    later re-read never overtakes an earlier one.

    Attributes:
        settle_ms: Delay between first notification and processing.
    """

    def __init__(
        self,
        callback: Callable[[str], None],
        settle_ms: int = 50,
    ) -> None:
        """Initialize settling handler.

        Args:
            callback: Called on a timer thread with the settled path.
            settle_ms: Delay in milliseconds.
        """
        super().__init__()
        self._callback = callback
        self._settle_ms = settle_ms
        self._pending: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._coalesced_count = 0

    @property
    def coalesced_events(self) -> int:
        """Number of notifications folded into an already-armed timer."""
        return self._coalesced_count

    def _fire(self, path: str) -> None:
        with self._lock:
            if self._pending.pop(path, None) is None:
                return

        try:
            with self._run_lock:
                self._callback(path)
        except Exception as e:
            logger.error("watcher_callback_error", error=str(e), path=path)

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Arm or coalesce a settle timer for a write notification.

        Args:
            event: Raw watchdog filesystem event.
        """
        if event.is_directory or event.event_type not in WRITE_EVENT_TYPES:
            return

        path = event_path(event)
        if is_temp_file(path):
            return

        with self._lock:
            if path in self._pending:
                self._coalesced_count += 1
                return
            timer = threading.Timer(
                self._settle_ms / 1000.0,
                self._fire,
                args=(path,),
            )
            timer.daemon = True
            self._pending[path] = timer
            timer.start()

    def cancel_all(self) -> None:
        """Cancel all pending timers during shutdown."""
        with self._lock:
            for timer in self._pending.values():
                timer.cancel()
            self._pending.clear()


class ChangeWatcher:
    """Watches the team, task and debug roots and emits domain events.

    Events are handed to ``sink`` from watchdog and timer threads; the sink
    must be thread-safe.
    """

    def __init__(
        self,
        paths: WatchPaths,
        sink: Callable[[DomainEvent], None],
        tail: TailTracker,
        settle_ms: int = 50,
    ) -> None:
        """Initialize change watcher.

        Args:
            paths: Resolved roots.
            sink: Receives every emitted domain event.
            tail: Debug log offsets.
            settle_ms: Delay between a notification and the re-read.
        """
        self._paths = paths
        self._sink = sink
        self._tail = tail
        self._settle_ms = settle_ms
        self._handlers: dict[RootKind, SettlingHandler] = {}
        self._watched: list[WatchedRoot] = []
        self._failed: dict[RootKind, str] = {}
        self._observer: Observer | None = None  # pyright: ignore[reportInvalidTypeForm]
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    @property
    def watched_roots(self) -> list[WatchedRoot]:
        """Roots with an active watch."""
        with self._lock:
            return list(self._watched)

    @property
    def failed_roots(self) -> dict[RootKind, str]:
        """Roots whose watch could not be set up, with the error text."""
        with self._lock:
            return dict(self._failed)

    @property
    def coalesced_events(self) -> int:
        return sum(h.coalesced_events for h in self._handlers.values())

    @property
    def tail(self) -> TailTracker:
        return self._tail

    def start(self) -> None:
        """Start watching every root that exists.

        Missing roots are skipped. A root whose watch cannot be set up is
        reported through a watch-error event; the others keep working.
        """
        with self._lock:
            if self._observer is not None:
                return
            observer = Observer()
            observer.start()
            self._observer = observer

        for root in self._paths.roots():
            if not root.exists:
                logger.info("watch_root_missing", root=root.kind, path=str(root.path))
                continue

            handler = SettlingHandler(
                lambda path, kind=root.kind: self.process_change(kind, path),
                settle_ms=self._settle_ms,
            )
            try:
                observer.schedule(handler, str(root.path), recursive=True)
            except OSError as e:
                logger.warning(
                    "watch_root_failed",
                    root=root.kind,
                    path=str(root.path),
                    error=str(e),
                )
                with self._lock:
                    self._failed[root.kind] = str(e)
                self._emit(
                    WatchError(
                        message=f"Failed to watch {root.path}",
                        error=str(e),
                        root=str(root.path),
                    )
                )
                continue

            with self._lock:
                self._handlers[root.kind] = handler
                self._watched.append(root)
            logger.info("watcher_scheduled", root=root.kind, path=str(root.path))

        logger.info("watcher_started", roots=[str(r.path) for r in self.watched_roots])

    def stop(self) -> None:
        """Release the observer and forget debug sessions; idempotent."""
        with self._lock:
            observer = self._observer
            handlers = list(self._handlers.values())
            self._observer = None
            self._handlers = {}
            self._watched = []
            self._failed = {}

        for handler in handlers:
            handler.cancel_all()

        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            logger.info("watcher_stopped")

        self._tail.clear()

    def watch_debug_session(self, session_id: str) -> bool:
        """Start emitting appended lines for a debug session.

        Args:
            session_id: Log file stem.

        Returns:
            False if the id is not a plain file name.
        """
        try:
            safe_join(self._paths.debug.path, session_id)
        except UnsafePathError:
            logger.warning("debug_session_rejected", session_id=session_id)
            return False
        self._tail.watch(session_id)
        return True

    def unwatch_debug_session(self, session_id: str) -> None:
        """Stop all I/O for a debug session."""
        self._tail.unwatch(session_id)

    def process_change(self, kind: RootKind, path: str) -> None:
        """Classify a settled path and emit the matching event.

        Args:
            kind: Root the notification came from.
            path: Absolute path of the changed file.
        """
        root = getattr(self._paths, kind)
        try:
            parts = Path(path).relative_to(root.path).parts
        except ValueError:
            return

        if kind == "teams":
            self._on_team_change(parts, Path(path))
        elif kind == "tasks":
            self._on_task_change(parts, Path(path))
        else:
            self._on_debug_change(parts)

    def _on_team_change(self, parts: tuple[str, ...], path: Path) -> None:
        if len(parts) == 2 and parts[1] == "config.json":
            team_name = parts[0]
            self._reread(path, lambda data: TeamConfigChanged(team_name=team_name, data=data))
        elif len(parts) == 3 and parts[1] == "inboxes" and parts[2].endswith(".json"):
            team_name = parts[0]
            agent_name = parts[2][: -len(".json")]
            if not agent_name:
                return
            self._reread(
                path,
                lambda data: InboxChanged(team_name=team_name, agent_name=agent_name, data=data),
            )

    def _on_task_change(self, parts: tuple[str, ...], path: Path) -> None:
        if len(parts) != 2 or not parts[1].endswith(".json"):
            return
        task_id = parts[1][: -len(".json")]
        if not task_id or parts[1] == TASK_LOCK_NAME or task_id == TASK_LOCK_NAME:
            return
        team_name = parts[0]
        self._reread(path, lambda data: TaskChanged(team_name=team_name, task_id=task_id, data=data))

    def _on_debug_change(self, parts: tuple[str, ...]) -> None:
        if len(parts) != 1 or not parts[0].endswith(DEBUG_LOG_SUFFIX):
            return
        session_id = parts[0][: -len(DEBUG_LOG_SUFFIX)]
        if not session_id:
            return

        self._tail.discover(session_id)
        self._tail.poll(
            session_id,
            on_lines=lambda lines: self._emit(
                DebugAppended(session_id=session_id, lines=tuple(lines))
            ),
        )

    def _reread(self, path: Path, build: Callable[[Any], DomainEvent]) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            # mid-write or removed; the next notification retries
            logger.debug("reread_skipped", path=str(path), error=str(e))
            return
        self._emit(build(data))

    def _emit(self, event: DomainEvent) -> None:
        logger.debug("watcher_emit", kind=event.kind.value)
        self._sink(event)
