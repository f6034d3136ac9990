"""Incremental reader for growing debug logs."""

import codecs
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

logger = structlog.get_logger()


def split_lines(text: str) -> list[str]:
    """Split text on line breaks, dropping empty lines."""
    return [line for line in text.splitlines() if line]


def _utf8_decoder() -> codecs.IncrementalDecoder:
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


@dataclass
class DebugSession:
    """Tail state for one debug log.

    Attributes:
        session_id: Log file stem.
        path: Absolute path of the log file.
        offset: Byte length already reported.
        interested: Whether any client wants updates.
        decoder: Carries a multi-byte character split across two polls.
    """

    session_id: str
    path: Path
    offset: int = 0
    interested: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    decoder: codecs.IncrementalDecoder = field(default_factory=_utf8_decoder, repr=False)


class TailTracker:
    """Per-session byte offsets for append-only debug logs.

    Sessions are either known (seen in the debug root, no I/O performed) or
    interested (offset tracked, appended lines extracted on each poll).
    """

    def __init__(self, debug_dir: Path) -> None:
        """Initialize tail tracker.

        Args:
            debug_dir: Directory holding ``<session>.txt`` logs.
        """
        self._debug_dir = debug_dir
        self._sessions: dict[str, DebugSession] = {}
        self._lock = threading.Lock()

    def log_path(self, session_id: str) -> Path:
        return self._debug_dir / f"{session_id}.txt"

    def get(self, session_id: str) -> DebugSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def sessions(self) -> list[DebugSession]:
        """Snapshot of all tracked sessions, sorted by id."""
        with self._lock:
            return sorted(self._sessions.values(), key=lambda s: s.session_id)

    def is_interested(self, session_id: str) -> bool:
        session = self.get(session_id)
        return session is not None and session.interested

    def discover(self, session_id: str) -> DebugSession:
        """Register a log file as known without reading it.

        Args:
            session_id: Log file stem.

        Returns:
            The existing or newly created session.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = DebugSession(session_id, self.log_path(session_id))
                self._sessions[session_id] = session
                logger.debug("debug_session_discovered", session_id=session_id)
            return session

    def watch(self, session_id: str) -> DebugSession:
        """Mark a session interested and baseline its offset.

        The baseline is the file's current size, so only content appended
        after this call is reported. A log that does not exist yet gets a
        zero baseline. Calling again on an interested session is a no-op.

        Args:
            session_id: Log file stem.

        Returns:
            The interested session.
        """
        session = self.discover(session_id)
        with session.lock:
            if session.interested:
                return session
            try:
                session.offset = session.path.stat().st_size
            except FileNotFoundError:
                session.offset = 0
            except OSError as e:
                logger.warning(
                    "debug_session_stat_error",
                    session_id=session_id,
                    error=str(e),
                )
                session.offset = 0
            session.decoder.reset()
            session.interested = True

        logger.info("debug_session_watched", session_id=session_id, offset=session.offset)
        return session

    def unwatch(self, session_id: str) -> bool:
        """Forget a session entirely.

        Args:
            session_id: Log file stem.

        Returns:
            True if the session was tracked.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        with session.lock:
            session.interested = False
        logger.info("debug_session_unwatched", session_id=session_id)
        return True

    def poll(
        self,
        session_id: str,
        on_lines: Callable[[list[str]], None] | None = None,
    ) -> list[str]:
        """Read lines appended since the previous poll.

        ``on_lines`` runs while the session lock is held, so successive
        deltas for one session are handed on in file order.

        Args:
            session_id: Log file stem.
            on_lines: Called with the new lines when there are any.

        Returns:
            New non-empty lines; empty if the session is not interested,
            the file did not grow, or the read failed.
        """
        session = self.get(session_id)
        if session is None:
            return []

        with session.lock:
            if not session.interested:
                return []

            try:
                with session.path.open("rb") as f:
                    size = f.seek(0, 2)
                    if size <= session.offset:
                        return []
                    f.seek(session.offset)
                    chunk = f.read(size - session.offset)
            except OSError as e:
                logger.debug("debug_tail_read_error", session_id=session_id, error=str(e))
                return []

            session.offset += len(chunk)
            lines = split_lines(session.decoder.decode(chunk))
            if lines and on_lines is not None:
                on_lines(lines)
            return lines

    def clear(self) -> None:
        """Forget every session."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            with session.lock:
                session.interested = False
