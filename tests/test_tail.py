"""Debug log tail tracker tests."""

from pathlib import Path

import pytest

from teams_monitor.events.tail import TailTracker, split_lines


@pytest.fixture
def debug_dir(tmp_path: Path) -> Path:
    path = tmp_path / "debug"
    path.mkdir()
    return path


def _append(path: Path, text: str) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(text)


def test_split_lines_drops_empty_lines() -> None:
    """Blank lines and trailing fragments are removed."""
    assert split_lines("a\n\nb\r\nc\n") == ["a", "b", "c"]
    assert split_lines("\n\n") == []


def test_watch_baselines_at_current_size(debug_dir: Path) -> None:
    """Content present before watching is never reported."""
    log = debug_dir / "s1.txt"
    log.write_text("old line\n")
    tracker = TailTracker(debug_dir)

    session = tracker.watch("s1")

    assert session.interested
    assert session.offset == log.stat().st_size
    assert tracker.poll("s1") == []


def test_poll_returns_exact_appended_range(debug_dir: Path) -> None:
    """Only bytes after the last offset are decoded and split."""
    log = debug_dir / "s1.txt"
    log.write_text("first\n")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")

    _append(log, "line1\nline2\n")

    assert tracker.poll("s1") == ["line1", "line2"]
    assert tracker.get("s1").offset == log.stat().st_size


def test_poll_is_idempotent_without_growth(debug_dir: Path) -> None:
    """A second poll with no new bytes returns nothing."""
    log = debug_dir / "s1.txt"
    log.write_text("")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")
    _append(log, "hello\n")

    assert tracker.poll("s1") == ["hello"]
    assert tracker.poll("s1") == []


def test_partial_line_is_reported_as_written(debug_dir: Path) -> None:
    """Bytes are consumed as they arrive, even without a trailing newline."""
    log = debug_dir / "s1.txt"
    log.write_text("")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")

    _append(log, "par")
    assert tracker.poll("s1") == ["par"]
    _append(log, "tial\nnext\n")
    assert tracker.poll("s1") == ["tial", "next"]


def test_whitespace_only_growth_advances_offset(debug_dir: Path) -> None:
    """Newline-only appends return an empty list but are consumed."""
    log = debug_dir / "s1.txt"
    log.write_text("")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")

    _append(log, "\n\n\n")

    assert tracker.poll("s1") == []
    assert tracker.get("s1").offset == 3


def test_truncation_is_treated_as_no_growth(debug_dir: Path) -> None:
    """A shrinking file yields nothing and keeps the old offset."""
    log = debug_dir / "s1.txt"
    log.write_text("0123456789\n")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")

    log.write_text("short\n")

    assert tracker.poll("s1") == []
    assert tracker.get("s1").offset == 11


def test_missing_log_baselines_at_zero(debug_dir: Path) -> None:
    """A session watched before its log exists reports its first content."""
    tracker = TailTracker(debug_dir)
    tracker.watch("later")
    assert tracker.get("later").offset == 0

    (debug_dir / "later.txt").write_text("boot\n")

    assert tracker.poll("later") == ["boot"]


def test_read_error_leaves_offset_unchanged(debug_dir: Path) -> None:
    """A vanished file is swallowed and the next read recovers the delta."""
    log = debug_dir / "s1.txt"
    log.write_text("abc\n")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")

    log.unlink()
    assert tracker.poll("s1") == []
    assert tracker.get("s1").offset == 4

    log.write_text("abc\nnew\n")
    assert tracker.poll("s1") == ["new"]


def test_known_session_performs_no_io(debug_dir: Path) -> None:
    """Discovered but uninterested sessions never read their log."""
    log = debug_dir / "s1.txt"
    log.write_text("content\n")
    tracker = TailTracker(debug_dir)

    session = tracker.discover("s1")

    assert not session.interested
    assert tracker.poll("s1") == []
    assert session.offset == 0


def test_watch_is_idempotent(debug_dir: Path) -> None:
    """Watching twice does not move the baseline forward."""
    log = debug_dir / "s1.txt"
    log.write_text("")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")
    _append(log, "pending\n")

    tracker.watch("s1")

    assert tracker.poll("s1") == ["pending"]


def test_unwatch_forgets_session(debug_dir: Path) -> None:
    """After unwatching, growth is no longer read."""
    log = debug_dir / "s1.txt"
    log.write_text("")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")

    assert tracker.unwatch("s1")
    _append(log, "ignored\n")

    assert tracker.poll("s1") == []
    assert tracker.get("s1") is None
    assert not tracker.unwatch("s1")


def test_on_lines_receives_each_delta_in_order(debug_dir: Path) -> None:
    """The callback sees successive deltas in file order."""
    log = debug_dir / "s1.txt"
    log.write_text("")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")
    seen: list[list[str]] = []

    _append(log, "a\n")
    tracker.poll("s1", on_lines=seen.append)
    _append(log, "\n")
    tracker.poll("s1", on_lines=seen.append)
    _append(log, "b\nc\n")
    tracker.poll("s1", on_lines=seen.append)

    assert seen == [["a"], ["b", "c"]]


def test_invalid_utf8_is_replaced(debug_dir: Path) -> None:
    """Undecodable bytes do not break the tail."""
    log = debug_dir / "s1.txt"
    log.write_bytes(b"")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")

    with log.open("ab") as f:
        f.write(b"ok \xff\n")

    assert tracker.poll("s1") == ["ok �"]


def test_character_split_across_appends_is_reassembled(debug_dir: Path) -> None:
    """A multi-byte character flushed in two writes decodes once whole."""
    log = debug_dir / "s1.txt"
    log.write_bytes(b"")
    tracker = TailTracker(debug_dir)
    tracker.watch("s1")
    data = "café ok\n".encode()

    with log.open("ab") as f:
        f.write(data[:4])
    first = tracker.poll("s1")
    with log.open("ab") as f:
        f.write(data[4:])
    second = tracker.poll("s1")

    assert first == ["caf"]
    assert second == ["é ok"]
    assert tracker.get("s1").offset == len(data)
