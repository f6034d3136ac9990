"""Pytest configuration and fixtures."""

import sys
import time
from collections.abc import Callable, Iterator
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from teams_monitor.app import create_app
from teams_monitor.config import Settings
from teams_monitor.paths import WatchPaths


@pytest.fixture
def claude_dir(tmp_path: Path) -> Path:
    """Create an empty agent runtime state tree."""
    root = tmp_path / ".claude"
    for name in ("teams", "tasks", "debug"):
        (root / name).mkdir(parents=True)
    return root


@pytest.fixture
def settings(claude_dir: Path) -> Settings:
    """Create test settings pointing at the temporary state tree."""
    return Settings(
        host="127.0.0.1",
        port=3001,
        debug=True,
        claude_dir=claude_dir,
        settle_ms=20,
    )


@pytest.fixture
def paths(settings: Settings) -> WatchPaths:
    return WatchPaths.from_settings(settings)


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """Create test client with the lifespan (watcher, broadcaster) running."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def wait_until() -> Callable[..., bool]:
    """Poll a predicate until it holds or the timeout expires."""

    def _wait(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.02)
        return predicate()

    return _wait
