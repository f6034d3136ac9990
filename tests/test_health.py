"""Health endpoint tests."""

import shutil
from pathlib import Path

from fastapi.testclient import TestClient

from teams_monitor.app import create_app
from teams_monitor.config import Settings


def test_liveness_returns_200(client: TestClient) -> None:
    """Liveness endpoint returns 200 OK."""
    response = client.get("/api/health/live")
    assert response.status_code == 200


def test_liveness_returns_status(client: TestClient) -> None:
    """Liveness endpoint returns alive status."""
    response = client.get("/api/health/live")
    data = response.json()
    assert "status" in data
    assert data["status"] == "alive"


def test_readiness_reports_watched_roots(client: TestClient) -> None:
    """All three existing roots are watched."""
    response = client.get("/api/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert [c["status"] for c in data["checks"]] == ["watching"] * 3


def test_readiness_tolerates_missing_roots(claude_dir: Path, settings: Settings) -> None:
    """A root the runtime has not created yet is not a failure."""
    shutil.rmtree(claude_dir / "debug")
    with TestClient(create_app(settings)) as client:
        response = client.get("/api/health/ready")

    assert response.status_code == 200
    statuses = {c["name"].split(":", 1)[0]: c["status"] for c in response.json()["checks"]}
    assert statuses == {"teams": "watching", "tasks": "watching", "debug": "missing"}
