"""REST endpoint tests."""

import json

import pytest
from fastapi.testclient import TestClient

from teams_monitor.app import create_app
from teams_monitor.config import Settings
from teams_monitor.paths import WatchPaths


@pytest.fixture
def populated(paths: WatchPaths) -> WatchPaths:
    team = paths.teams.path / "alpha"
    (team / "inboxes").mkdir(parents=True)
    (team / "config.json").write_text(
        json.dumps({"name": "alpha", "members": [{"agentId": "w@alpha", "name": "worker"}]})
    )
    (team / "inboxes" / "worker.json").write_text(json.dumps([{"from": "lead", "text": "hi"}]))
    tasks = paths.tasks.path / "alpha"
    tasks.mkdir()
    (tasks / "1.json").write_text(json.dumps({"id": "1", "subject": "build"}))
    (paths.debug.path / "s1.txt").write_text("\n".join(f"line{n}" for n in range(60)))
    return paths


def test_teams(client: TestClient, populated: WatchPaths) -> None:
    teams = client.get("/api/teams").json()
    assert [(t["name"], t["memberCount"]) for t in teams] == [("alpha", 1)]

    team = client.get("/api/teams/alpha").json()
    assert team["members"][0]["agentId"] == "w@alpha"

    assert client.get("/api/teams/ghost").status_code == 404


def test_tasks(client: TestClient, populated: WatchPaths) -> None:
    assert client.get("/api/teams/alpha/tasks").json() == [{"id": "1", "subject": "build"}]
    assert client.get("/api/teams/alpha/tasks/1").json()["subject"] == "build"
    assert client.get("/api/teams/alpha/tasks/9").status_code == 404


@pytest.mark.parametrize("prefix", ["messages", "inboxes"])
def test_messages(client: TestClient, populated: WatchPaths, prefix: str) -> None:
    assert client.get(f"/api/teams/alpha/{prefix}").json() == {
        "worker": [{"from": "lead", "text": "hi"}]
    }
    assert client.get(f"/api/teams/alpha/{prefix}/worker").json() == [{"from": "lead", "text": "hi"}]
    assert client.get(f"/api/teams/alpha/{prefix}/ghost").json() == []


def test_debug_sessions(client: TestClient, populated: WatchPaths) -> None:
    [session] = client.get("/api/debug/sessions").json()
    assert session["sessionId"] == "s1"

    full = client.get("/api/debug/sessions/s1").json()
    assert (full["totalLines"], len(full["lines"]), full["truncated"]) == (60, 60, False)

    tail = client.get("/api/debug/sessions/s1/tail").json()
    assert len(tail["lines"]) == 50
    assert tail["lines"][-1] == "line59"

    short = client.get("/api/debug/sessions/s1/tail", params={"lines": 3}).json()
    assert short["lines"] == ["line57", "line58", "line59"]

    assert client.get("/api/debug/sessions/ghost").status_code == 404


def test_status(client: TestClient, populated: WatchPaths) -> None:
    body = client.get("/api/status").json()

    assert body["status"] == "ok"
    assert body["teamCount"] == 1
    assert body["teams"] == ["alpha"]
    assert body["paths"]["teamsExists"] is True
    assert body["connections"] == {"ws": 0, "sse": 0}
    assert body["watchedSessions"] == []


def test_dashboard(client: TestClient, populated: WatchPaths) -> None:
    [entry] = client.get("/api/dashboard").json()

    assert entry["name"] == "alpha"
    assert entry["messageCount"] == 1
    assert entry["tasks"][0]["id"] == "1"


def _inbox(paths: WatchPaths) -> list:
    return json.loads((paths.teams.path / "alpha" / "inboxes" / "worker.json").read_text())


def test_send_message(client: TestClient, populated: WatchPaths) -> None:
    response = client.post("/api/teams/alpha/agents/worker/message", json={"message": "status?"})

    assert response.json() == {"success": True, "message": "Message sent to agent"}
    assert _inbox(populated)[-1]["text"] == "status?"


@pytest.mark.parametrize("message", ["", {"summary": "no text"}])
def test_send_message_requires_text(client: TestClient, populated: WatchPaths, message: object) -> None:
    response = client.post("/api/teams/alpha/agents/worker/message", json={"message": message})

    assert response.status_code == 400


def test_send_message_failure(client: TestClient, populated: WatchPaths) -> None:
    response = client.post("/api/teams/ghost/agents/worker/message", json={"message": "x"})

    assert response.status_code == 500


def test_shutdown_and_control(client: TestClient, populated: WatchPaths) -> None:
    assert client.post("/api/teams/alpha/agents/worker/shutdown").status_code == 200
    response = client.post("/api/teams/alpha/agents/worker/control", json={"action": "pause"})
    assert response.json()["message"] == "pause request sent to agent"

    kinds = [json.loads(m["text"])["type"] for m in _inbox(populated)[1:]]
    assert kinds == ["shutdown_request", "control_request"]


def test_control_rejects_unknown_action(client: TestClient, populated: WatchPaths) -> None:
    response = client.post("/api/teams/alpha/agents/worker/control", json={"action": "explode"})

    assert response.status_code == 400


def test_event_stream_refused_when_full(settings: Settings) -> None:
    settings.max_clients = 0

    with TestClient(create_app(settings)) as full_client:
        response = full_client.get("/api/events")

    assert response.status_code == 503
    assert response.json() == {"detail": "Too many stream clients"}
