"""Agent inbox command tests."""

import json
from pathlib import Path

import pytest

from teams_monitor.services.agent_control import AgentController


@pytest.fixture
def teams_dir(tmp_path: Path) -> Path:
    root = tmp_path / "teams"
    (root / "alpha" / "inboxes").mkdir(parents=True)
    return root


@pytest.fixture
def controller(teams_dir: Path) -> AgentController:
    return AgentController(teams_dir)


def _inbox(teams_dir: Path, agent: str) -> list:
    return json.loads((teams_dir / "alpha" / "inboxes" / f"{agent}.json").read_text())


def test_send_message_creates_inbox_with_defaults(controller: AgentController, teams_dir: Path) -> None:
    assert controller.send_message("alpha", "worker", {"text": "hello"})

    [entry] = _inbox(teams_dir, "worker")
    assert entry["from"] == "dashboard"
    assert entry["text"] == "hello"
    assert entry["read"] is False
    assert entry["timestamp"].endswith("Z")


def test_send_message_appends_and_caller_fields_win(controller: AgentController, teams_dir: Path) -> None:
    inbox = teams_dir / "alpha" / "inboxes" / "worker.json"
    inbox.write_text(json.dumps([{"from": "lead", "text": "first"}]))

    controller.send_message("alpha", "worker", {"text": "second", "from": "ops", "color": "blue"})

    messages = _inbox(teams_dir, "worker")
    assert [m["text"] for m in messages] == ["first", "second"]
    assert messages[1]["from"] == "ops"
    assert messages[1]["color"] == "blue"
    assert not list(inbox.parent.glob("*.tmp"))


def test_structured_text_is_json_encoded(controller: AgentController, teams_dir: Path) -> None:
    controller.send_message("alpha", "worker", {"text": {"type": "note", "n": 1}})

    [entry] = _inbox(teams_dir, "worker")
    assert json.loads(entry["text"]) == {"type": "note", "n": 1}


def test_send_message_rejects_unsafe_names(controller: AgentController, teams_dir: Path) -> None:
    assert not controller.send_message("alpha", "../escape", {"text": "x"})
    assert not controller.send_message("..", "worker", {"text": "x"})


def test_send_message_refuses_non_list_inbox(controller: AgentController, teams_dir: Path) -> None:
    inbox = teams_dir / "alpha" / "inboxes" / "worker.json"
    inbox.write_text('{"oops": true}')

    assert not controller.send_message("alpha", "worker", {"text": "x"})
    assert json.loads(inbox.read_text()) == {"oops": True}


def test_send_message_fails_without_team(controller: AgentController) -> None:
    assert not controller.send_message("ghost", "worker", {"text": "x"})


def test_shutdown_request(controller: AgentController, teams_dir: Path) -> None:
    assert controller.shutdown_agent("alpha", "worker")

    payload = json.loads(_inbox(teams_dir, "worker")[0]["text"])
    assert payload["type"] == "shutdown_request"
    assert payload["requestId"].endswith("@worker")


@pytest.mark.parametrize("action", ["pause", "resume", "restart"])
def test_control_request(controller: AgentController, teams_dir: Path, action: str) -> None:
    assert controller.control_agent("alpha", "worker", action)  # type: ignore[arg-type]

    payload = json.loads(_inbox(teams_dir, "worker")[0]["text"])
    assert payload["type"] == "control_request"
    assert payload["action"] == action


def test_control_rejects_unknown_action(controller: AgentController) -> None:
    with pytest.raises(ValueError, match="Invalid action"):
        controller.control_agent("alpha", "worker", "explode")  # type: ignore[arg-type]
