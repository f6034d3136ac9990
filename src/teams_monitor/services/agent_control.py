"""Dashboard-to-agent commands delivered through inbox files.

The agent runtime polls each agent's ``inboxes/<agent>.json`` array, so a
command is just another message appended to it. Writes go through a temp
file and a rename so neither the runtime nor our own watcher ever reads a
half-written inbox.
"""

import json
import os
import tempfile
import threading
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import structlog

from teams_monitor.paths import UnsafePathError, safe_join

logger = structlog.get_logger()

ControlAction = Literal["pause", "resume", "restart"]

CONTROL_ACTIONS: frozenset[str] = frozenset({"pause", "resume", "restart"})

SENDER = "dashboard"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class AgentController:
    """Appends command messages to agent inboxes.

    Attributes:
        teams_dir: Team state root holding ``<team>/inboxes``.
    """

    def __init__(self, teams_dir: Path) -> None:
        self._teams_dir = teams_dir
        self._lock = threading.Lock()

    def inbox_path(self, team_name: str, agent_name: str) -> Path:
        return safe_join(self._teams_dir, team_name, "inboxes", f"{agent_name}.json")

    def send_message(
        self,
        team_name: str,
        agent_name: str,
        message: dict[str, Any],
    ) -> bool:
        """Append a message to an agent's inbox.

        Defaults (sender, timestamp, unread flag) are filled in first so the
        caller's fields win. A non-string ``text`` is stored JSON-encoded.

        Args:
            team_name: Team directory name.
            agent_name: Agent name, not agent id.
            message: Message fields.

        Returns:
            True if the inbox was written.
        """
        try:
            path = self.inbox_path(team_name, agent_name)
        except UnsafePathError as e:
            logger.warning("agent_message_rejected", team=team_name, agent=agent_name, error=str(e))
            return False

        text = message.get("text")
        entry: dict[str, Any] = {
            "from": SENDER,
            "timestamp": _now_iso(),
            "read": False,
            **message,
            "text": text if isinstance(text, str) else json.dumps(text),
        }

        with self._lock:
            try:
                inbox: list[Any] = []
                if path.exists():
                    loaded = json.loads(path.read_text(encoding="utf-8"))
                    if not isinstance(loaded, list):
                        raise ValueError("inbox is not a JSON array")
                    inbox = loaded
                inbox.append(entry)
                self._write_atomic(path, inbox)
            except (OSError, ValueError) as e:
                logger.error(
                    "agent_message_failed",
                    team=team_name,
                    agent=agent_name,
                    error=str(e),
                )
                return False

        logger.info("agent_message_sent", team=team_name, agent=agent_name)
        return True

    def shutdown_agent(self, team_name: str, agent_name: str) -> bool:
        """Ask an agent to shut down."""
        return self.send_message(
            team_name,
            agent_name,
            {
                "text": {
                    "type": "shutdown_request",
                    "requestId": f"shutdown-{int(time.time() * 1000)}@{agent_name}",
                    "content": "Shutdown requested from monitoring dashboard",
                    "timestamp": _now_iso(),
                }
            },
        )

    def control_agent(self, team_name: str, agent_name: str, action: ControlAction) -> bool:
        """Ask an agent to pause, resume or restart.

        Raises:
            ValueError: If action is not a known control action.
        """
        if action not in CONTROL_ACTIONS:
            raise ValueError(f"Invalid action: {action}")

        return self.send_message(
            team_name,
            agent_name,
            {
                "text": {
                    "type": "control_request",
                    "action": action,
                    "requestId": f"control-{int(time.time() * 1000)}@{agent_name}",
                    "content": f"{action} requested from monitoring dashboard",
                    "timestamp": _now_iso(),
                }
            },
        )

    @staticmethod
    def _write_atomic(path: Path, inbox: list[Any]) -> None:
        # .tmp suffix keeps the watcher from reacting to the temp file
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(inbox, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
