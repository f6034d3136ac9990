"""Monitor configuration loaded from environment variables."""
from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Monitor configuration loaded from environment variables.

    Attributes:
        host: Bind address for the HTTP server.
        port: Port number for the HTTP server.
        debug: Enable debug logging and API documentation.
        cors_origins_raw: Raw comma-separated CORS origins string.
        claude_dir: Directory the agent runtime writes its state under.
        settle_ms: Delay between a change notification and the re-read.
        client_queue_size: Maximum queued events per connected client.
        max_clients: Maximum number of concurrent stream clients.
        bus_queue_size: Maximum events buffered between watcher and hub.
        sse_heartbeat_interval: Seconds between SSE heartbeat events.
        debug_log_lines: Default line window for the full debug log view.
        debug_tail_lines: Default line window for the short debug tail.
    """

    model_config = SettingsConfigDict(
        env_prefix="MONITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 3001
    debug: bool = False
    cors_origins_raw: str = "*"

    claude_dir: Path = Field(default_factory=lambda: Path.home() / ".claude")

    settle_ms: int = 50
    client_queue_size: int = 100
    max_clients: int = 100
    bus_queue_size: int = 1000
    sse_heartbeat_interval: float = 15.0

    debug_log_lines: int = 500
    debug_tail_lines: int = 50

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string.

        Returns:
            List of allowed origin URLs.
        """
        return [
            origin.strip()
            for origin in self.cors_origins_raw.split(",")
            if origin.strip()
        ]

    @computed_field
    @property
    def teams_dir(self) -> Path:
        """Directory holding team configs and inboxes."""
        return self.claude_dir / "teams"

    @computed_field
    @property
    def tasks_dir(self) -> Path:
        """Directory holding per-team task records."""
        return self.claude_dir / "tasks"

    @computed_field
    @property
    def debug_dir(self) -> Path:
        """Directory holding per-session debug logs."""
        return self.claude_dir / "debug"
