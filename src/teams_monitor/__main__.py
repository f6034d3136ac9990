"""Entry point for the monitor server."""

import asyncio
import contextlib
import sys

import structlog
import uvicorn

from teams_monitor.app import create_app
from teams_monitor.config import Settings
from teams_monitor.logging import configure_logging

logger = structlog.get_logger()


async def serve(settings: Settings) -> None:
    """Run uvicorn until SIGINT/SIGTERM.

    uvicorn traps the signals itself and runs the application lifespan
    exit, which stops the watcher and closes every stream client.

    Args:
        settings: Server configuration.
    """
    config = uvicorn.Config(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="warning",
        access_log=False,
    )
    server = uvicorn.Server(config)
    logger.info(
        "monitor_listening",
        rest=f"http://{settings.host}:{settings.port}/api",
        websocket=f"ws://{settings.host}:{settings.port}/ws",
        sse=f"http://{settings.host}:{settings.port}/api/events",
    )
    await server.serve()


def main() -> None:
    """Entry point for python -m teams_monitor."""
    settings = Settings()
    configure_logging(debug=settings.debug)

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(settings))

    sys.exit(0)


if __name__ == "__main__":
    main()
