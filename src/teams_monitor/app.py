"""FastAPI application factory and lifespan management."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from teams_monitor.config import Settings
from teams_monitor.events import (
    Broadcaster,
    ChangeWatcher,
    ControlHandler,
    EventBus,
    SubscriptionRegistry,
    TailTracker,
)
from teams_monitor.middleware.cors import configure_cors
from teams_monitor.middleware.logging import RequestLoggingMiddleware
from teams_monitor.paths import WatchPaths
from teams_monitor.routes import debug, events, health, status, teams, ws
from teams_monitor.services.agent_control import AgentController
from teams_monitor.snapshots import SnapshotReader

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle events.

    Wires the watcher to the broadcaster through the event bus, starts
    the broadcaster pump and the filesystem watcher, and tears them down
    in reverse order.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    paths: WatchPaths = app.state.paths
    logger.info(
        "monitor_startup",
        host=settings.host,
        port=settings.port,
        roots=[str(r.path) for r in paths.roots()],
    )

    loop = asyncio.get_running_loop()
    event_bus = EventBus(loop, queue_size=settings.bus_queue_size)
    registry = SubscriptionRegistry()
    watcher = ChangeWatcher(
        paths,
        sink=event_bus.publish_threadsafe,
        tail=TailTracker(paths.debug.path),
        settle_ms=settings.settle_ms,
    )
    broadcaster = Broadcaster(
        registry,
        watcher=watcher,
        queue_size=settings.client_queue_size,
        max_clients=settings.max_clients,
        heartbeat_interval=settings.sse_heartbeat_interval,
    )

    app.state.event_bus = event_bus
    app.state.watcher = watcher
    app.state.broadcaster = broadcaster
    app.state.control = ControlHandler(broadcaster, watcher)

    pump_task = asyncio.create_task(broadcaster.run(event_bus))
    watcher.start()

    try:
        yield
    finally:
        watcher.stop()
        event_bus.close()

        pump_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pump_task

        await broadcaster.shutdown()
        logger.info("monitor_shutdown", dropped_events=event_bus.dropped_events)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Args:
        settings: Configuration instance. Creates default if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Agent Teams Monitor",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )
    paths = WatchPaths.from_settings(settings)
    app.state.settings = settings
    app.state.paths = paths
    app.state.reader = SnapshotReader(paths)
    app.state.agent_controller = AgentController(paths.teams.path)

    configure_cors(app, settings.cors_origins)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, prefix="/api")
    app.include_router(status.router, prefix="/api")
    app.include_router(teams.router, prefix="/api")
    app.include_router(debug.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(ws.router)

    return app
