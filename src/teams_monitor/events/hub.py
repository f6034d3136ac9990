"""Broadcast hub fanning domain events out to stream clients."""

import asyncio
import json
import time
import uuid
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

import structlog
from sse_starlette import ServerSentEvent

from teams_monitor.events.bus import EventBus
from teams_monitor.events.subscriptions import SubscriptionRegistry
from teams_monitor.events.types import (
    SYSTEM_CHANNEL,
    DebugAppended,
    DomainEvent,
    InboxChanged,
    OutboundEvent,
    TaskChanged,
    TeamConfigChanged,
    WatchError,
)

if TYPE_CHECKING:
    from teams_monitor.events.watcher import ChangeWatcher

logger = structlog.get_logger()

Transport = Literal["ws", "sse"]

DEBUG_CHANNEL_PREFIX = "debug:"

Route = tuple[str, dict[str, Any], list[str]]


def now_ms() -> int:
    return int(time.time() * 1000)


def debug_channel(session_id: str) -> str:
    return f"{DEBUG_CHANNEL_PREFIX}{session_id}"


def debug_session_of(channel: str) -> str | None:
    """Session id named by a ``debug:<id>`` channel, else None."""
    if not channel.startswith(DEBUG_CHANNEL_PREFIX):
        return None
    return channel[len(DEBUG_CHANNEL_PREFIX):] or None


def route_event(event: DomainEvent) -> list[Route]:
    """Derive outward labels, payloads and channels for a domain event.

    Most changes go out under a specific label and a generic one so a
    client can listen narrowly or broadly. Debug appends additionally go
    out once per line.

    Args:
        event: Normalized domain event.

    Returns:
        ``(label, payload, channels)`` tuples in delivery order.
    """
    if isinstance(event, TeamConfigChanged):
        payload = {"teamName": event.team_name, "data": event.data}
        channels = [f"team:{event.team_name}"]
        return [
            ("team:config", payload, channels),
            ("team:updated", payload, channels),
        ]

    if isinstance(event, InboxChanged):
        payload = {
            "teamName": event.team_name,
            "agentName": event.agent_name,
            "data": event.data,
        }
        channels = [f"team:{event.team_name}", f"messages:{event.team_name}"]
        return [
            ("team:inbox", payload, channels),
            ("message:new", payload, channels),
        ]

    if isinstance(event, TaskChanged):
        payload = {
            "teamName": event.team_name,
            "taskId": event.task_id,
            "data": event.data,
        }
        channels = [f"team:{event.team_name}", f"tasks:{event.team_name}"]
        return [
            ("task:update", payload, channels),
            ("task:updated", payload, channels),
        ]

    if isinstance(event, DebugAppended):
        if not event.lines:
            return []
        channels = [debug_channel(event.session_id)]
        routes: list[Route] = [
            (
                "debug:update",
                {"sessionId": event.session_id, "lines": list(event.lines)},
                channels,
            )
        ]
        routes.extend(
            ("debug:line", {"sessionId": event.session_id, "line": line}, channels)
            for line in event.lines
        )
        return routes

    if isinstance(event, WatchError):
        return [
            (
                "watch:error",
                {"message": event.message, "error": event.error},
                [SYSTEM_CHANNEL],
            )
        ]

    return []


@dataclass
class ClientConnection:
    """One connected stream client.

    Attributes:
        client_id: Stable connection identifier.
        transport: ``ws`` (channel-filtered) or ``sse`` (receives everything).
        queue: Bounded outbound buffer drained by the transport.
        closed: Set once the transport is gone; closed clients are skipped.
        dropped: Events discarded because the buffer was full.
    """

    client_id: str
    transport: Transport
    queue: asyncio.Queue[OutboundEvent] = field(repr=False)
    closed: bool = False
    dropped: int = 0

    def offer(self, event: OutboundEvent) -> None:
        """Enqueue without blocking, dropping the oldest event when full."""
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self.queue.put_nowait(event)
            self.dropped += 1

    async def next_event(self) -> OutboundEvent:
        return await self.queue.get()


class Broadcaster:
    """Delivers domain events to every interested client on both transports.

    WebSocket clients are filtered through the subscription registry; SSE
    clients receive everything. Fan-out only enqueues into each client's
    bounded buffer, so one slow client never stalls the others.

    Attributes:
        queue_size: Maximum buffered events per client.
        max_clients: Maximum concurrent clients across transports.
        heartbeat_interval: Seconds between SSE heartbeats.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        watcher: "ChangeWatcher | None" = None,
        queue_size: int = 100,
        max_clients: int = 100,
        heartbeat_interval: float = 15.0,
    ) -> None:
        """Initialize broadcaster.

        Args:
            registry: Per-client channel subscriptions.
            watcher: Watcher whose debug sessions are released when no
                client holds them any more.
            queue_size: Maximum buffered events per client.
            max_clients: Maximum concurrent clients.
            heartbeat_interval: Seconds between SSE heartbeats.
        """
        self._registry = registry
        self._watcher = watcher
        self._queue_size = queue_size
        self._max_clients = max_clients
        self._heartbeat_interval = heartbeat_interval
        self._clients: dict[str, ClientConnection] = {}
        self._lock = asyncio.Lock()
        self._published_count = 0

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    @property
    def active_connections(self) -> int:
        return len(self._clients)

    def connection_counts(self) -> dict[str, int]:
        """Connected clients per transport."""
        counts = {"ws": 0, "sse": 0}
        for client in list(self._clients.values()):
            counts[client.transport] += 1
        return counts

    @property
    def dropped_events(self) -> int:
        return sum(c.dropped for c in list(self._clients.values()))

    def get(self, client_id: str) -> ClientConnection | None:
        return self._clients.get(client_id)

    async def connect(self, transport: Transport) -> ClientConnection:
        """Register a new client.

        Args:
            transport: Transport kind of the client.

        Returns:
            The new connection, in receive-everything mode.

        Raises:
            ValueError: If maximum clients reached.
        """
        async with self._lock:
            if len(self._clients) >= self._max_clients:
                raise ValueError("Maximum clients reached")

            client = ClientConnection(
                client_id=str(uuid.uuid4()),
                transport=transport,
                queue=asyncio.Queue(maxsize=self._queue_size),
            )
            self._clients[client.client_id] = client
            if transport == "ws":
                self._registry.register(client.client_id)

        logger.info(
            "client_connected",
            client_id=client.client_id,
            transport=transport,
            active_connections=len(self._clients),
        )
        return client

    async def disconnect(self, client_id: str) -> None:
        """Remove a client and release its subscriptions.

        Safe to call more than once.

        Args:
            client_id: Connection identifier.
        """
        async with self._lock:
            client = self._clients.pop(client_id, None)
            if client is None:
                return
            client.closed = True
            channels = self._registry.drop(client_id)

        self.release_debug_channels(channels)
        logger.info(
            "client_disconnected",
            client_id=client_id,
            transport=client.transport,
            dropped_events=client.dropped,
            active_connections=len(self._clients),
        )

    def release_debug_channels(self, channels: Iterable[str]) -> None:
        """Unwatch debug sessions that no client subscribes to any more."""
        if self._watcher is None:
            return
        for channel in channels:
            session_id = debug_session_of(channel)
            if session_id is None:
                continue
            if self._registry.holders(channel) == 0:
                self._watcher.unwatch_debug_session(session_id)

    def publish(self, event: DomainEvent) -> int:
        """Fan a domain event out to matching clients.

        Must run on the loop thread.

        Args:
            event: Normalized domain event.

        Returns:
            Number of client deliveries enqueued.
        """
        if isinstance(event, WatchError):
            logger.warning("watch_error", message=event.message, error=event.error)

        delivered = 0
        clients = list(self._clients.values())
        for label, payload, channels in route_event(event):
            outbound = OutboundEvent(type=label, data=payload, timestamp=now_ms())
            for client in clients:
                if client.closed:
                    continue
                if client.transport == "ws" and not self._registry.matches(
                    client.client_id, channels
                ):
                    continue
                client.offer(outbound)
                delivered += 1

        self._published_count += 1
        logger.debug(
            "event_published",
            kind=event.kind.value,
            delivered_to=delivered,
        )
        return delivered

    async def run(self, bus: EventBus) -> None:
        """Consume the event bus until cancelled.

        Args:
            bus: Channel fed by the watcher.
        """
        logger.info("broadcaster_started")
        try:
            async for event in bus.events():
                try:
                    self.publish(event)
                except Exception as e:
                    logger.error("broadcast_error", kind=event.kind.value, error=str(e))
        except asyncio.CancelledError:
            logger.info("broadcaster_stopped", published=self._published_count)
            raise

    async def create_sse_generator(
        self, client: ClientConnection
    ) -> AsyncIterator[ServerSentEvent]:
        """Create SSE event generator for a connected client.

        Sends a ``connected`` event first, then every outbound event and
        periodic heartbeats. The client is disconnected when the stream ends.

        Args:
            client: Connection returned by ``connect("sse")``.

        Yields:
            Server-sent events for the client.
        """
        try:
            yield ServerSentEvent(data=json.dumps({"type": "connected"}))
            while not client.closed:
                try:
                    event = await asyncio.wait_for(
                        client.next_event(),
                        timeout=self._heartbeat_interval,
                    )
                except TimeoutError:
                    event = OutboundEvent(type="heartbeat", data={}, timestamp=now_ms())
                yield ServerSentEvent(event=event.type, data=event.model_dump_json())
        except asyncio.CancelledError:
            pass
        finally:
            await self.disconnect(client.client_id)

    async def shutdown(self) -> None:
        """Close every client and log final counters."""
        async with self._lock:
            clients = list(self._clients.values())

        for client in clients:
            await self.disconnect(client.client_id)

        logger.info(
            "broadcast_hub_shutdown",
            closed_connections=len(clients),
            published=self._published_count,
        )
