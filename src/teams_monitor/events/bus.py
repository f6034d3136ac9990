"""Thread-safe channel between the filesystem watcher and the broadcast hub."""
import asyncio
from collections.abc import AsyncIterator

import structlog

from teams_monitor.events.types import DomainEvent

logger = structlog.get_logger()


class EventBus:
    """Bounded single-consumer queue of domain events.

    Producers are watchdog and settle-timer threads; the consumer is the
    broadcast hub running on the asyncio loop. Events cross threads only
    through ``loop.call_soon_threadsafe``, which keeps their submission
    order. When the queue is full the oldest event is dropped.

    Attributes:
        queue_size: Maximum buffered events.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        queue_size: int = 1000,
    ) -> None:
        """Initialize event bus.

        Args:
            loop: Loop the consumer runs on.
            queue_size: Maximum buffered events.
        """
        self._loop = loop
        self._queue: asyncio.Queue[DomainEvent] = asyncio.Queue(maxsize=queue_size)
        self._dropped_count = 0
        self._closed = False

    @property
    def dropped_events(self) -> int:
        """Total number of events dropped due to queue overflow."""
        return self._dropped_count

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def publish_threadsafe(self, event: DomainEvent) -> None:
        """Hand an event to the loop from any thread.

        Args:
            event: Domain event to enqueue.
        """
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self.publish, event)
        except RuntimeError:
            # loop already closed during shutdown
            logger.debug("event_bus_loop_closed", kind=event.kind.value)

    def publish(self, event: DomainEvent) -> None:
        """Enqueue an event; must run on the loop thread.

        Args:
            event: Domain event to enqueue.
        """
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self._queue.put_nowait(event)
            self._dropped_count += 1
            logger.warning("event_bus_overflow", dropped_events=self._dropped_count)

    async def events(self) -> AsyncIterator[DomainEvent]:
        """Yield events until the bus is closed and drained."""
        while True:
            if self._closed and self._queue.empty():
                return
            event = await self._queue.get()
            yield event

    def close(self) -> None:
        """Stop accepting events."""
        self._closed = True
