"""Per-client channel subscriptions."""
import threading
from collections.abc import Iterable


class SubscriptionRegistry:
    """Tracks which channels each connected client wants.

    A client with an empty channel set receives every event. Channel names
    are not validated; an unknown name simply never matches.
    """

    def __init__(self) -> None:
        self._channels: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)

    def __contains__(self, client_id: object) -> bool:
        with self._lock:
            return client_id in self._channels

    def register(self, client_id: str) -> None:
        """Start a client in receive-everything mode."""
        with self._lock:
            self._channels.setdefault(client_id, set())

    def subscribe(self, client_id: str, channels: Iterable[str]) -> list[str]:
        """Add channels to a client's set.

        Args:
            client_id: Connection identifier.
            channels: Channel names to add.

        Returns:
            The client's full resulting set, sorted.
        """
        with self._lock:
            subs = self._channels.setdefault(client_id, set())
            subs.update(channels)
            return sorted(subs)

    def unsubscribe(self, client_id: str, channels: Iterable[str]) -> None:
        """Remove channels from a client's set."""
        with self._lock:
            subs = self._channels.get(client_id)
            if subs is not None:
                subs.difference_update(channels)

    def channels(self, client_id: str) -> list[str]:
        with self._lock:
            return sorted(self._channels.get(client_id, ()))

    def matches(self, client_id: str, channels: Iterable[str]) -> bool:
        """Whether a client wants an event published on ``channels``.

        Unknown clients match nothing.
        """
        with self._lock:
            subs = self._channels.get(client_id)
            if subs is None:
                return False
            if not subs:
                return True
            return not subs.isdisjoint(channels)

    def holders(self, channel: str) -> int:
        """Number of clients explicitly subscribed to ``channel``."""
        with self._lock:
            return sum(1 for subs in self._channels.values() if channel in subs)

    def drop(self, client_id: str) -> list[str]:
        """Remove all state for a disconnected client.

        Returns:
            The channels the client held.
        """
        with self._lock:
            return sorted(self._channels.pop(client_id, ()))
