"""Events subsystem: filesystem watching, subscriptions and stream fan-out."""
from teams_monitor.events.bus import EventBus
from teams_monitor.events.control import ControlHandler
from teams_monitor.events.hub import Broadcaster, ClientConnection
from teams_monitor.events.subscriptions import SubscriptionRegistry
from teams_monitor.events.tail import DebugSession, TailTracker
from teams_monitor.events.types import DomainEvent, EventKind, OutboundEvent
from teams_monitor.events.watcher import ChangeWatcher

__all__ = [
    "Broadcaster",
    "ChangeWatcher",
    "ClientConnection",
    "ControlHandler",
    "DebugSession",
    "DomainEvent",
    "EventBus",
    "EventKind",
    "OutboundEvent",
    "SubscriptionRegistry",
    "TailTracker",
]
