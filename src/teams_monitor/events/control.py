"""Inbound control messages for channel-filtered stream clients."""
from typing import Annotated, Any, Literal, Union

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from teams_monitor.events.hub import Broadcaster, debug_channel, debug_session_of
from teams_monitor.events.watcher import ChangeWatcher

logger = structlog.get_logger()


class SubscribeMessage(BaseModel):
    type: Literal["subscribe"]
    channels: list[str]


class UnsubscribeMessage(BaseModel):
    type: Literal["unsubscribe"]
    channels: list[str]


class WatchDebugMessage(BaseModel):
    type: Literal["watch_debug"]
    session_id: str = Field(alias="sessionId", min_length=1)


class UnwatchDebugMessage(BaseModel):
    type: Literal["unwatch_debug"]
    session_id: str = Field(alias="sessionId", min_length=1)


class PingMessage(BaseModel):
    type: Literal["ping"]


ControlMessage = Annotated[
    Union[
        SubscribeMessage,
        UnsubscribeMessage,
        WatchDebugMessage,
        UnwatchDebugMessage,
        PingMessage,
    ],
    Field(discriminator="type"),
]

_control_adapter: TypeAdapter[ControlMessage] = TypeAdapter(ControlMessage)


def parse_control_message(raw: str | bytes) -> ControlMessage | None:
    """Parse a raw frame into a control message.

    Args:
        raw: Text or binary frame payload.

    Returns:
        Parsed message, or None if the frame is not JSON or not a known
        message shape.
    """
    try:
        return _control_adapter.validate_json(raw)
    except (ValidationError, ValueError):
        return None


class ControlHandler:
    """Applies control messages to subscriptions and debug watches.

    A debug session stays watched while at least one client holds its
    ``debug:<id>`` channel.
    """

    def __init__(self, hub: Broadcaster, watcher: ChangeWatcher) -> None:
        self._hub = hub
        self._registry = hub.registry
        self._watcher = watcher

    def handle(self, client_id: str, raw: str | bytes) -> dict[str, Any] | None:
        """Apply one inbound frame.

        Args:
            client_id: Sending connection.
            raw: Frame payload.

        Returns:
            Reply to send back, or None.
        """
        message = parse_control_message(raw)
        if message is None:
            logger.debug("control_message_ignored", client_id=client_id, raw=_preview(raw))
            return None

        if isinstance(message, SubscribeMessage):
            channels = self._registry.subscribe(client_id, message.channels)
            for channel in message.channels:
                session_id = debug_session_of(channel)
                if session_id is not None:
                    self._watcher.watch_debug_session(session_id)
            logger.info("client_subscribed", client_id=client_id, channels=channels)
            return {"type": "subscribed", "channels": channels}

        if isinstance(message, UnsubscribeMessage):
            self._registry.unsubscribe(client_id, message.channels)
            self._hub.release_debug_channels(message.channels)
            logger.info("client_unsubscribed", client_id=client_id, channels=message.channels)
            return {"type": "unsubscribed", "channels": message.channels}

        if isinstance(message, WatchDebugMessage):
            if not self._watcher.watch_debug_session(message.session_id):
                return {
                    "type": "error",
                    "message": "Invalid session id",
                    "sessionId": message.session_id,
                }
            self._registry.subscribe(client_id, [debug_channel(message.session_id)])
            return {"type": "watching_debug", "sessionId": message.session_id}

        if isinstance(message, UnwatchDebugMessage):
            channel = debug_channel(message.session_id)
            self._registry.unsubscribe(client_id, [channel])
            self._hub.release_debug_channels([channel])
            return None

        return {"type": "pong"}


def _preview(raw: str | bytes) -> str:
    text = raw if isinstance(raw, str) else raw.decode("utf-8", errors="replace")
    return text[:100]
