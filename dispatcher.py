"""Routing of inbound client events.

Each handler looks the sender up at the moment the event arrives, never at
connect time, since partner and mode can change between two events. Events
that do not apply to the sender's current state are dropped without a reply.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

import event_names
from lifecycle import LifecycleController
from logging_config import get_logger
from outbound import Actions, SendTo
from participants import Mode
from schemas.events import ChatMessage, SendMessageRequest, SetUsernameRequest, TypingNotice, VideoSignal
from state import RelayState

logger = get_logger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class RelayDispatcher:
    def __init__(self, state: RelayState, controller: LifecycleController, forced_mode: Optional[Mode] = None):
        self.state = state
        self.controller = controller
        # Set for endpoints that only serve one mode (the video namespace)
        self.forced_mode = forced_mode
        self._handlers: Dict[str, Callable[[str, Any], Actions]] = {
            event_names.SET_USERNAME: self.on_set_username,
            event_names.SEND_MESSAGE: self.on_send_message,
            event_names.TYPING: lambda connection_id, _: self.on_typing(connection_id, True),
            event_names.STOP_TYPING: lambda connection_id, _: self.on_typing(connection_id, False),
            event_names.FIND_NEW_PARTNER: self.on_find_partner,
            event_names.FIND_VIDEO_PARTNER: self.on_find_partner,
            event_names.VIDEO_SIGNAL: self.on_video_signal,
        }

    def dispatch(self, connection_id: str, event: str, data: Any = None) -> Actions:
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"Ignoring unknown event '{event}' from {connection_id}")
            return []
        try:
            return handler(connection_id, data)
        except ValidationError as e:
            logger.warning(f"Dropping malformed '{event}' payload from {connection_id}: {e.errors()}")
            return []

    def on_set_username(self, connection_id: str, data: Any) -> Actions:
        request = SetUsernameRequest.model_validate(data or {})
        mode = self.forced_mode or request.mode or Mode.ONE_TO_ONE
        return self.controller.select_mode(connection_id, request.userName, mode)

    def on_send_message(self, connection_id: str, data: Any) -> Actions:
        # Older clients send the bare string instead of {"content": ...}
        if isinstance(data, str):
            data = {"content": data}
        request = SendMessageRequest.model_validate(data)

        with self.state.lock:
            sender = self.state.registry.get(connection_id)
            if sender is None:
                return []

            message = ChatMessage(senderName=sender.name, content=request.content, timestamp=_timestamp()).model_dump()

            if sender.is_matched:
                logger.debug(f"Message sent from {sender.name} to {sender.partner.name}")
                return [SendTo(sender.partner.connection_id, event_names.MESSAGE, message)]

            if sender.mode == Mode.GROUP:
                actions = self.state.group.broadcast_message(sender, message)
                if actions:
                    logger.debug(f"Group message sent from {sender.name}")
                return actions

        logger.debug(f"Dropping message from unmatched user {connection_id}")
        return []

    def on_typing(self, connection_id: str, is_typing: bool) -> Actions:
        with self.state.lock:
            sender = self.state.registry.get(connection_id)
            if sender is None:
                return []

            if sender.mode == Mode.GROUP:
                return self.state.group.set_typing(sender, is_typing)

            if sender.is_matched:
                if is_typing:
                    return [SendTo(sender.partner.connection_id, event_names.TYPING, TypingNotice(userName=sender.name).model_dump())]
                return [SendTo(sender.partner.connection_id, event_names.STOP_TYPING)]
        return []

    def on_find_partner(self, connection_id: str, data: Any = None) -> Actions:
        return self.controller.request_new_partner(connection_id)

    def on_video_signal(self, connection_id: str, data: Any) -> Actions:
        signal = VideoSignal.model_validate(data)

        with self.state.lock:
            sender = self.state.registry.get(connection_id)
            if sender is None or sender.mode != Mode.VIDEO or not sender.is_matched:
                return []
            logger.debug(f"Video signal forwarded from {sender.name} to {sender.partner.name}: {signal.type}")
            # Forward the original payload, not the parsed model
            return [SendTo(sender.partner.connection_id, event_names.VIDEO_SIGNAL, data)]
