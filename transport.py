import asyncio
from typing import Any, Dict, Iterable, Optional, Set

from starlette.websockets import WebSocket

from logging_config import get_logger
from outbound import Broadcast, JoinGroup, LeaveGroup, OutboundAction, SendTo

logger = get_logger(__name__)


def frame(event: str, payload: Any = None) -> dict:
    return {"event": event, "data": payload}


class WebSocketTransport:
    """Tracks live WebSocket connections and named groups of them.

    Delivery is fire-and-forget: a send to a closed socket is logged and
    dropped, the owning endpoint's disconnect handling does the cleanup.
    """

    def __init__(self):
        # Format: {connection_id: websocket}
        self._connections: Dict[str, WebSocket] = {}
        # Format: {group_id: {connection_id, ...}}
        self._groups: Dict[str, Set[str]] = {}

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        self._connections[connection_id] = websocket
        logger.debug(f"Registered connection {connection_id} (open connections: {len(self._connections)})")

    def unregister(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        for group_id in list(self._groups):
            self._discard_member(group_id, connection_id)
        logger.debug(f"Unregistered connection {connection_id} (open connections: {len(self._connections)})")

    def is_open(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def members(self, group_id: str) -> Set[str]:
        return set(self._groups.get(group_id, ()))

    def join_group(self, connection_id: str, group_id: str) -> None:
        if connection_id not in self._connections:
            return
        self._groups.setdefault(group_id, set()).add(connection_id)

    def leave_group(self, connection_id: str, group_id: str) -> None:
        self._discard_member(group_id, connection_id)

    async def send_to(self, connection_id: str, event: str, payload: Any = None) -> None:
        websocket = self._connections.get(connection_id)
        if websocket is None:
            logger.debug(f"Dropping '{event}' for closed connection {connection_id}")
            return
        try:
            await websocket.send_json(frame(event, payload))
        except Exception as e:
            logger.debug(f"Error sending '{event}' to connection {connection_id}: {e}")

    async def broadcast(self, group_id: str, event: str, payload: Any = None, exclude: Optional[str] = None) -> None:
        recipients = [conn_id for conn_id in self._groups.get(group_id, ()) if conn_id != exclude]
        if not recipients:
            return
        await asyncio.gather(*(self.send_to(conn_id, event, payload) for conn_id in recipients))
        logger.debug(f"Broadcasted '{event}' to {len(recipients)} connections in {group_id}")

    async def deliver(self, actions: Iterable[OutboundAction]) -> None:
        """Apply outbound actions in order. Group changes land before later sends."""
        for action in actions:
            if isinstance(action, SendTo):
                await self.send_to(action.connection_id, action.event, action.payload)
            elif isinstance(action, Broadcast):
                await self.broadcast(action.group_id, action.event, action.payload, action.exclude)
            elif isinstance(action, JoinGroup):
                self.join_group(action.connection_id, action.group_id)
            elif isinstance(action, LeaveGroup):
                self.leave_group(action.connection_id, action.group_id)

    async def close_all(self, code: int = 1001, reason: str = "Server shutting down") -> int:
        websockets = list(self._connections.values())
        for websocket in websockets:
            try:
                await websocket.close(code=code, reason=reason)
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")
        return len(websockets)

    def _discard_member(self, group_id: str, connection_id: str) -> None:
        members = self._groups.get(group_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._groups[group_id]
