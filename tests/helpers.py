"""Test helpers: a relay harness over mock WebSockets and invariant checks."""

from __future__ import annotations

from unittest.mock import AsyncMock

from dispatcher import RelayDispatcher
from lifecycle import LifecycleController
from participants import Mode
from state import RelayState
from transport import WebSocketTransport


def make_ws(*, name: str | None = None) -> AsyncMock:
    """Create a mock WebSocket with async ``send_json`` and ``close`` methods."""
    ws = AsyncMock(name=name)
    ws.send_json = AsyncMock(name=f"{name}.send_json" if name else "send_json")
    ws.close = AsyncMock(name=f"{name}.close" if name else "close")
    return ws


def make_dead_ws(*, name: str | None = None) -> AsyncMock:
    """Create a mock WebSocket whose ``send_json`` always raises."""
    ws = make_ws(name=name)
    ws.send_json.side_effect = RuntimeError("connection closed")
    return ws


class RelayHarness:
    """Full relay stack (state, controller, dispatchers, transport) on mock sockets."""

    def __init__(self) -> None:
        self.state = RelayState()
        self.controller = LifecycleController(self.state)
        self.transport = WebSocketTransport()
        self.text = RelayDispatcher(self.state, self.controller)
        self.video = RelayDispatcher(self.state, self.controller, forced_mode=Mode.VIDEO)
        self.sockets: dict[str, AsyncMock] = {}

    async def connect(self, connection_id: str) -> AsyncMock:
        ws = make_ws(name=connection_id)
        self.sockets[connection_id] = ws
        self.transport.register(connection_id, ws)
        await self.transport.deliver(self.controller.connect(connection_id))
        return ws

    async def emit(self, connection_id: str, event: str, data=None, *, video: bool = False) -> None:
        dispatcher = self.video if video else self.text
        await self.transport.deliver(dispatcher.dispatch(connection_id, event, data))

    async def join(self, connection_id: str, name: str, mode: str = "one-to-one") -> AsyncMock:
        ws = await self.connect(connection_id)
        await self.emit(connection_id, "setUsername", {"userName": name, "mode": mode}, video=(mode == "video"))
        return ws

    async def disconnect(self, connection_id: str) -> None:
        actions = self.controller.disconnect(connection_id)
        self.transport.unregister(connection_id)
        await self.transport.deliver(actions)

    def received(self, connection_id: str, event: str | None = None) -> list[dict]:
        """Frames sent to *connection_id*, optionally filtered by event name."""
        frames = [call.args[0] for call in self.sockets[connection_id].send_json.await_args_list]
        if event is None:
            return frames
        return [f for f in frames if f["event"] == event]

    def reset(self) -> None:
        for ws in self.sockets.values():
            ws.send_json.reset_mock()


def assert_invariants(state: RelayState) -> None:
    """Symmetry, queue exclusivity and session/partner correspondence."""
    participants = state.registry.participants()

    for p in participants:
        assert (p.partner is None) == (p.session_id is None), p
        if p.partner is not None:
            assert p.partner.partner is p
            assert p.partner.session_id == p.session_id
            session = state.sessions.get(p.session_id)
            assert session is not None
            assert p in session.members()
            assert state.registry.get(p.partner.connection_id) is p.partner

    for engine in state.engines.values():
        queued = list(engine.queue)
        assert len(queued) == len(set(map(id, queued)))
        for p in queued:
            assert p.partner is None
            assert state.registry.get(p.connection_id) is p

    matched = sum(1 for p in participants if p.partner is not None)
    assert len(state.sessions) * 2 == matched
