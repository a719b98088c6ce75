from typing import Optional, Set

from logging_config import get_logger
from outbound import Actions
from participants import Mode, Participant
from state import RelayState

logger = get_logger(__name__)


def default_display_name(connection_id: str) -> str:
    return f"User_{connection_id[:8]}"


class LifecycleController:
    """Connect, mode selection, re-match and disconnect orchestration.

    Every public method takes the state lock, applies one complete transition
    and returns the outbound actions to deliver after the lock is released.
    """

    def __init__(self, state: RelayState):
        self.state = state
        self._connections: Set[str] = set()

    def connect(self, connection_id: str) -> Actions:
        with self.state.lock:
            self._connections.add(connection_id)
        logger.info(f"User connected: {connection_id}")
        return []

    def is_connected(self, connection_id: str) -> bool:
        with self.state.lock:
            return connection_id in self._connections

    def select_mode(self, connection_id: str, user_name: Optional[str], mode: Mode = Mode.ONE_TO_ONE) -> Actions:
        name = user_name.strip() if user_name and user_name.strip() else default_display_name(connection_id)

        with self.state.lock:
            if connection_id not in self._connections:
                logger.debug(f"Ignoring mode selection from unknown connection {connection_id}")
                return []

            actions: Actions = []
            existing = self.state.registry.get(connection_id)
            if existing is not None:
                # Repeated mode selection: unwind the old record completely before replacing it
                logger.info(f"User {connection_id} re-selected mode, tearing down previous state ({existing.mode.value})")
                actions.extend(self._vacate(existing))
                self.state.registry.remove(connection_id)

            participant = self.state.registry.create(connection_id, name, mode)
            logger.info(f"User {connection_id} set username: {name}, mode: {mode.value}")

            if mode == Mode.GROUP:
                actions.extend(self.state.group.join(participant))
            else:
                actions.extend(self.state.engine_for(mode).match_or_enqueue(participant))
            return actions

    def request_new_partner(self, connection_id: str) -> Actions:
        with self.state.lock:
            participant = self.state.registry.get(connection_id)
            if participant is None:
                return []
            engine = self.state.engine_for(participant.mode)
            if engine is None:
                logger.debug(f"Ignoring partner request from group member {participant.name}")
                return []

            logger.info(f"User {participant.name} looking for new partner")
            actions = engine.break_partnership(participant)
            actions.extend(engine.match_or_enqueue(participant))
            return actions

    def disconnect(self, connection_id: str) -> Actions:
        with self.state.lock:
            self._connections.discard(connection_id)
            participant = self.state.registry.get(connection_id)
            if participant is None:
                logger.info(f"User disconnected: {connection_id}")
                return []

            actions = self._vacate(participant)
            self.state.registry.remove(connection_id)
            logger.info(
                f"User {participant.name} disconnected. Remaining users: {len(self.state.registry)}, "
                f"waiting: {self._waiting_count()}"
            )
            return actions

    def stats(self) -> dict:
        with self.state.lock:
            return {
                "connections": len(self._connections),
                "participants": len(self.state.registry),
                "sessions": len(self.state.sessions),
                "group_members": len(self.state.group),
                "waiting": {mode.value: len(engine.queue) for mode, engine in self.state.engines.items()},
            }

    def _vacate(self, participant: Participant) -> Actions:
        """Remove `participant` from its group, partnership and queue. Lock must be held."""
        if participant.mode == Mode.GROUP:
            return self.state.group.leave(participant)

        engine = self.state.engine_for(participant.mode)
        actions = engine.break_partnership(participant)
        engine.dequeue(participant)
        return actions

    def _waiting_count(self) -> int:
        return sum(len(engine.queue) for engine in self.state.engines.values())
