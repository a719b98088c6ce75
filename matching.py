from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, Optional, Tuple

from event_names import PairingEvents
from logging_config import get_logger
from outbound import Actions, JoinGroup, LeaveGroup, SendTo
from participants import Mode, Participant, ParticipantRegistry
from schemas.events import PartnerFound

logger = get_logger(__name__)


@dataclass(frozen=True)
class Session:
    session_id: str
    first: Participant
    second: Participant

    def members(self) -> Tuple[Participant, Participant]:
        return self.first, self.second


class SessionStore:
    """Sessions keyed by session id. Shared by every pairwise mode."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def add(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        return self._sessions.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class MatchingQueue:
    """FIFO of participants waiting for a partner. Holds each participant at most once."""

    def __init__(self):
        self._waiting: Deque[Participant] = deque()

    def push(self, participant: Participant) -> bool:
        if participant in self._waiting:
            return False
        self._waiting.append(participant)
        return True

    def pop_oldest(self) -> Optional[Participant]:
        if not self._waiting:
            return None
        return self._waiting.popleft()

    def remove(self, participant: Participant) -> bool:
        try:
            self._waiting.remove(participant)
        except ValueError:
            return False
        return True

    def __contains__(self, participant: Participant) -> bool:
        return participant in self._waiting

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._waiting))

    def __len__(self) -> int:
        return len(self._waiting)


class PairingEngine:
    """Pairwise matching for one mode: queue, session creation and teardown.

    Callers must hold the relay state lock around every method here.
    """

    def __init__(self, mode: Mode, events: PairingEvents, sessions: SessionStore, registry: ParticipantRegistry):
        self.mode = mode
        self.events = events
        self.sessions = sessions
        self.registry = registry
        self.queue = MatchingQueue()

    def match(self, participant: Participant) -> Tuple[bool, Actions]:
        """Pair `participant` with the longest-waiting queue entry, if any.

        Returns whether a match happened plus the notifications to deliver.
        On no match the caller decides whether to enqueue.
        """
        # Stale queue state must never match a participant with themselves
        self.queue.remove(participant)

        partner = self.queue.pop_oldest()
        if partner is None:
            return False, []

        session_id = self.events.session_id(participant.connection_id, partner.connection_id)
        session = Session(session_id=session_id, first=participant, second=partner)

        participant.partner = partner
        participant.session_id = session_id
        partner.partner = participant
        partner.session_id = session_id
        self.sessions.add(session)

        logger.info(f"Matched {participant.name} ({participant.connection_id}) with {partner.name} ({partner.connection_id}) in {session_id}")

        actions: Actions = [
            JoinGroup(participant.connection_id, session_id),
            JoinGroup(partner.connection_id, session_id),
            SendTo(participant.connection_id, self.events.partner_found, PartnerFound(id=partner.connection_id, name=partner.name).model_dump()),
            SendTo(partner.connection_id, self.events.partner_found, PartnerFound(id=participant.connection_id, name=participant.name).model_dump()),
        ]
        return True, actions

    def enqueue(self, participant: Participant) -> Actions:
        self.queue.push(participant)
        logger.info(f"{self.mode.value} participant {participant.name} waiting. Queue length: {len(self.queue)}")
        return [SendTo(participant.connection_id, self.events.waiting)]

    def match_or_enqueue(self, participant: Participant) -> Actions:
        matched, actions = self.match(participant)
        if matched:
            return actions
        return actions + self.enqueue(participant)

    def dequeue(self, participant: Participant) -> bool:
        return self.queue.remove(participant)

    def break_partnership(self, participant: Participant) -> Actions:
        """Dissolve `participant`'s session on both sides. No-op when unmatched."""
        partner = participant.partner
        if partner is None:
            return []

        session_id = participant.session_id
        actions: Actions = []

        # Only notify a partner that is still registered
        if self.registry.get(partner.connection_id) is partner:
            actions.append(SendTo(partner.connection_id, self.events.partner_left))

        partner.partner = None
        partner.session_id = None
        participant.partner = None
        participant.session_id = None

        if session_id:
            self.sessions.remove(session_id)
            actions.append(LeaveGroup(participant.connection_id, session_id))
            actions.append(LeaveGroup(partner.connection_id, session_id))

        logger.info(f"Partnership {session_id} between {participant.name} and {partner.name} ended")
        return actions
