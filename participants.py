from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from errors import DuplicateParticipantError
from logging_config import get_logger

logger = get_logger(__name__)


class Mode(str, Enum):
    ONE_TO_ONE = "one-to-one"
    GROUP = "group"
    VIDEO = "video"


@dataclass(eq=False)
class Participant:
    """A connected identity. Compared by identity, never by field values."""

    connection_id: str
    name: str
    mode: Mode = Mode.ONE_TO_ONE
    partner: Optional["Participant"] = field(default=None, repr=False)
    session_id: Optional[str] = None

    @property
    def is_matched(self) -> bool:
        return self.partner is not None and self.session_id is not None


class ParticipantRegistry:
    """Owns participant lifetime, keyed by connection id."""

    def __init__(self):
        self._participants: Dict[str, Participant] = {}

    def create(self, connection_id: str, name: str, mode: Mode = Mode.ONE_TO_ONE) -> Participant:
        if connection_id in self._participants:
            raise DuplicateParticipantError(connection_id)
        participant = Participant(connection_id=connection_id, name=name, mode=mode)
        self._participants[connection_id] = participant
        logger.debug(f"Registered participant {connection_id} ({name}, mode={mode.value})")
        return participant

    def get(self, connection_id: str) -> Optional[Participant]:
        return self._participants.get(connection_id)

    def remove(self, connection_id: str) -> None:
        # Callers unwind partner/queue/group membership first
        removed = self._participants.pop(connection_id, None)
        if removed:
            logger.debug(f"Removed participant {connection_id} ({removed.name})")

    def participants(self) -> List[Participant]:
        return list(self._participants.values())

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._participants

    def __len__(self) -> int:
        return len(self._participants)
