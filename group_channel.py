from typing import Dict, Optional, Set

from event_names import MESSAGE, STOP_TYPING, TYPING
from logging_config import get_logger
from outbound import Actions, Broadcast, JoinGroup, LeaveGroup
from participants import Participant
from schemas.events import TypingNotice

logger = get_logger(__name__)


class GroupChannel:
    """Standing public channel: membership plus the members currently typing."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        self._members: Dict[str, Participant] = {}
        # {connection_id: display name}, created when the first member joins
        self._typing: Optional[Dict[str, str]] = None

    def join(self, participant: Participant) -> Actions:
        self._members[participant.connection_id] = participant
        if self._typing is None:
            self._typing = {}
        logger.info(f"{participant.name} joined group chat. Total group users: {len(self._members)}")
        return [JoinGroup(participant.connection_id, self.group_id)]

    def leave(self, participant: Participant) -> Actions:
        if self._members.get(participant.connection_id) is not participant:
            return []
        del self._members[participant.connection_id]
        actions: Actions = []
        if self._typing is not None and self._typing.pop(participant.connection_id, None) is not None:
            # Clear the indicator the others are still showing
            actions.append(Broadcast(self.group_id, STOP_TYPING, exclude=participant.connection_id))
        actions.append(LeaveGroup(participant.connection_id, self.group_id))
        logger.info(f"{participant.name} left group chat. Remaining group users: {len(self._members)}")
        return actions

    def set_typing(self, participant: Participant, is_typing: bool) -> Actions:
        if participant not in self or self._typing is None:
            return []
        if is_typing:
            self._typing[participant.connection_id] = participant.name
            return [Broadcast(self.group_id, TYPING, TypingNotice(userName=participant.name).model_dump(), exclude=participant.connection_id)]
        self._typing.pop(participant.connection_id, None)
        return [Broadcast(self.group_id, STOP_TYPING, exclude=participant.connection_id)]

    def broadcast_message(self, participant: Participant, message: dict) -> Actions:
        if participant not in self:
            return []
        return [Broadcast(self.group_id, MESSAGE, message, exclude=participant.connection_id)]

    def typing_names(self) -> Set[str]:
        return set((self._typing or {}).values())

    def __contains__(self, participant: Participant) -> bool:
        return self._members.get(participant.connection_id) is participant

    def __len__(self) -> int:
        return len(self._members)
