import threading
from typing import Dict, Optional

from constants import GROUP_ROOM_ID
from event_names import TEXT_EVENTS, VIDEO_EVENTS
from group_channel import GroupChannel
from matching import PairingEngine, SessionStore
from participants import Mode, ParticipantRegistry


class RelayState:
    """All mutable relay state, owned in one place and guarded by one lock.

    Built once per application and injected into the controller and the
    dispatcher. Every read-modify-write of the structures below happens while
    holding `lock`; nothing awaits inside it.
    """

    def __init__(self, group_id: str = GROUP_ROOM_ID):
        self.lock = threading.Lock()
        self.registry = ParticipantRegistry()
        self.sessions = SessionStore()
        self.engines: Dict[Mode, PairingEngine] = {
            Mode.ONE_TO_ONE: PairingEngine(Mode.ONE_TO_ONE, TEXT_EVENTS, self.sessions, self.registry),
            Mode.VIDEO: PairingEngine(Mode.VIDEO, VIDEO_EVENTS, self.sessions, self.registry),
        }
        self.group = GroupChannel(group_id)

    def engine_for(self, mode: Mode) -> Optional[PairingEngine]:
        return self.engines.get(mode)
