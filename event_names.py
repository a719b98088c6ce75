from dataclasses import dataclass

# Inbound (client -> server)
SET_USERNAME = "setUsername"
SEND_MESSAGE = "sendMessage"
TYPING = "typing"
STOP_TYPING = "stopTyping"
FIND_NEW_PARTNER = "findNewPartner"
FIND_VIDEO_PARTNER = "findVideoPartner"
VIDEO_SIGNAL = "videoSignal"

# Outbound (server -> client), shared by every mode
MESSAGE = "message"

SESSION_ID_FORMAT = "{prefix}{first}_{second}"  # arriving participant, then popped queue entry


@dataclass(frozen=True)
class PairingEvents:
    """Outbound event names and session id prefix for one pairwise mode."""

    waiting: str
    partner_found: str
    partner_left: str
    session_prefix: str

    def session_id(self, first: str, second: str) -> str:
        return SESSION_ID_FORMAT.format(prefix=self.session_prefix, first=first, second=second)


TEXT_EVENTS = PairingEvents(
    waiting="waiting",
    partner_found="partnerFound",
    partner_left="partnerLeft",
    session_prefix="room_",
)

VIDEO_EVENTS = PairingEvents(
    waiting="videoWaiting",
    partner_found="videoPartnerFound",
    partner_left="videoPartnerLeft",
    session_prefix="video_room_",
)
