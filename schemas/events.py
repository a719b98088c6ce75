from pydantic import BaseModel
from typing import Any, Dict, Optional

from participants import Mode


class Envelope(BaseModel):
    event: str
    data: Any = None


class SetUsernameRequest(BaseModel):
    userName: Optional[str] = None
    mode: Optional[Mode] = None

class SendMessageRequest(BaseModel):
    content: str

class VideoSignal(BaseModel):
    # Payload is forwarded untouched; only `type` is read, for logging
    model_config = {"extra": "allow"}

    type: Optional[str] = None

class PartnerFound(BaseModel):
    id: str
    name: str

class ChatMessage(BaseModel):
    senderName: str
    content: str
    timestamp: str

class TypingNotice(BaseModel):
    userName: str

class StatsResponse(BaseModel):
    connections: int
    participants: int
    sessions: int
    group_members: int
    waiting: Dict[str, int]
