"""Outbound actions produced by state transitions.

State changes never talk to the network directly. They return a list of these
records, and the transport delivers them once the transition has committed.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Union


@dataclass(frozen=True)
class SendTo:
    connection_id: str
    event: str
    payload: Any = None


@dataclass(frozen=True)
class Broadcast:
    group_id: str
    event: str
    payload: Any = None
    exclude: Optional[str] = None


@dataclass(frozen=True)
class JoinGroup:
    connection_id: str
    group_id: str


@dataclass(frozen=True)
class LeaveGroup:
    connection_id: str
    group_id: str


OutboundAction = Union[SendTo, Broadcast, JoinGroup, LeaveGroup]
Actions = List[OutboundAction]
