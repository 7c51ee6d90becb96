"""Events delivered by the cluster membership layer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from gossipkit.serf.lamport import LamportTime


class EventType(enum.IntEnum):
    """The kinds of events that may be delivered."""

    MEMBER_JOIN = 0
    MEMBER_LEAVE = 1
    MEMBER_FAILED = 2
    MEMBER_UPDATE = 3
    MEMBER_REAP = 4
    USER = 5
    QUERY = 6

    def __str__(self) -> str:
        return _EVENT_NAMES[self]


_EVENT_NAMES = {
    EventType.MEMBER_JOIN: "member-join",
    EventType.MEMBER_LEAVE: "member-leave",
    EventType.MEMBER_FAILED: "member-failed",
    EventType.MEMBER_UPDATE: "member-update",
    EventType.MEMBER_REAP: "member-reap",
    EventType.USER: "user",
    EventType.QUERY: "query",
}

_MEMBER_EVENT_TYPES = frozenset(
    {
        EventType.MEMBER_JOIN,
        EventType.MEMBER_LEAVE,
        EventType.MEMBER_FAILED,
        EventType.MEMBER_UPDATE,
        EventType.MEMBER_REAP,
    }
)


@dataclass
class MemberEvent:
    """A membership change; coalescing may group several members in one event."""

    type: EventType
    members: list[Any] = field(default_factory=list)

    @property
    def event_type(self) -> EventType:
        return self.type

    def __str__(self) -> str:
        if self.type not in _MEMBER_EVENT_TYPES:
            raise ValueError(f"unknown event type: {int(self.type)}")
        return str(EventType(self.type))


@dataclass
class UserEvent:
    """An event triggered by a user rather than by membership changes."""

    ltime: LamportTime = 0
    name: str = ""
    payload: bytes = b""
    coalesce: bool = False

    @property
    def event_type(self) -> EventType:
        return EventType.USER

    def __str__(self) -> str:
        return f"user-event: {self.name}"


@dataclass
class Query:
    """A query delivered to this node.

    ``deadline`` is the time (seconds since the epoch) by which a response
    must be sent, or None once a response has gone out.
    """

    ltime: LamportTime = 0
    name: str = ""
    payload: bytes = b""
    id: int = 0
    addr: bytes = b""
    port: int = 0
    deadline: Optional[float] = None
    relay_factor: int = 0

    @property
    def event_type(self) -> EventType:
        return EventType.QUERY

    def __str__(self) -> str:
        return f"query: {self.name}"


Event = Union[MemberEvent, UserEvent, Query]