"""Coalescing of membership events."""

from __future__ import annotations

import queue
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from gossipkit.serf.coalesce import Coalescer
from gossipkit.serf.event import EventType, MemberEvent

_MEMBER_TYPES = frozenset(
    {
        EventType.MEMBER_JOIN,
        EventType.MEMBER_LEAVE,
        EventType.MEMBER_FAILED,
        EventType.MEMBER_UPDATE,
        EventType.MEMBER_REAP,
    }
)


class _CoalescedMember(NamedTuple):
    type: EventType
    member: Any


@dataclass
class MemberEventCoalescer(Coalescer):
    """Keeps only the latest event per member and drops repeats of what was sent."""

    last_events: dict[str, EventType] = field(default_factory=dict)
    latest_events: dict[str, _CoalescedMember] = field(default_factory=dict)

    def handle(self, event: Any) -> bool:
        return event.event_type in _MEMBER_TYPES

    def coalesce(self, event: Any) -> None:
        for member in event.members:
            self.latest_events[member.name] = _CoalescedMember(event.type, member)

    def flush(self, out_queue: queue.Queue) -> None:
        events: dict[EventType, MemberEvent] = {}
        for name, latest in self.latest_events.items():
            previous = self.last_events.get(name)
            # Repeats are dropped, except updates which may carry new tags.
            if previous == latest.type and latest.type != EventType.MEMBER_UPDATE:
                continue
            self.last_events[name] = latest.type
            events.setdefault(latest.type, MemberEvent(type=latest.type)).members.append(
                latest.member
            )

        for event in events.values():
            out_queue.put(event)