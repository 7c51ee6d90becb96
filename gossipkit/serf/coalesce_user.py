"""Coalescing of user events that allow it."""

from __future__ import annotations

import queue
from dataclasses import dataclass, field
from typing import Any

from gossipkit.serf.coalesce import Coalescer
from gossipkit.serf.event import EventType
from gossipkit.serf.lamport import LamportTime


@dataclass
class _LatestUserEvents:
    ltime: LamportTime
    events: list[Any]


@dataclass
class UserEventCoalescer(Coalescer):
    """Keeps, per event name, only the events with the newest Lamport time."""

    events: dict[str, _LatestUserEvents] = field(default_factory=dict)

    def handle(self, event: Any) -> bool:
        return event.event_type == EventType.USER and bool(event.coalesce)

    def coalesce(self, event: Any) -> None:
        latest = self.events.get(event.name)
        if latest is None or latest.ltime < event.ltime:
            self.events[event.name] = _LatestUserEvents(event.ltime, [event])
        elif latest.ltime == event.ltime:
            latest.events.append(event)

    def flush(self, out_queue: queue.Queue) -> None:
        for latest in self.events.values():
            for event in latest.events:
                out_queue.put(event)
        self.events = {}