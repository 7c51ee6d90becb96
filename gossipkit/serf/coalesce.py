"""Coalescing of bursts of events into fewer, combined events."""

from __future__ import annotations

import abc
import queue
import threading
import time
from typing import Any, Optional

# How often an idle loop wakes up to look for a shutdown request.
_POLL_INTERVAL = 0.01

# Capacity of the input queue handed out by coalesced_event_queue.
_IN_QUEUE_SIZE = 1024


class Coalescer(abc.ABC):
    """Combines events of the kinds it handles; others pass straight through."""

    @abc.abstractmethod
    def handle(self, event: Any) -> bool:
        """Return True if this coalescer takes care of ``event``."""

    @abc.abstractmethod
    def coalesce(self, event: Any) -> None:
        """Fold ``event`` into the pending state."""

    @abc.abstractmethod
    def flush(self, out_queue: queue.Queue) -> None:
        """Put the coalesced events onto ``out_queue``."""


def _next_deadline(*deadlines: Optional[float]) -> Optional[float]:
    pending = [d for d in deadlines if d is not None]
    return min(pending) if pending else None


def coalesce_loop(
    in_queue: queue.Queue,
    out_queue: queue.Queue,
    shutdown: threading.Event,
    coalesce_period: float,
    quiescent_period: float,
    coalescer: Coalescer,
) -> None:
    """Coalesce events from ``in_queue`` into ``out_queue`` until ``shutdown`` is set.

    Pending events are flushed when ``coalesce_period`` seconds have passed
    since the first of them, when no event arrived for ``quiescent_period``
    seconds, or on shutdown.
    """
    stopping = False
    while not stopping:
        quantum: Optional[float] = None
        quiescent: Optional[float] = None
        while True:
            now = time.monotonic()
            deadline = _next_deadline(quantum, quiescent)
            if deadline is not None and now >= deadline:
                break
            if shutdown.is_set():
                stopping = True
                break

            timeout = _POLL_INTERVAL
            if deadline is not None:
                timeout = min(timeout, deadline - now)
            try:
                event = in_queue.get(timeout=max(timeout, 0.0))
            except queue.Empty:
                continue

            if not coalescer.handle(event):
                out_queue.put(event)
                continue

            now = time.monotonic()
            if quantum is None:
                quantum = now + coalesce_period
            quiescent = now + quiescent_period
            coalescer.coalesce(event)

        coalescer.flush(out_queue)


def coalesced_event_queue(
    out_queue: queue.Queue,
    shutdown: threading.Event,
    coalesce_period: float,
    quiescent_period: float,
    coalescer: Coalescer,
) -> queue.Queue:
    """Start a background coalescing loop and return the queue that feeds it."""
    in_queue: queue.Queue = queue.Queue(maxsize=_IN_QUEUE_SIZE)
    worker = threading.Thread(
        target=coalesce_loop,
        args=(in_queue, out_queue, shutdown, coalesce_period, quiescent_period, coalescer),
        name="event-coalescer",
        daemon=True,
    )
    worker.start()
    return in_queue