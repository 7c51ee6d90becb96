"""A thread-safe Lamport clock."""

from __future__ import annotations

import threading

LamportTime = int


class LamportClock:
    """A Lamport clock that is safe to share between threads."""

    def __init__(self, start: LamportTime = 0) -> None:
        self._counter = start
        self._lock = threading.Lock()

    def time(self) -> LamportTime:
        """Return the current value of the clock."""
        with self._lock:
            return self._counter

    def increment(self) -> LamportTime:
        """Advance the clock by one and return the new value."""
        with self._lock:
            self._counter += 1
            return self._counter

    def witness(self, value: LamportTime) -> None:
        """Move the clock past ``value`` if it was seen from another process."""
        with self._lock:
            if value < self._counter:
                return
            self._counter = value + 1