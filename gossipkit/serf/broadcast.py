"""Broadcasts queued for gossip."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, ClassVar, Optional


@dataclass
class Broadcast:
    """A message to gossip, with an optional event set once it has been sent."""

    UNIQUE: ClassVar[bool] = True

    msg: bytes
    notify: Optional[threading.Event] = None

    def invalidates(self, other: Any) -> bool:
        """Tell whether this broadcast supersedes ``other``.

        These broadcasts are unique, so none ever supersedes another.
        """
        if self.UNIQUE:
            return False
        return isinstance(other, Broadcast) and other.msg == self.msg

    def message(self) -> bytes:
        """Return the raw message bytes."""
        return self.msg

    def finished(self) -> None:
        """Signal that the broadcast has been sent or dropped."""
        if self.notify is not None:
            self.notify.set()