"""Configuration of a cluster membership instance.

All durations are expressed in seconds.
"""

from __future__ import annotations

import logging
import socket
import sys
from dataclasses import dataclass, field
from typing import Any, Optional, TextIO

# Maps our own protocol versions to those of the underlying gossip layer.
PROTOCOL_VERSION_MAP: dict[int, int] = {
    5: 2,
    4: 2,
    3: 2,
    2: 2,
}


@dataclass
class Config:
    """Settings for creating an instance.

    A bare ``Config()`` holds zero values; use :func:`default_config` for
    reasonable defaults.

    ``event_queue`` receives every event in order; if it is None no events
    are delivered. ``coalesce_period`` enables coalescing of member events
    when non-zero, flushing after ``quiescent_period`` without new events;
    ``user_coalesce_period`` and ``user_quiescent_period`` do the same for
    user events. ``min_queue_depth``, when above zero, replaces
    ``max_queue_depth`` with ``max(min_queue_depth, 2 * cluster size)``.
    ``logger`` and ``log_output`` may not both be given.
    """

    node_name: str = ""
    tags: Optional[dict[str, str]] = None
    event_queue: Any = None
    protocol_version: int = 0
    broadcast_timeout: float = 0.0
    leave_propagate_delay: float = 0.0

    coalesce_period: float = 0.0
    quiescent_period: float = 0.0
    user_coalesce_period: float = 0.0
    user_quiescent_period: float = 0.0

    reap_interval: float = 0.0
    reconnect_interval: float = 0.0
    reconnect_timeout: float = 0.0
    tombstone_timeout: float = 0.0

    flap_timeout: float = 0.0

    queue_check_interval: float = 0.0
    queue_depth_warning: int = 0
    max_queue_depth: int = 0
    min_queue_depth: int = 0

    recent_intent_timeout: float = 0.0

    event_buffer: int = 0
    query_buffer: int = 0

    query_timeout_mult: int = 0
    query_response_size_limit: int = 0
    query_size_limit: int = 0

    memberlist_config: Any = None

    log_output: Optional[TextIO] = None
    logger: Optional[logging.Logger] = None

    snapshot_path: str = ""
    rejoin_after_leave: bool = False
    enable_name_conflict_resolution: bool = False
    disable_coordinates: bool = False
    keyring_file: str = ""
    merge: Any = None
    user_event_size_limit: int = 0

    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    def init(self) -> None:
        """Allocate the containers that are still unset."""
        if self.tags is None:
            self.tags = {}


def default_config() -> Config:
    """Return a config with reasonable defaults for most settings."""
    return Config(
        node_name=socket.gethostname(),
        broadcast_timeout=5.0,
        leave_propagate_delay=1.0,
        event_buffer=512,
        query_buffer=512,
        log_output=sys.stderr,
        protocol_version=4,
        reap_interval=15.0,
        recent_intent_timeout=5 * 60.0,
        reconnect_interval=30.0,
        reconnect_timeout=24 * 3600.0,
        queue_check_interval=30.0,
        queue_depth_warning=128,
        max_queue_depth=4096,
        tombstone_timeout=24 * 3600.0,
        flap_timeout=60.0,
        query_timeout_mult=16,
        query_response_size_limit=1024,
        query_size_limit=1024,
        enable_name_conflict_resolution=True,
        disable_coordinates=False,
        user_event_size_limit=512,
    )