"""Query parameters, response collection and query filtering."""

from __future__ import annotations

import logging
import math
import queue
import random
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from gossipkit.serf.messages import (
    FilterTag,
    FilterType,
    MessageQuery,
    decode_message,
    encode_filter,
)

logger = logging.getLogger(__name__)


@dataclass
class QueryParam:
    """Options for a query; ``timeout`` is in seconds (0 means the default)."""

    filter_nodes: Optional[list[str]] = None
    filter_tags: Optional[dict[str, str]] = None
    request_ack: bool = False
    relay_factor: int = 0
    timeout: float = 0.0

    def encode_filters(self) -> list[bytes]:
        """Return the filters in their wire format: node filter first, then tags."""
        filters = []
        if self.filter_nodes:
            filters.append(encode_filter(FilterType.NODE, list(self.filter_nodes)))
        for tag, expr in (self.filter_tags or {}).items():
            filters.append(encode_filter(FilterType.TAG, FilterTag(tag=tag, expr=expr)))
        return filters


def default_query_timeout(gossip_interval: float, timeout_mult: int, num_members: int) -> float:
    """Return ``gossip_interval * timeout_mult * ceil(log10(num_members + 1))`` seconds."""
    return gossip_interval * timeout_mult * math.ceil(math.log10(num_members + 1))


@dataclass
class NodeResponse:
    """A single response from a node."""

    from_: str
    payload: bytes = b""


class QueryResponse:
    """Collects acknowledgements and responses for an outstanding query.

    Acks (node names) arrive on ``ack_queue``, which is None unless the query
    asked for acks; responses arrive on ``response_queue``. Once the query is
    closed, ``None`` is put on each queue to mark the end.
    """

    def __init__(self, num_nodes: int, query: MessageQuery) -> None:
        self.deadline = time.time() + query.timeout
        self.id = query.id
        self.ltime = query.ltime
        self.capacity = num_nodes
        self.response_queue: queue.Queue = queue.Queue()
        self.responses: set[str] = set()
        self.ack_queue: Optional[queue.Queue] = None
        self.acks: Optional[set[str]] = None
        if query.ack():
            self.ack_queue = queue.Queue()
            self.acks = set()
        self.closed = False
        self._lock = threading.Lock()

    def close(self) -> None:
        """Close the query so that no further deliveries happen."""
        with self._lock:
            if self.closed:
                return
            self.closed = True
            if self.ack_queue is not None:
                self.ack_queue.put(None)
            self.response_queue.put(None)

    def finished(self) -> bool:
        """Return True once the query is closed or past its deadline."""
        with self._lock:
            return self.closed or time.time() > self.deadline

    def send_response(self, response: NodeResponse) -> None:
        """Deliver a response unless the query is closed.

        Raises ``RuntimeError`` if the response queue is already full.
        """
        with self._lock:
            if self.closed:
                return
            if self.response_queue.qsize() >= self.capacity:
                raise RuntimeError("serf: Failed to deliver query response, dropping")
            self.response_queue.put(response)
            self.responses.add(response.from_)


def _matches_node_filter(body: bytes, node_name: str) -> bool:
    try:
        nodes = decode_message(body, list)
    except ValueError as exc:
        logger.warning("serf: failed to decode filterNodeType: %s", exc)
        return False
    return node_name in nodes


def _matches_tag_filter(body: bytes, tags: dict[str, str]) -> bool:
    try:
        filt = decode_message(body, FilterTag)
    except (ValueError, TypeError) as exc:
        logger.warning("serf: failed to decode filterTagType: %s", exc)
        return False
    try:
        return re.search(filt.expr, tags.get(filt.tag, "")) is not None
    except re.error as exc:
        logger.warning("serf: failed to compile filter regex (%s): %s", filt.expr, exc)
        return False


def should_process_query(filters: Sequence[bytes], node_name: str, tags: dict[str, str]) -> bool:
    """Return True if a node with this name and these tags passes every filter."""
    for raw in filters:
        if not raw:
            logger.warning("serf: query has an empty filter")
            return False
        kind, body = raw[0], bytes(raw[1:])
        if kind == FilterType.NODE:
            if not _matches_node_filter(body, node_name):
                return False
        elif kind == FilterType.TAG:
            if not _matches_tag_filter(body, tags):
                return False
        else:
            logger.warning("serf: query has unrecognized filter type: %d", kind)
            return False
    return True


def k_random_members(
    k: int,
    members: Sequence[Any],
    filter_func: Optional[Callable[[Any], bool]] = None,
) -> list[Any]:
    """Pick up to ``k`` distinct members at random.

    Members for which ``filter_func`` returns True are excluded. At most
    ``3 * len(members)`` random probes are made.
    """
    n = len(members)
    chosen: list[Any] = []
    names: set[str] = set()
    for _ in range(3 * n):
        if len(chosen) >= k:
            break
        member = members[random.randrange(n)]
        if filter_func is not None and filter_func(member):
            continue
        if member.name in names:
            continue
        names.add(member.name)
        chosen.append(member)
    return chosen