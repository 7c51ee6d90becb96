"""Queries internal to the membership layer and sizing of key list responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from gossipkit.serf.lamport import LamportTime
from gossipkit.serf.messages import MessageQueryResponse, MessageType, encode_message

logger = logging.getLogger(__name__)

# Queries whose names start with this prefix are handled internally and are
# never forwarded to a client.
INTERNAL_QUERY_PREFIX = "_serf_"

PING_QUERY = "ping"
CONFLICT_QUERY = "conflict"
INSTALL_KEY_QUERY = "install-key"
USE_KEY_QUERY = "use-key"
REMOVE_KEY_QUERY = "remove-key"
LIST_KEYS_QUERY = "list-keys"

# Smallest encoded size of one key in a list-keys response; bounds how many
# keys can fit into a response of a given size.
MIN_ENCODED_KEY_LENGTH = 25


@dataclass
class NodeKeyResponse:
    """One node's answer to a key query.

    ``result`` tells whether the operation succeeded, ``message`` carries
    errors or other information and ``keys`` lists installed keys.
    """

    result: bool = field(default=False, metadata={"wire": "Result"})
    message: str = field(
        default="", metadata={"wire": "Message", "from_wire": lambda v: v or ""}
    )
    keys: list[str] = field(
        default_factory=list,
        metadata={"wire": "Keys", "from_wire": lambda v: list(v or [])},
    )


def internal_query_name(name: str) -> str:
    """Return the full name of the internal query ``name``."""
    return INTERNAL_QUERY_PREFIX + name


def is_internal_query(name: str) -> bool:
    """Return True if ``name`` is the name of an internal query."""
    return name.startswith(INTERNAL_QUERY_PREFIX)


def check_response_size(raw: bytes, limit: int) -> None:
    """Raise ``ValueError`` if the encoded response is larger than ``limit`` bytes."""
    if len(raw) > limit:
        raise ValueError(f"response exceeds limit of {limit} bytes")


def key_list_response_with_correct_size(
    response: NodeKeyResponse,
    ltime: LamportTime,
    query_id: int,
    node_name: str,
    size_limit: int,
) -> tuple[bytes, MessageQueryResponse]:
    """Encode a key list response, truncating its keys until it fits.

    ``response`` is truncated in place and its message explains the
    truncation. Returns the encoded query response and the response itself.
    Raises ``ValueError`` if no truncation makes it fit.
    """
    max_list_keys = size_limit // MIN_ENCODED_KEY_LENGTH
    actual = len(response.keys)
    for i in range(max_list_keys, -1, -1):
        buf = encode_message(MessageType.KEY_RESPONSE, response)
        qresp = MessageQueryResponse(
            ltime=ltime, id=query_id, from_=node_name, payload=buf
        )
        raw = encode_message(MessageType.QUERY_RESPONSE, qresp)
        try:
            check_response_size(raw, size_limit)
        except ValueError:
            response.keys = response.keys[:i]
            response.message = (
                f"truncated key list response, showing first {i} of {actual} keys"
            )
            continue

        if actual > i:
            logger.warning("serf: %s", response.message)
        return raw, qresp

    raise ValueError("Failed to truncate response so that it fits into message")