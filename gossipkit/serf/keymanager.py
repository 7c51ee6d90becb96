"""Gathering of responses to cluster-wide encryption keyring queries."""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from gossipkit.serf.messages import MessageType, decode_message
from gossipkit.serf.query import NodeResponse

logger = logging.getLogger(__name__)


@dataclass
class KeyRequest:
    """Parameters broadcast to all nodes for a key operation."""

    key: bytes = field(
        default=b"",
        metadata={"wire": "Key", "from_wire": lambda v: bytes(v or b"")},
    )


@dataclass
class KeyResponse:
    """Aggregated outcome of a key query across the cluster.

    ``messages`` maps node names to their messages; ``keys`` maps the
    base64-encoded keys to the number of nodes that have them installed.
    """

    messages: dict[str, str] = field(default_factory=dict)
    num_nodes: int = 0
    num_resp: int = 0
    num_err: int = 0
    keys: dict[str, int] = field(default_factory=dict)


@dataclass
class KeyRequestOptions:
    """Optional parameters of a keyring operation."""

    relay_factor: int = 0


class KeyRequestError(RuntimeError):
    """Raised when a key query did not succeed on every node."""

    def __init__(self, message: str, response: KeyResponse) -> None:
        super().__init__(message)
        self.response = response


def _format_payload(payload: bytes) -> str:
    return "[" + " ".join(str(b) for b in payload) + "]"


def _iter_responses(
    responses: Union[Iterable[Optional[NodeResponse]], "queue.Queue[Any]"],
) -> Iterable[Optional[NodeResponse]]:
    if isinstance(responses, queue.Queue):
        return iter(responses.get, None)
    return responses


def _decode_node_response(payload: bytes) -> dict[str, Any]:
    body = decode_message(payload[1:], dict)
    return {
        "result": bool(body.get("Result", False)),
        "message": body.get("Message") or "",
        "keys": list(body.get("Keys") or []),
    }


def collect_key_responses(
    responses: Union[Iterable[Optional[NodeResponse]], "queue.Queue[Any]"],
    num_nodes: int,
) -> KeyResponse:
    """Compose node responses into a :class:`KeyResponse`.

    ``responses`` is an iterable of :class:`NodeResponse` or a queue of them;
    a ``None`` item ends the stream. Collection stops early once
    ``num_nodes`` responses have arrived.
    """
    resp = KeyResponse(num_nodes=num_nodes)
    for r in _iter_responses(responses):
        if r is None:
            break
        resp.num_resp += 1
        payload = bytes(r.payload)

        if len(payload) < 1 or payload[0] != MessageType.KEY_RESPONSE:
            resp.messages[r.from_] = (
                f"Invalid key query response type: {_format_payload(payload)}"
            )
            resp.num_err += 1
        else:
            try:
                node = _decode_node_response(payload)
            except (ValueError, AttributeError):
                resp.messages[r.from_] = (
                    f"Failed to decode key query response: {_format_payload(payload)}"
                )
                resp.num_err += 1
            else:
                if not node["result"]:
                    resp.messages[r.from_] = node["message"]
                    resp.num_err += 1
                elif node["message"]:
                    resp.messages[r.from_] = node["message"]
                    logger.warning("serf: %s", node["message"])
                for key in node["keys"]:
                    resp.keys[key] = resp.keys.get(key, 0) + 1

        if resp.num_resp == resp.num_nodes:
            break
    return resp


def check_key_response(response: KeyResponse) -> KeyResponse:
    """Return ``response`` if every node succeeded, else raise KeyRequestError."""
    if response.num_err != 0:
        raise KeyRequestError(
            f"{response.num_err}/{response.num_nodes} nodes reported failure", response
        )
    if response.num_resp != response.num_nodes:
        raise KeyRequestError(
            f"{response.num_resp}/{response.num_nodes} nodes reported success", response
        )
    return response