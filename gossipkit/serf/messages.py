"""Gossip message types and their msgpack wire encoding.

Every encoded message is a single type byte followed by a msgpack map whose
keys are the wire field names.
"""

from __future__ import annotations

import dataclasses
import enum
import ipaddress
from dataclasses import MISSING, dataclass, field
from typing import Any, Optional

import msgpack

from gossipkit.serf.lamport import LamportTime

_NANOSECONDS = 1_000_000_000


class MessageType(enum.IntEnum):
    """Types of gossip messages."""

    LEAVE = 0
    JOIN = 1
    PUSH_PULL = 2
    USER_EVENT = 3
    QUERY = 4
    QUERY_RESPONSE = 5
    CONFLICT_RESPONSE = 6
    KEY_REQUEST = 7
    KEY_RESPONSE = 8
    RELAY = 9


class QueryFlag(enum.IntFlag):
    """Flags carried by queries and query responses."""

    ACK = 1
    NO_BROADCAST = 2


class FilterType(enum.IntEnum):
    """Kinds of query filters."""

    NODE = 0
    TAG = 1


def _as_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _wire(name: str, *, default: Any = MISSING, default_factory: Any = MISSING,
          to_wire: Any = None, from_wire: Any = None) -> Any:
    metadata = {"wire": name}
    if to_wire is not None:
        metadata["to_wire"] = to_wire
    if from_wire is not None:
        metadata["from_wire"] = from_wire
    return field(default=default, default_factory=default_factory, metadata=metadata)


def _bytes_field(name: str) -> Any:
    return _wire(name, default=b"", from_wire=_as_bytes)


@dataclass
class MessageJoin:
    """Broadcast after joining, to associate the node with a Lamport time."""

    ltime: LamportTime = _wire("LTime", default=0)
    node: str = _wire("Node", default="")


@dataclass
class MessageLeave:
    """Broadcast to signal the intention to leave."""

    ltime: LamportTime = _wire("LTime", default=0)
    node: str = _wire("Node", default="")


@dataclass
class MessagePushPull:
    """Full state exchange; large but infrequent."""

    ltime: LamportTime = _wire("LTime", default=0)
    status_ltimes: dict[str, LamportTime] = _wire("StatusLTimes", default_factory=dict,
                                                  from_wire=lambda v: dict(v or {}))
    left_members: list[str] = _wire("LeftMembers", default_factory=list,
                                    from_wire=lambda v: list(v or []))
    event_ltime: LamportTime = _wire("EventLTime", default=0)
    events: list[Any] = _wire("Events", default_factory=list,
                              from_wire=lambda v: list(v or []))
    query_ltime: LamportTime = _wire("QueryLTime", default=0)


@dataclass
class MessageUserEvent:
    """A user-generated event; ``cc`` means it may be coalesced."""

    ltime: LamportTime = _wire("LTime", default=0)
    name: str = _wire("Name", default="")
    payload: bytes = _bytes_field("Payload")
    cc: bool = _wire("CC", default=False)


@dataclass
class MessageQuery:
    """A query; ``timeout`` is in seconds."""

    ltime: LamportTime = _wire("LTime", default=0)
    id: int = _wire("ID", default=0)
    addr: bytes = _bytes_field("Addr")
    port: int = _wire("Port", default=0)
    filters: list[bytes] = _wire("Filters", default_factory=list,
                                 from_wire=lambda v: [_as_bytes(x) for x in v or []])
    flags: int = _wire("Flags", default=0)
    relay_factor: int = _wire("RelayFactor", default=0)
    timeout: float = _wire("Timeout", default=0.0,
                           to_wire=lambda s: int(s * _NANOSECONDS),
                           from_wire=lambda n: (n or 0) / _NANOSECONDS)
    name: str = _wire("Name", default="")
    payload: bytes = _bytes_field("Payload")

    def ack(self) -> bool:
        """Return True if the sender asked for acknowledgements."""
        return bool(self.flags & QueryFlag.ACK)

    def no_broadcast(self) -> bool:
        """Return True if the query must not be re-broadcast."""
        return bool(self.flags & QueryFlag.NO_BROADCAST)


@dataclass
class MessageQueryResponse:
    """A response to a query."""

    ltime: LamportTime = _wire("LTime", default=0)
    id: int = _wire("ID", default=0)
    from_: str = _wire("From", default="")
    flags: int = _wire("Flags", default=0)
    payload: bytes = _bytes_field("Payload")

    def ack(self) -> bool:
        """Return True if this response is an acknowledgement."""
        return bool(self.flags & QueryFlag.ACK)


@dataclass
class FilterTag:
    """A tag filter: a regular expression applied to one tag's value."""

    tag: str = _wire("Tag", default="")
    expr: str = _wire("Expr", default="")


def _to_wire(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {}
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            convert = f.metadata.get("to_wire")
            if convert is not None:
                item = convert(item)
            out[f.metadata.get("wire", f.name)] = _to_wire(item)
        return out
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return {_to_wire(k): _to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(v) for v in value]
    return value


def _from_wire(cls: type, obj: Any) -> Any:
    if not isinstance(obj, dict):
        raise ValueError(f"expected a map for {cls.__name__}, got {type(obj).__name__}")
    kwargs = {}
    for f in dataclasses.fields(cls):
        wire = f.metadata.get("wire", f.name)
        if wire not in obj:
            continue
        item = obj[wire]
        convert = f.metadata.get("from_wire")
        kwargs[f.name] = convert(item) if convert is not None else item
    return cls(**kwargs)


def _pack(value: Any) -> bytes:
    return msgpack.packb(_to_wire(value), use_bin_type=True)


def _unpack_one(buf: bytes) -> tuple[Any, int]:
    """Decode the first msgpack value in ``buf``; return it and bytes consumed."""
    unpacker = msgpack.Unpacker(raw=False, strict_map_key=False)
    unpacker.feed(buf)
    try:
        obj = unpacker.unpack()
    except (msgpack.UnpackException, ValueError, TypeError) as exc:
        raise ValueError(f"failed to decode message: {exc}") from exc
    return obj, unpacker.tell()


def encode_message(message_type: MessageType, msg: Any) -> bytes:
    """Encode ``msg`` prefixed with its type byte."""
    return bytes([int(message_type)]) + _pack(msg)


def decode_message(buf: bytes, cls: Optional[type] = None) -> Any:
    """Decode a message body (without its type byte).

    With a message dataclass as ``cls`` an instance of it is returned;
    otherwise the decoded value itself, checked against ``cls`` if given.
    Raises ``ValueError`` on malformed input.
    """
    obj, _ = _unpack_one(bytes(buf))
    if cls is None:
        return obj
    if dataclasses.is_dataclass(cls):
        return _from_wire(cls, obj)
    if not isinstance(obj, cls):
        raise ValueError(f"expected {cls.__name__}, got {type(obj).__name__}")
    return obj


def encode_relay_message(message_type: MessageType, addr: tuple[str, int], msg: Any) -> bytes:
    """Wrap a message for relaying to ``addr`` (host, port) through another node."""
    host, port = addr
    header = {"DestAddr": {"IP": ipaddress.ip_address(host).packed, "Port": int(port), "Zone": ""}}
    return (
        bytes([MessageType.RELAY])
        + msgpack.packb(header, use_bin_type=True)
        + encode_message(message_type, msg)
    )


def decode_relay_message(buf: bytes) -> tuple[tuple[str, int], bytes]:
    """Split a relay message into its destination and the wrapped message.

    The wrapped message keeps its own type byte.
    """
    buf = bytes(buf)
    if not buf or buf[0] != MessageType.RELAY:
        raise ValueError("not a relay message")
    header, used = _unpack_one(buf[1:])
    try:
        dest = header["DestAddr"]
        ip = ipaddress.ip_address(_as_bytes(dest["IP"]))
        port = int(dest["Port"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"bad relay header: {exc}") from exc
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return (str(ip), port), buf[1 + used:]


def encode_filter(filter_type: FilterType, filt: Any) -> bytes:
    """Encode a query filter prefixed with its filter type byte."""
    return bytes([int(filter_type)]) + _pack(filt)