# gossipkit

Building blocks for gossip-based cluster membership. The package holds network
coordinates, logical clocks, events, event coalescing, query filtering and the
msgpack wire format.

## Contents

### `gossipkit.coordinate`: Vivaldi network coordinates

- `coordinate`
  - `Config` and `default_config()` hold the tuning parameters.
  - `Coordinate` is a position. It has the methods `new`, `clone`, `is_valid`, `is_compatible_with`, `apply_force`, `distance_to` and `raw_distance_to`.
  - `DimensionalityConflictError` is raised when two coordinates do not have the same dimensionality.
  - The vector helpers are `add`, `diff`, `mul`, `magnitude` and `unit_vector_at`.
- `client`
  - `Client` refines a node's coordinate from observed round-trip times. It has the methods `update`, `distance_to`, `get_coordinate`, `set_coordinate`, `forget_node` and `stats`.
  - `stats` returns a `ClientStats` value, which counts the resets.
  - `update` raises `ValueError` when the coordinate is incompatible or invalid. It also raises `ValueError` when the rtt is outside 0–10 seconds.
- `phantom`
  - `generate_line`, `generate_grid`, `generate_split`, `generate_circle` and `generate_random` build synthetic truth matrices.
  - `generate_clients` creates the clients.
  - `simulate` runs the algorithm over a truth matrix.
  - `evaluate` returns a `Stats` value with `error_avg` and `error_max`, and prints a one-line summary.

All times in this part are seconds, given as floats. Distances from
`Coordinate.distance_to` are truncated to nanosecond resolution.

### `gossipkit.serf`: membership pieces

- `lamport`
  - `LamportClock` is a thread-safe clock with `time`, `increment` and `witness`.
- `event`
  - `EventType`, `MemberEvent`, `UserEvent` and `Query` are the events.
- `messages`
  - `MessageType`, `QueryFlag` and `FilterType` are the enumerations of the wire format.
  - The message dataclasses are `MessageJoin`, `MessageLeave`, `MessagePushPull`, `MessageUserEvent`, `MessageQuery`, `MessageQueryResponse` and `FilterTag`.
  - `encode_message`, `decode_message`, `encode_relay_message`, `decode_relay_message` and `encode_filter` encode and decode messages.
- `broadcast`
  - `Broadcast` is a queued message. It can set a `threading.Event` when it has finished.
- `coalesce`
  - `Coalescer` is the abstract base class.
  - `coalesce_loop` runs the coalescing loop.
  - `coalesced_event_queue` starts the loop on a background thread and returns its input queue.
- `coalesce_member`
  - `MemberEventCoalescer` keeps the latest event per member. It drops repeats, except updates.
- `coalesce_user`
  - `UserEventCoalescer` keeps, per event name, the events with the newest Lamport time.
- `query`
  - `QueryParam.encode_filters` encodes the query filters.
  - `should_process_query` checks the filters against a node.
  - `default_query_timeout` computes the default timeout.
  - `k_random_members` picks members at random.
  - `QueryResponse` and `NodeResponse` collect acks and responses on queues.
- `config`
  - `Config` and `default_config()` hold the settings, with durations in seconds.
  - `PROTOCOL_VERSION_MAP` maps protocol versions.
- `keymanager`
  - `collect_key_responses` folds node responses into a `KeyResponse`.
  - `check_key_response` raises `KeyRequestError` unless every node succeeded.
  - `KeyRequest` and `KeyRequestOptions` are the request types.
- `internal_query`
  - `internal_query_name` and `is_internal_query` handle the names of internal queries.
  - `check_response_size` checks a response against its size limit.
  - `key_list_response_with_correct_size` truncates a `NodeKeyResponse` until the encoded response fits its size limit.

## What it does not do

There is no running membership agent. Nothing here does the following:

- opens sockets or sends messages;
- joins or leaves a cluster;
- keeps a member list or an encryption keyring;
- writes snapshots;
- provides a command-line tool.

`Config` carries settings for such an agent, such as `snapshot_path`,
`keyring_file` and `memberlist_config`. Nothing in the package acts on them.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example: network coordinates

```python
from gossipkit.coordinate.coordinate import Coordinate, default_config
from gossipkit.coordinate.client import Client

config = default_config()
client = Client(config)

other = Coordinate.new(config)
other.vec[0] = 0.010

client.update("node-b", other, 0.025)   # rtt in seconds
print(client.distance_to(other))        # estimated rtt in seconds
```

## Example: Lamport clock

```python
from gossipkit.serf.lamport import LamportClock

clock = LamportClock()
clock.increment()   # 1
clock.witness(41)
clock.time()        # 42
```

## Example: wire messages

```python
from gossipkit.serf.messages import MessageLeave, MessageType, encode_message, decode_message

raw = encode_message(MessageType.LEAVE, MessageLeave(ltime=3, node="foo"))
assert raw[0] == MessageType.LEAVE
leave = decode_message(raw[1:], MessageLeave)
assert leave == MessageLeave(ltime=3, node="foo")
```

## Example: query filters

```python
from gossipkit.serf.query import QueryParam, should_process_query

filters = QueryParam(filter_nodes=["foo", "zip"], filter_tags={"role": "^web"}).encode_filters()
should_process_query(filters, "zip", {"role": "webserver"})   # True
should_process_query(filters, "bar", {"role": "webserver"})   # False
```

## Example: coalescing user events

```python
import queue
import threading

from gossipkit.serf.coalesce import coalesced_event_queue
from gossipkit.serf.coalesce_user import UserEventCoalescer
from gossipkit.serf.event import UserEvent

out = queue.Queue()
shutdown = threading.Event()
events_in = coalesced_event_queue(out, shutdown, 0.005, 0.005, UserEventCoalescer())

events_in.put(UserEvent(ltime=1, name="deploy", coalesce=True))
events_in.put(UserEvent(ltime=2, name="deploy", coalesce=True))
print(out.get(timeout=1).ltime)   # 2: the older event was coalesced away
shutdown.set()
```