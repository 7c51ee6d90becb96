import random
from dataclasses import dataclass

import pytest

from gossipkit.serf.messages import (
    FilterTag,
    FilterType,
    MessageQuery,
    QueryFlag,
    decode_message,
    encode_filter,
)
from gossipkit.serf.query import (
    NodeResponse,
    QueryParam,
    QueryResponse,
    default_query_timeout,
    k_random_members,
    should_process_query,
)


@dataclass
class _Member:
    name: str
    status: str = "alive"


def test_default_query_timeout_single_member():
    assert default_query_timeout(0.2, 16, 1) == pytest.approx(0.2 * 16)


@pytest.mark.parametrize("members, factor", [(0, 0), (9, 1), (10, 2), (99, 2), (100, 3)])
def test_default_query_timeout_scales_with_log(members, factor):
    assert default_query_timeout(1.0, 1, members) == pytest.approx(factor)


def test_default_query_param_values():
    params = QueryParam()
    assert params.filter_nodes is None
    assert params.filter_tags is None
    assert params.request_ack is False
    assert params.encode_filters() == []


def test_encode_filters():
    q = QueryParam(
        filter_nodes=["foo", "bar"],
        filter_tags={"role": "^web", "datacenter": "aws$"},
    )
    filters = q.encode_filters()
    assert len(filters) == 3
    assert filters[0][0] == FilterType.NODE
    assert decode_message(filters[0][1:], list) == ["foo", "bar"]
    assert filters[1][0] == FilterType.TAG
    assert filters[2][0] == FilterType.TAG
    tags = {decode_message(f[1:], FilterTag).tag for f in filters[1:]}
    assert tags == {"role", "datacenter"}


NODE = "zip"
TAGS = {"role": "webserver", "datacenter": "east-aws"}


def test_should_process_matching():
    q = QueryParam(
        filter_nodes=["foo", "bar", "zip"],
        filter_tags={"role": "^web", "datacenter": "aws$"},
    )
    assert should_process_query(q.encode_filters(), NODE, TAGS) is True


def test_should_process_omitted_node():
    q = QueryParam(filter_nodes=["foo", "bar"])
    assert should_process_query(q.encode_filters(), NODE, TAGS) is False


def test_should_process_missing_tag():
    q = QueryParam(filter_tags={"other": "cool"})
    assert should_process_query(q.encode_filters(), NODE, TAGS) is False


def test_should_process_bad_tag():
    q = QueryParam(filter_tags={"role": "db"})
    assert should_process_query(q.encode_filters(), NODE, TAGS) is False


def test_should_process_no_filters():
    assert should_process_query([], NODE, TAGS) is True


def test_should_process_bad_regex():
    filt = encode_filter(FilterType.TAG, FilterTag(tag="role", expr="(unclosed"))
    assert should_process_query([filt], NODE, TAGS) is False


def test_should_process_unknown_filter_type():
    assert should_process_query([bytes([7]) + b"\x90"], NODE, TAGS) is False


def test_should_process_undecodable_node_filter():
    assert should_process_query([bytes([FilterType.NODE]) + b"\xc1"], NODE, TAGS) is False


def _nodes():
    states = ["alive", "failed", "left"]
    return [_Member(f"test{i}", states[i % 3]) for i in range(90)]


def _reject(m):
    return m.name == "test0" or m.status != "alive"


def test_k_random_members_respects_filter():
    for _ in range(3):
        picked = k_random_members(3, _nodes(), _reject)
        assert len(picked) == 3
        assert len({m.name for m in picked}) == 3
        assert all(m.name != "test0" and m.status == "alive" for m in picked)


def test_k_random_members_varies():
    random.seed(12345)
    draws = {tuple(m.name for m in k_random_members(3, _nodes(), _reject)) for _ in range(10)}
    assert len(draws) > 1


def test_k_random_members_all_filtered():
    assert k_random_members(3, _nodes(), lambda m: True) == []


def test_k_random_members_empty_list():
    assert k_random_members(3, [], None) == []


def test_k_random_members_fewer_than_k():
    members = [_Member("a"), _Member("b")]
    picked = k_random_members(5, members)
    assert sorted(m.name for m in picked) == ["a", "b"]


def test_query_response_ack_queue_only_when_requested():
    with_ack = QueryResponse(3, MessageQuery(id=7, ltime=3, timeout=10.0, flags=QueryFlag.ACK))
    without = QueryResponse(3, MessageQuery(id=8, timeout=10.0))
    assert with_ack.ack_queue is not None
    assert with_ack.acks == set()
    assert without.ack_queue is None
    assert (with_ack.id, with_ack.ltime) == (7, 3)


def test_query_response_send_and_close():
    resp = QueryResponse(2, MessageQuery(timeout=10.0))
    assert resp.finished() is False
    resp.send_response(NodeResponse("alpha", b"hi"))
    assert resp.responses == {"alpha"}
    assert resp.response_queue.get_nowait() == NodeResponse("alpha", b"hi")

    resp.close()
    assert resp.finished() is True
    assert resp.response_queue.get_nowait() is None
    resp.send_response(NodeResponse("beta"))
    assert resp.responses == {"alpha"}
    assert resp.response_queue.empty()


def test_query_response_full_queue_raises():
    resp = QueryResponse(1, MessageQuery(timeout=10.0))
    resp.send_response(NodeResponse("alpha"))
    with pytest.raises(RuntimeError, match="dropping"):
        resp.send_response(NodeResponse("beta"))
    assert resp.responses == {"alpha"}


def test_query_response_past_deadline_is_finished():
    resp = QueryResponse(1, MessageQuery(timeout=-1.0))
    assert resp.finished() is True


def test_close_is_idempotent_and_ends_ack_queue():
    resp = QueryResponse(1, MessageQuery(timeout=10.0, flags=QueryFlag.ACK))
    resp.close()
    resp.close()
    assert resp.ack_queue.get_nowait() is None
    assert resp.ack_queue.empty()
    assert resp.response_queue.qsize() == 1