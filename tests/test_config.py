import socket
import sys

from gossipkit.serf.config import PROTOCOL_VERSION_MAP, Config, default_config


def test_default_config_protocol_version():
    c = default_config()
    assert c.protocol_version == 4


def test_default_protocol_version_is_mapped():
    c = default_config()
    assert c.protocol_version in PROTOCOL_VERSION_MAP


def test_default_config_node_name_is_hostname():
    assert default_config().node_name == socket.gethostname()


def test_default_config_values():
    c = default_config()
    assert c.broadcast_timeout == 5.0
    assert c.leave_propagate_delay == 1.0
    assert c.event_buffer == 512
    assert c.query_buffer == 512
    assert c.reap_interval == 15.0
    assert c.recent_intent_timeout == 300.0
    assert c.reconnect_interval == 30.0
    assert c.reconnect_timeout == 86400.0
    assert c.tombstone_timeout == 86400.0
    assert c.queue_depth_warning == 128
    assert c.max_queue_depth == 4096
    assert c.flap_timeout == 60.0
    assert c.query_timeout_mult == 16
    assert c.query_response_size_limit == 1024
    assert c.query_size_limit == 1024
    assert c.enable_name_conflict_resolution is True
    assert c.disable_coordinates is False
    assert c.user_event_size_limit == 512
    assert c.log_output is sys.stderr


def test_coalescing_disabled_by_default():
    c = default_config()
    assert c.coalesce_period == 0.0
    assert c.user_coalesce_period == 0.0


def test_init_allocates_tags():
    c = Config()
    assert c.tags is None
    c.init()
    assert c.tags == {}


def test_init_keeps_existing_tags():
    c = Config(tags={"role": "web"})
    c.init()
    assert c.tags == {"role": "web"}