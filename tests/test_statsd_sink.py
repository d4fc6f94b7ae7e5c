import socket

import pytest

from flask_health.events import CompletionStatus, Stream
from flask_health.events.statsd_sink import StatsDSink, parse_address, sanitize


@pytest.fixture
def statsd_daemon():
    """A UDP socket standing in for the StatsD daemon."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2)
    yield sock
    sock.close()


def _addr(sock):
    host, port = sock.getsockname()
    return f"{host}:{port}"


def _receive(sock):
    data, _ = sock.recvfrom(4096)
    return data.decode().split("\n")


@pytest.mark.parametrize("addr, expected", [
    ("localhost:8125", ("localhost", 8125)),
    ("10.0.0.1:1", ("10.0.0.1", 1)),
    ("[::1]:8125", ("::1", 8125)),
])
def test_parse_address(addr, expected):
    assert parse_address(addr) == expected


@pytest.mark.parametrize("addr", ["localhost", ":8125", "localhost:abc", "localhost:0", "localhost:70000"])
def test_parse_address_rejects_bad_input(addr):
    with pytest.raises(ValueError):
        parse_address(addr)


def test_sanitize_replaces_unsafe_characters():
    assert sanitize("Panic at /boom?x=1") == "Panic_at__boom_x_1"
    assert sanitize("db.query-time_ms") == "db_query-time_ms"


def test_event_sends_total_and_per_job_counters(statsd_daemon):
    stream = Stream().add_sink(StatsDSink(_addr(statsd_daemon), "my app"))

    stream.new_job("ping").event("pong")

    assert _receive(statsd_daemon) == ["my_app.pong:1|c", "my_app.ping.pong:1|c"]


def test_error_counters(statsd_daemon):
    stream = Stream().add_sink(StatsDSink(_addr(statsd_daemon), "app"))

    stream.new_job("ping").event_err("db", RuntimeError("down"))

    assert _receive(statsd_daemon) == ["app.db.error:1|c", "app.ping.db.error:1|c"]


def test_timing_is_sent_in_milliseconds(statsd_daemon):
    stream = Stream().add_sink(StatsDSink(_addr(statsd_daemon)))

    stream.new_job("ping").timing("render", 2_000_000)

    lines = _receive(statsd_daemon)
    assert [line.split(":")[0] for line in lines] == ["render", "ping.render"]
    assert all(line.endswith("|ms") for line in lines)
    assert all(float(line.split(":")[1].split("|")[0]) == pytest.approx(2.0) for line in lines)


def test_completion_is_a_timer_per_status(statsd_daemon):
    stream = Stream().add_sink(StatsDSink(_addr(statsd_daemon), "app"))

    stream.new_job("ping").complete(CompletionStatus.SUCCESS)

    (line,) = _receive(statsd_daemon)
    assert line.startswith("app.ping.success:")
    assert line.endswith("|ms")


def test_unresolvable_host_fails_at_construction():
    with pytest.raises(OSError):
        StatsDSink("statsd.invalid:8125", "app")
