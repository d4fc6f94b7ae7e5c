# src/flask_health/events/statsd_sink.py
# Sink that forwards emissions to a StatsD daemon
# The wire protocol (UDP datagrams) is handled by the 'statsd' client library;
# this module only decides metric names and units.

import re
from typing import Tuple

import statsd

from .stream import Sink

# Characters StatsD backends (Graphite, Datadog, Telegraf) accept in a name part
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_\-]")


def sanitize(name: str) -> str:
    """
    Make a job or event name safe to use as one StatsD name segment.

    Dots are replaced too: a dot inside an event name would otherwise
    create an extra level in the metric hierarchy.
    """
    return _UNSAFE_CHARS.sub("_", name)


def parse_address(addr: str) -> Tuple[str, int]:
    """
    Split "host:port" into its parts.

    Raises:
        ValueError: if the address has no port or the port is not 1-65535
    """
    host, sep, port_text = addr.rpartition(":")
    if not sep or not host:
        raise ValueError(f"StatsD address must be host:port, got {addr!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"StatsD port must be a number, got {port_text!r}") from None
    if not (1 <= port <= 65535):
        raise ValueError(f"StatsD port must be between 1 and 65535, got {port}")
    # Allow "[::1]:8125" for IPv6 daemons
    return host.strip("[]"), port


class StatsDSink(Sink):
    """
    Report emissions as StatsD counters, timers and gauges.

    Every emission is sent twice: once under the bare event name (totals
    across jobs) and once under "<job>.<event>" (per job).

    Metric names (with prefix "myapp"):
        event        -> myapp.<event>, myapp.<job>.<event>             (counter)
        event_err    -> myapp.<event>.error, myapp.<job>.<event>.error (counter)
        timing       -> myapp.<event>, myapp.<job>.<event>             (timer, ms)
        gauge        -> myapp.<event>, myapp.<job>.<event>             (gauge)
        complete     -> myapp.<job>.<status>                           (timer, ms)

    Args:
        addr: StatsD daemon address, "host:port"
        app_name: Used as the metric prefix (may be empty)

    Raises:
        ValueError: bad address format
        OSError: host cannot be resolved or the socket cannot be created
    """

    def __init__(self, addr: str, app_name: str = ""):
        host, port = parse_address(addr)
        prefix = sanitize(app_name) if app_name else None
        ipv6 = ":" in host
        # StatsClient resolves the host right away, so a bad host fails here
        # and not on the first emission
        self.client = statsd.StatsClient(host, port, prefix=prefix, ipv6=ipv6)
        self.addr = addr

    def emit_event(self, job, event, kvs):
        event = sanitize(event)
        with self.client.pipeline() as pipe:
            pipe.incr(event)
            pipe.incr(f"{sanitize(job)}.{event}")

    def emit_event_err(self, job, event, err, kvs):
        event = sanitize(event)
        with self.client.pipeline() as pipe:
            pipe.incr(f"{event}.error")
            pipe.incr(f"{sanitize(job)}.{event}.error")

    def emit_timing(self, job, event, nanos, kvs):
        event = sanitize(event)
        millis = nanos / 1_000_000
        with self.client.pipeline() as pipe:
            pipe.timing(event, millis)
            pipe.timing(f"{sanitize(job)}.{event}", millis)

    def emit_gauge(self, job, event, value, kvs):
        event = sanitize(event)
        with self.client.pipeline() as pipe:
            pipe.gauge(event, value)
            pipe.gauge(f"{sanitize(job)}.{event}", value)

    def emit_complete(self, job, status, nanos, kvs):
        self.client.timing(f"{sanitize(job)}.{status.value}", nanos / 1_000_000)
