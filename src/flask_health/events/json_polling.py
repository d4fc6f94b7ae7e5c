# src/flask_health/events/json_polling.py
# Sink that keeps recent emissions in memory and serves them as JSON
#
# HOW IT WORKS:
# =============
# Time is cut into fixed intervals (one minute by default).
# Every emission is added to the aggregation of the interval it falls in.
# Intervals older than the retention window (five minutes by default) are dropped.
# A small Flask app, running on its own thread and port, returns the retained
# intervals on GET /health so a poller (dashboard, healthd-style collector)
# can pick them up.

import socket
import threading
import time
import uuid
from collections import deque
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify
from werkzeug.serving import make_server

from flask_health.logger import get_logger

from .stream import CompletionStatus, Sink

logger = get_logger(__name__)

# How many error messages each error counter remembers
MAX_ERROR_SAMPLES = 10


class _TimerAggregation:
    def __init__(self):
        self.count = 0
        self.nanos_sum = 0
        self.nanos_min = 0
        self.nanos_max = 0

    def add(self, nanos: int) -> None:
        if self.count == 0 or nanos < self.nanos_min:
            self.nanos_min = nanos
        if self.count == 0 or nanos > self.nanos_max:
            self.nanos_max = nanos
        self.count += 1
        self.nanos_sum += nanos

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "nanos_sum": self.nanos_sum,
            "nanos_min": self.nanos_min,
            "nanos_max": self.nanos_max,
            "nanos_avg": self.nanos_sum / self.count if self.count else 0,
        }


class _ErrorCounter:
    def __init__(self):
        self.count = 0
        self.samples = deque(maxlen=MAX_ERROR_SAMPLES)

    def add(self, err: BaseException) -> None:
        self.count += 1
        self.samples.append(str(err))

    def to_dict(self) -> Dict[str, Any]:
        return {"count": self.count, "errors": list(self.samples)}


class _Aggregation:
    """Events, errors, timers and gauges for one scope (interval total or one job)."""

    def __init__(self):
        self.events: Dict[str, int] = {}
        self.errors: Dict[str, _ErrorCounter] = {}
        self.timers: Dict[str, _TimerAggregation] = {}
        self.gauges: Dict[str, float] = {}

    def add_event(self, event: str) -> None:
        self.events[event] = self.events.get(event, 0) + 1

    def add_error(self, event: str, err: BaseException) -> None:
        self.errors.setdefault(event, _ErrorCounter()).add(err)

    def add_timing(self, event: str, nanos: int) -> None:
        self.timers.setdefault(event, _TimerAggregation()).add(nanos)

    def set_gauge(self, event: str, value: float) -> None:
        self.gauges[event] = value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events": dict(self.events),
            "event_errs": {name: c.to_dict() for name, c in self.errors.items()},
            "timers": {name: t.to_dict() for name, t in self.timers.items()},
            "gauges": dict(self.gauges),
        }


class _JobAggregation(_Aggregation):
    def __init__(self):
        super().__init__()
        self.completions = _TimerAggregation()
        self.statuses: Dict[str, int] = {status.value: 0 for status in CompletionStatus}

    def add_completion(self, status: CompletionStatus, nanos: int) -> None:
        self.completions.add(nanos)
        self.statuses[status.value] += 1

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["timing"] = self.completions.to_dict()
        for status, count in self.statuses.items():
            data[f"count_{status}"] = count
        return data


class _IntervalAggregation(_Aggregation):
    def __init__(self, interval_start: float):
        super().__init__()
        self.interval_start = interval_start
        self.jobs: Dict[str, _JobAggregation] = {}

    def job(self, name: str) -> _JobAggregation:
        return self.jobs.setdefault(name, _JobAggregation())

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["interval_start"] = self.interval_start
        data["jobs"] = {name: job.to_dict() for name, job in self.jobs.items()}
        return data


class JsonPollingSink(Sink):
    """
    Aggregate emissions per interval and serve them as JSON.

    Args:
        interval: Length of one aggregation interval, in seconds
        retain: How far back intervals are kept, in seconds
        clock: Returns the current time in seconds (tests pass a fake)
    """

    def __init__(self, interval: float = 60.0, retain: float = 300.0, clock=time.time):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self.retain = retain
        self.clock = clock
        self.instance_id = uuid.uuid4().hex
        self._intervals: Dict[int, _IntervalAggregation] = {}
        self._lock = threading.Lock()
        self._server = None
        self._thread: Optional[threading.Thread] = None

    # ---------------------------------------------
    # Aggregation
    # ---------------------------------------------

    def _current(self) -> _IntervalAggregation:
        # Caller holds self._lock
        now = self.clock()
        index = int(now // self.interval)
        aggregation = self._intervals.get(index)
        if aggregation is None:
            aggregation = _IntervalAggregation(index * self.interval)
            self._intervals[index] = aggregation
            self._prune(now)
        return aggregation

    def _prune(self, now: float) -> None:
        # Keep retain / interval buckets, the current one included
        oldest = int((now - self.retain) // self.interval)
        for index in [i for i in self._intervals if i <= oldest]:
            del self._intervals[index]

    def emit_event(self, job, event, kvs):
        with self._lock:
            current = self._current()
            current.add_event(event)
            current.job(job).add_event(event)

    def emit_event_err(self, job, event, err, kvs):
        with self._lock:
            current = self._current()
            current.add_error(event, err)
            current.job(job).add_error(event, err)

    def emit_timing(self, job, event, nanos, kvs):
        with self._lock:
            current = self._current()
            current.add_timing(event, nanos)
            current.job(job).add_timing(event, nanos)

    def emit_gauge(self, job, event, value, kvs):
        with self._lock:
            current = self._current()
            current.set_gauge(event, value)
            current.job(job).set_gauge(event, value)

    def emit_complete(self, job, status, nanos, kvs):
        with self._lock:
            self._current().job(job).add_completion(status, nanos)

    def snapshot(self) -> Dict[str, Any]:
        """
        Return the retained intervals, oldest first, as plain JSON-able data.
        """
        with self._lock:
            self._prune(self.clock())
            aggregations: List[Dict[str, Any]] = [
                self._intervals[index].to_dict() for index in sorted(self._intervals)
            ]
        return {
            "instance_id": self.instance_id,
            "interval_duration": self.interval,
            "aggregations": aggregations,
        }

    # ---------------------------------------------
    # HTTP server
    # ---------------------------------------------

    def create_app(self) -> Flask:
        """
        Build the Flask app that exposes the snapshot.
        """
        app = Flask(__name__)

        @app.route('/health', methods=['GET'])
        def health():
            return jsonify(self.snapshot()), 200

        return app

    @property
    def server_address(self):
        """(host, port) the server is bound to, or None when not serving."""
        if self._server is None:
            return None
        return self._server.server_address[:2]

    def start_server(self, addr: str) -> None:
        """
        Bind to addr ("host:port" or ":port" for all interfaces, port 0 picks a
        free port) and serve on a background thread.

        The bind happens before this method returns, so the listener is live
        as soon as start_server() does.
        """
        host, port = parse_bind_address(addr)

        # Bind here rather than inside make_server(): werkzeug exits the
        # process on a bind error, we want an OSError instead
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        listener = socket.create_server((host, port), family=family)
        try:
            self._server = make_server(host, port, self.create_app(), threaded=True, fd=listener.fileno())
        finally:
            # make_server() works on a duplicate of the descriptor
            listener.close()

        # daemon=True: the server never keeps the process alive on its own
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="health-json-sink",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"JSON health sink serving on http://{host}:{self.server_address[1]}/health")

    def stop_server(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None


def parse_bind_address(addr: str):
    """
    Split a bind address "host:port" into its parts.

    An empty host (":5020") binds every interface; port 0 picks a free port.

    Raises:
        ValueError: no port, or the port is not 0-65535
    """
    # Same shape as the StatsD address, but port 0 and an empty host are allowed
    host, sep, port_text = addr.rpartition(":")
    if not sep:
        raise ValueError(f"JSON sink bind address must be host:port or :port, got {addr!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"JSON sink bind port must be a number, got {port_text!r}") from None
    if not (0 <= port <= 65535):
        raise ValueError(f"JSON sink bind port must be between 0 and 65535, got {port}")
    # Empty host: every IPv4 interface
    return host.strip("[]") or "0.0.0.0", port
