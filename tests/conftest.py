import pytest
import requests
from flask import Flask

from flask_health.events import Sink, Stream
from flask_health.monitoring import setup_health_middleware


class RecordingSink(Sink):
    """Keeps every emission as a tuple so tests can assert on them."""

    def __init__(self):
        self.emissions = []

    def emit_event(self, job, event, kvs):
        self.emissions.append(("event", job, event, kvs))

    def emit_event_err(self, job, event, err, kvs):
        self.emissions.append(("error", job, event, err, kvs))

    def emit_timing(self, job, event, nanos, kvs):
        self.emissions.append(("timing", job, event, nanos, kvs))

    def emit_gauge(self, job, event, value, kvs):
        self.emissions.append(("gauge", job, event, value, kvs))

    def emit_complete(self, job, status, nanos, kvs):
        self.emissions.append(("complete", job, status, nanos, kvs))

    def of_kind(self, kind):
        return [e for e in self.emissions if e[0] == kind]


@pytest.fixture
def recorder_factory():
    return RecordingSink


@pytest.fixture
def recorder():
    return RecordingSink()


@pytest.fixture
def stream(recorder):
    return Stream().add_sink(recorder)


@pytest.fixture
def make_app(stream):
    """Build a bare Flask app with the health middleware installed."""

    def _make(recover=True):
        app = Flask(__name__)
        app.testing = True
        setup_health_middleware(app, stream, recover=recover)
        return app

    return _make


@pytest.fixture
def poll_health():
    """GET /health on a running JSON sink, ignoring any proxy settings."""
    session = requests.Session()
    session.trust_env = False

    def _poll(server_address):
        host, port = server_address
        return session.get(f"http://{host}:{port}/health", timeout=5)

    yield _poll
    session.close()
