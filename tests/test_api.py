import pytest
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry
from prometheus_client.parser import text_string_to_metric_families

from flask_health.api import create_app
from flask_health.events import CompletionStatus, PrometheusSink, Stream
from flask_health.events.prometheus_sink import _METRICS_BY_REGISTRY


@pytest.fixture
def client(stream):
    return create_app(stream, recover=True).test_client()


def test_ping_reports_event_timing_and_completion(client, recorder):
    response = client.get('/ping?name=ops')

    assert response.status_code == 200
    assert response.get_json() == {"reply": "pong, ops"}
    assert [e[1:3] for e in recorder.of_kind("event")] == [("ping", "pong")]
    assert [e[1:3] for e in recorder.of_kind("timing")] == [("ping", "build_reply")]
    assert [(c[1], c[2]) for c in recorder.of_kind("complete")] == [("ping", CompletionStatus.SUCCESS)]


def test_boom_is_recovered(client, recorder):
    response = client.get('/boom')

    assert response.status_code == 500
    assert [e[2] for e in recorder.of_kind("error")] == ["Panic at /boom"]


def test_health_route(client):
    assert client.get('/health').get_json()["status"] == "healthy"


def test_metrics_endpoint_exports_prometheus_sink(stream, client):
    stream.add_sink(PrometheusSink())

    client.get('/ping')
    response = client.get('/metrics')

    assert response.status_code == 200
    assert response.mimetype == CONTENT_TYPE_LATEST.split(";")[0]
    samples = [
        sample
        for family in text_string_to_metric_families(response.get_data(as_text=True))
        for sample in family.samples
        if sample.name == "health_events_total"
    ]
    assert any(s.labels == {"job": "ping", "event": "pong"} and s.value >= 1 for s in samples)


def test_prometheus_sinks_on_separate_registries_do_not_share_metrics():
    first, second = CollectorRegistry(), CollectorRegistry()
    Stream().add_sink(PrometheusSink(first)).new_job("ping").event("pong")
    PrometheusSink(second)

    labels = {"job": "ping", "event": "pong"}
    assert first.get_sample_value("health_events_total", labels) == 1.0
    assert second.get_sample_value("health_events_total", labels) in (None, 0.0)
    assert first in _METRICS_BY_REGISTRY
    assert PrometheusSink(first).metrics is _METRICS_BY_REGISTRY[first]
