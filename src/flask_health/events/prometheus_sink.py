# src/flask_health/events/prometheus_sink.py
# Sink that mirrors emissions into prometheus_client metrics
# Prometheus scrapes (pulls) them from the /metrics endpoint,
# see monitoring.metrics_endpoint.setup_metrics_endpoint

import threading
import weakref
from typing import Dict

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from .stream import Sink

# Metric families can only be registered once per registry, so every
# PrometheusSink sharing a registry shares the same metric objects.
# Entries go away with their registry.
_METRICS_BY_REGISTRY: "weakref.WeakKeyDictionary[CollectorRegistry, Dict[str, object]]" = weakref.WeakKeyDictionary()
_METRICS_LOCK = threading.Lock()


def _metrics_for(registry: CollectorRegistry) -> Dict[str, object]:
    with _METRICS_LOCK:
        metrics = _METRICS_BY_REGISTRY.get(registry)
        if metrics is not None:
            return metrics

        metrics = {
            # Events per job (e.g. health_events_total{job="ping", event="db_query"})
            "events": Counter(
                "health_events_total",
                "Total number of health events",
                ["job", "event"],
                registry=registry,
            ),
            "errors": Counter(
                "health_event_errors_total",
                "Total number of health error events",
                ["job", "event"],
                registry=registry,
            ),
            "timings": Histogram(
                "health_timing_seconds",
                "Timings reported through the health stream",
                ["job", "event"],
                registry=registry,
            ),
            "gauges": Gauge(
                "health_gauge",
                "Last gauge value reported through the health stream",
                ["job", "event"],
                registry=registry,
            ),
            "jobs": Histogram(
                "health_job_duration_seconds",
                "Duration of completed jobs",
                ["job", "status"],
                registry=registry,
            ),
        }
        _METRICS_BY_REGISTRY[registry] = metrics
        return metrics


class PrometheusSink(Sink):
    """
    Record emissions as Prometheus counters, histograms and gauges.

    Args:
        registry: Registry to register the metrics in (the global one by
                  default, which is what generate_latest() exports)
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry
        self.metrics = _metrics_for(registry)

    def emit_event(self, job, event, kvs):
        self.metrics["events"].labels(job=job, event=event).inc()

    def emit_event_err(self, job, event, err, kvs):
        self.metrics["errors"].labels(job=job, event=event).inc()

    def emit_timing(self, job, event, nanos, kvs):
        self.metrics["timings"].labels(job=job, event=event).observe(nanos / 1_000_000_000)

    def emit_gauge(self, job, event, value, kvs):
        self.metrics["gauges"].labels(job=job, event=event).set(value)

    def emit_complete(self, job, status, nanos, kvs):
        self.metrics["jobs"].labels(job=job, status=status.value).observe(nanos / 1_000_000_000)
