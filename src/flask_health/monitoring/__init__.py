# src/flask_health/monitoring/__init__.py
# Flask integration: stream construction, request middleware, job helpers

from .stream_factory import (
    new_stream,
    new_stream_from_settings,
    SinkFailurePolicy,
    SinkConfigurationError,
)
from .middleware import setup_health_middleware, Health
from .jobs import (
    RequestHealth,
    StreamNotAttachedError,
    get_request_health,
    get_stream,
    start_job,
    time_since,
)
from .metrics_endpoint import setup_metrics_endpoint

__all__ = [
    "new_stream",
    "new_stream_from_settings",
    "SinkFailurePolicy",
    "SinkConfigurationError",
    "setup_health_middleware",
    "Health",
    "RequestHealth",
    "StreamNotAttachedError",
    "get_request_health",
    "get_stream",
    "start_job",
    "time_since",
    "setup_metrics_endpoint",
]
