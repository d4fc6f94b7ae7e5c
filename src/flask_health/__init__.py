# src/flask_health/__init__.py
# Flask middleware for health event reporting (stdout, StatsD, JSON polling, Prometheus)
#
# Typical use:
#
#     from flask import Flask
#     from flask_health import Health, new_stream, start_job, time_since
#
#     stream = new_stream("statsd.local:8125", "myapp", "127.0.0.1:5020")
#     app = Flask(__name__)
#     Health(app, stream)
#
#     @app.route('/users')
#     def users():
#         job = start_job("users")
#         started = time.time_ns()
#         rows = load_users()
#         job.timing("load_users", time_since(started))
#         return jsonify(rows)

from flask_health.events import CompletionStatus, Job, Sink, Stream
from flask_health.monitoring import (
    Health,
    SinkConfigurationError,
    SinkFailurePolicy,
    StreamNotAttachedError,
    get_stream,
    new_stream,
    new_stream_from_settings,
    setup_health_middleware,
    start_job,
    time_since,
)

__version__ = "0.1.0"

__all__ = [
    "CompletionStatus",
    "Job",
    "Sink",
    "Stream",
    "Health",
    "SinkConfigurationError",
    "SinkFailurePolicy",
    "StreamNotAttachedError",
    "get_stream",
    "new_stream",
    "new_stream_from_settings",
    "setup_health_middleware",
    "start_job",
    "time_since",
]
