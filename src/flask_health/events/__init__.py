# src/flask_health/events/__init__.py
# Event stream, jobs and sinks

from .stream import Stream, Job, Sink, CompletionStatus, GENERAL_JOB
from .writer import WriterSink
from .statsd_sink import StatsDSink
from .json_polling import JsonPollingSink
from .prometheus_sink import PrometheusSink

__all__ = [
    "Stream",
    "Job",
    "Sink",
    "CompletionStatus",
    "GENERAL_JOB",
    "WriterSink",
    "StatsDSink",
    "JsonPollingSink",
    "PrometheusSink",
]
