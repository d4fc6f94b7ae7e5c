# src/flask_health/events/stream.py
# Event stream, jobs and the sink interface
#
# WHAT IS A STREAM?
# =================
# A stream is the reporting channel the whole application shares.
# Code reports things that happened ("events"), failures ("errors"),
# how long something took ("timings"), point-in-time values ("gauges"),
# and how a unit of work ended ("completions").
# The stream does not store anything itself: it forwards every emission
# to each attached sink (stdout, StatsD, JSON polling server, Prometheus).
#
# WHAT IS A JOB?
# ==============
# A job is a named unit of work, usually one request to one route.
# Emissions made through a job carry the job's name, so sinks can report
# "events of the /ping route" separately from "events of everything".

import time
from enum import Enum
from typing import Any, Dict, List, Optional

# Job name used for emissions made directly on the stream
GENERAL_JOB = "general"


class CompletionStatus(Enum):
    """
    How a job ended.
    """
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    PANIC = "panic"
    ERROR = "error"
    JUNK = "junk"


class Sink:
    """
    Destination for stream emissions.

    Subclasses override the emit_* methods they care about; the defaults
    ignore the emission. Every method receives the job name, so one sink
    instance serves all jobs of a stream.
    """

    def emit_event(self, job: str, event: str, kvs: Dict[str, str]) -> None:
        pass

    def emit_event_err(self, job: str, event: str, err: BaseException, kvs: Dict[str, str]) -> None:
        pass

    def emit_timing(self, job: str, event: str, nanos: int, kvs: Dict[str, str]) -> None:
        pass

    def emit_gauge(self, job: str, event: str, value: float, kvs: Dict[str, str]) -> None:
        pass

    def emit_complete(self, job: str, status: CompletionStatus, nanos: int, kvs: Dict[str, str]) -> None:
        pass


def _merge_kvs(*layers: Optional[Dict[str, Any]]) -> Dict[str, str]:
    merged: Dict[str, str] = {}
    for layer in layers:
        if layer:
            for key, value in layer.items():
                merged[str(key)] = str(value)
    return merged


class Stream:
    """
    Fan-out reporting channel.

    Sinks are attached once at configuration time, before the web server
    starts handling requests; after that the stream is only read, so it is
    shared between request threads without locking.

    Example:
        stream = Stream()
        stream.add_sink(WriterSink())
        stream.event("started")
        job = stream.new_job("import_users")
        job.timing("fetch", 1500000)
        job.complete(CompletionStatus.SUCCESS)
    """

    def __init__(self):
        self.sinks: List[Sink] = []
        self.kvs: Dict[str, str] = {}

    def add_sink(self, sink: Sink) -> "Stream":
        self.sinks.append(sink)
        return self

    def key_value(self, key: str, value: Any) -> "Stream":
        """Attach a key/value that is sent with every emission of this stream."""
        self.kvs[str(key)] = str(value)
        return self

    def new_job(self, name: str) -> "Job":
        return Job(self, name)

    # Stream-level emissions are reported under the "general" job name

    def event(self, event: str, kvs: Optional[Dict[str, Any]] = None) -> None:
        self._emit_event(GENERAL_JOB, event, _merge_kvs(self.kvs, kvs))

    def event_err(self, event: str, err: BaseException, kvs: Optional[Dict[str, Any]] = None) -> BaseException:
        self._emit_event_err(GENERAL_JOB, event, err, _merge_kvs(self.kvs, kvs))
        return err

    def timing(self, event: str, nanos: int, kvs: Optional[Dict[str, Any]] = None) -> None:
        self._emit_timing(GENERAL_JOB, event, nanos, _merge_kvs(self.kvs, kvs))

    def gauge(self, event: str, value: float, kvs: Optional[Dict[str, Any]] = None) -> None:
        self._emit_gauge(GENERAL_JOB, event, value, _merge_kvs(self.kvs, kvs))

    # Fan-out helpers used by both Stream and Job

    def _emit_event(self, job, event, kvs):
        for sink in self.sinks:
            sink.emit_event(job, event, kvs)

    def _emit_event_err(self, job, event, err, kvs):
        for sink in self.sinks:
            sink.emit_event_err(job, event, err, kvs)

    def _emit_timing(self, job, event, nanos, kvs):
        for sink in self.sinks:
            sink.emit_timing(job, event, nanos, kvs)

    def _emit_gauge(self, job, event, value, kvs):
        for sink in self.sinks:
            sink.emit_gauge(job, event, value, kvs)

    def _emit_complete(self, job, status, nanos, kvs):
        for sink in self.sinks:
            sink.emit_complete(job, status, nanos, kvs)


class Job:
    """
    Named unit of work reporting through a stream.

    The job remembers when it was created (wall clock, nanoseconds) so that
    complete() can report the total duration.
    """

    def __init__(self, stream: Stream, name: str):
        self.stream = stream
        self.name = name
        self.kvs: Dict[str, str] = {}
        self.start = time.time_ns()
        self.status: Optional[CompletionStatus] = None

    @property
    def completed(self) -> bool:
        return self.status is not None

    def key_value(self, key: str, value: Any) -> "Job":
        self.kvs[str(key)] = str(value)
        return self

    def _kvs(self, extra):
        return _merge_kvs(self.stream.kvs, self.kvs, extra)

    def event(self, event: str, kvs: Optional[Dict[str, Any]] = None) -> None:
        self.stream._emit_event(self.name, event, self._kvs(kvs))

    def event_err(self, event: str, err: BaseException, kvs: Optional[Dict[str, Any]] = None) -> BaseException:
        """
        Report a failure and hand the error back.

        Returning the error lets callers write `raise job.event_err("save", e)`.
        """
        self.stream._emit_event_err(self.name, event, err, self._kvs(kvs))
        return err

    def timing(self, event: str, nanos: int, kvs: Optional[Dict[str, Any]] = None) -> None:
        self.stream._emit_timing(self.name, event, nanos, self._kvs(kvs))

    def gauge(self, event: str, value: float, kvs: Optional[Dict[str, Any]] = None) -> None:
        self.stream._emit_gauge(self.name, event, value, self._kvs(kvs))

    def complete(self, status: CompletionStatus = CompletionStatus.SUCCESS,
                 kvs: Optional[Dict[str, Any]] = None) -> None:
        """
        Mark the job as finished and report its duration.

        Only the first call is reported; later calls are ignored.
        """
        if self.completed:
            return
        self.status = status
        self.stream._emit_complete(self.name, status, time.time_ns() - self.start, self._kvs(kvs))
