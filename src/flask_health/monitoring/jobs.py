# src/flask_health/monitoring/jobs.py
# Per-request health state and the helpers views use to report through it
#
# The middleware stores a RequestHealth object on Flask's 'g' (request-local
# storage) before any view runs. Views never touch 'g' directly; they call
# start_job() / get_stream(), which fail loudly if the middleware is missing.

import time
from dataclasses import dataclass
from typing import Optional

from flask import g

from flask_health.events import Job, Stream

# Attribute name of the RequestHealth object on flask.g
G_ATTR = "health"


class StreamNotAttachedError(LookupError):
    """
    Raised when a view asks for the health stream but the middleware did not
    run for the current request.

    This is a wiring bug (middleware not installed on the app), not a
    runtime condition to recover from.
    """
    pass


@dataclass
class RequestHealth:
    """
    Health state of one request.

    stream: the shared stream, set by the middleware
    job: job started by start_job() for this request, if any
    job_started_at: wall clock (ns) when that job was started
    """
    stream: Stream
    job: Optional[Job] = None
    job_started_at: Optional[int] = None


def get_request_health() -> RequestHealth:
    """
    Return the current request's RequestHealth.

    Raises:
        StreamNotAttachedError: the middleware did not run for this request
        RuntimeError: called outside a Flask application context
    """
    state = g.get(G_ATTR)
    if state is None:
        raise StreamNotAttachedError(
            "No health stream attached to this request; is the health middleware installed?"
        )
    return state


def get_stream() -> Stream:
    return get_request_health().stream


def start_job(name: str) -> Job:
    """
    Start a job for the current request.

    Records the start time on the request state; the middleware completes the
    job when the request ends if the view did not.

    Args:
        name: Job name, usually the route name

    Returns:
        The new Job

    Example:
        @app.route('/ping')
        def ping():
            job = start_job("ping")
            job.event("pong")
            return "pong"
    """
    state = get_request_health()
    job = state.stream.new_job(name)
    state.job = job
    state.job_started_at = time.time_ns()
    return job


def time_since(start_ns: int) -> int:
    """
    Nanoseconds elapsed since start_ns (a time.time_ns() value).

    Suitable for Job.timing(). Not validated: a start time in the future
    gives a negative result.
    """
    return time.time_ns() - start_ns
