# src/flask_health/monitoring/middleware.py
# Flask middleware that attaches the health stream to every request
#
# What it does per request:
# 1. Before the view: store RequestHealth(stream) on flask.g
# 2. If the view raises (and recovery is on): report the exception to the
#    stream, tagged with the request URI, and answer 500 with an empty body
# 3. At teardown: complete a job the view started but did not complete

from typing import Optional

from flask import Flask, Response, g, request
from werkzeug.exceptions import HTTPException

from flask_health.events import CompletionStatus, Stream
from flask_health.logger import get_logger

from .jobs import G_ATTR, RequestHealth

logger = get_logger(__name__)


def _request_uri() -> str:
    # Path plus query string, the way the client sent it
    query = request.query_string.decode("latin-1")
    return f"{request.path}?{query}" if query else request.path


def setup_health_middleware(app: Flask, stream: Stream, recover: bool = True):
    """
    Install the health middleware on a Flask app.

    Args:
        app: Flask application instance
        stream: Stream shared by every request
        recover: Report unhandled exceptions and turn them into an empty
                 500 response. When False, exceptions propagate to Flask's
                 own error handling untouched.

    Note:
        With recover=True this registers app.errorhandler(Exception), which
        replaces an app-level Exception handler registered before it (and is
        replaced by one registered after it). Handlers for more specific
        exception classes or status codes keep working.
    """

    @app.before_request
    def attach_health_stream():
        # Runs before every view, so the stream is always set before it is read
        setattr(g, G_ATTR, RequestHealth(stream=stream))

    if recover:
        @app.errorhandler(Exception)
        def recover_exception(error):
            # 404, 405, abort(...) are regular HTTP answers, not failures
            if isinstance(error, HTTPException):
                return error

            uri = _request_uri()
            logger.error(f"Recovered exception at {uri}: {error!r}", exc_info=error)
            stream.event_err(f"Panic at {uri}", error)

            state = g.get(G_ATTR)
            if state is not None and state.job is not None:
                state.job.complete(CompletionStatus.PANIC)

            return Response(status=500)

    @app.teardown_request
    def complete_pending_job(error: Optional[BaseException]):
        state = g.get(G_ATTR)
        if state is None or state.job is None:
            return
        status = CompletionStatus.ERROR if error is not None else CompletionStatus.SUCCESS
        state.job.complete(status)

    logger.info(f"Health middleware enabled (recover={recover})")


class Health:
    """
    Flask extension wrapper around setup_health_middleware().

    Example:
        stream = new_stream("", "", "127.0.0.1:5020")
        app = Flask(__name__)
        Health(app, stream)

        # or, with an application factory
        health = Health(stream=stream, recover=False)
        health.init_app(app)
    """

    def __init__(self, app: Optional[Flask] = None, stream: Optional[Stream] = None, recover: bool = True):
        self.stream = stream
        self.recover = recover
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        if self.stream is None:
            # Imported here: building from settings may start the JSON sink server
            from .stream_factory import new_stream_from_settings
            self.stream = new_stream_from_settings()
        setup_health_middleware(app, self.stream, recover=self.recover)
        app.extensions["health"] = self
