# src/flask_health/api/app.py
# Demo Flask application wired with the health middleware
# Shows how views use start_job() / time_since(), and gives the recovery
# path a route to exercise

import time

from flask import Flask, jsonify, request

from flask_health.config import settings
from flask_health.events import Stream
from flask_health.logger import get_logger
from flask_health.monitoring import (
    new_stream_from_settings,
    setup_health_middleware,
    setup_metrics_endpoint,
    start_job,
    time_since,
)

logger = get_logger(__name__)


def create_app(stream: Stream = None, recover: bool = None, debug: bool = False):
    """
    Create and configure the demo Flask application.

    Args:
        stream: Health stream to use; built from HEALTH_* settings when None
        recover: Override HEALTH_RECOVER
        debug: Flask debug mode

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    app.config['DEBUG'] = debug

    if stream is None:
        stream = new_stream_from_settings()
    if recover is None:
        recover = settings.health.recover

    setup_health_middleware(app, stream, recover=recover)
    register_routes(app)
    setup_metrics_endpoint(app)

    logger.info(f"Flask application created: debug={debug}")
    return app


def register_routes(app: Flask):
    """
    Register the demo routes.

    Args:
        app: Flask application instance
    """

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({
            "status": "healthy",
            "service": "flask-health"
        }), 200

    @app.route('/ping', methods=['GET'])
    def ping():
        """
        Report one event and one timing through a job.
        """
        job = start_job("ping")
        started = time.time_ns()

        name = request.args.get("name", "world")
        job.event("pong")
        job.timing("build_reply", time_since(started))

        return jsonify({"reply": f"pong, {name}"}), 200

    @app.route('/boom', methods=['GET'])
    def boom():
        """
        Fail on purpose: the middleware reports it and answers 500.
        """
        start_job("boom")
        raise RuntimeError("boom requested")
