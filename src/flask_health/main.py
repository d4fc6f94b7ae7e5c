# src/flask_health/main.py
# Entry point of the demo server
# Builds the health stream from HEALTH_* settings, creates the Flask app and
# runs Flask's development server

from flask_health.api import create_app
from flask_health.config import load_app_config
from flask_health.logger import get_logger, setup_logging
from flask_health.monitoring import SinkConfigurationError, new_stream_from_settings

logger = get_logger(__name__)


def main():
    """
    Start the demo server.

    In production, run create_app() under a WSGI server instead, e.g.:
        gunicorn -w 4 -b 0.0.0.0:8000 'flask_health.api:create_app()'
    """
    app_config = load_app_config()
    setup_logging(app_config.log_level)

    logger.info("Starting flask-health demo server")
    logger.info(f"Environment: {app_config.environment}")

    try:
        # Sinks are attached here, before any request is served
        stream = new_stream_from_settings()
    except SinkConfigurationError as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise

    app = create_app(stream, debug=app_config.debug)

    logger.info(f"Starting API server on {app_config.api_host}:{app_config.api_port}")
    try:
        app.run(
            host=app_config.api_host,
            port=app_config.api_port,
            debug=app_config.debug,
        )
    except KeyboardInterrupt:
        logger.info("Received shutdown signal (Ctrl+C)")
    finally:
        logger.info("Application shutdown complete")


if __name__ == "__main__":
    main()
