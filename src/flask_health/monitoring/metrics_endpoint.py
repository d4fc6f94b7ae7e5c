# src/flask_health/monitoring/metrics_endpoint.py
# Sets up the Prometheus metrics endpoint
# Only useful together with a PrometheusSink on the stream: the sink records
# the metrics, this endpoint lets Prometheus scrape (pull) them

from flask import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from flask_health.logger import get_logger

logger = get_logger(__name__)


def setup_metrics_endpoint(app, registry=REGISTRY):
    """
    Set up the /metrics endpoint for Prometheus to scrape.

    Args:
        app: Flask application instance
        registry: Registry to export (the global one by default)

    Example Prometheus output:
        # HELP health_events_total Total number of health events
        # TYPE health_events_total counter
        health_events_total{job="ping",event="pong"} 3.0
    """
    @app.route('/metrics', methods=['GET'])
    def metrics():
        try:
            return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
        except Exception as e:
            # A broken collector must not break the app
            logger.error(f"Error generating metrics: {e}", exc_info=True)
            return Response(
                f"Error generating metrics: {str(e)}",
                status=500,
                mimetype='text/plain'
            )

    logger.info("Prometheus metrics endpoint registered at /metrics")
