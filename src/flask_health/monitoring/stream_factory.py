# src/flask_health/monitoring/stream_factory.py
# Builds the health stream the middleware hands to every request
#
# Sink selection:
# - StatsD address given and the sink can be built -> StatsD only
# - StatsD address given but the sink fails        -> stdout (+ error event, by default)
# - no StatsD address                              -> stdout
# - JSON sink address given                        -> JSON polling sink, in addition
#
# Instrumentation should not take the application down, so a broken StatsD
# address downgrades to stdout instead of raising, unless fail-fast is asked for.

from enum import Enum
from typing import Optional

from flask_health.config import HealthConfig, settings
from flask_health.events import JsonPollingSink, PrometheusSink, StatsDSink, Stream, WriterSink
from flask_health.logger import get_logger

logger = get_logger(__name__)

# JSON polling sink aggregation interval and retention window, in seconds
JSON_SINK_INTERVAL = 60
JSON_SINK_RETAIN = 5 * 60


class SinkFailurePolicy(Enum):
    """
    What new_stream() does when the StatsD sink cannot be built.
    """
    FALLBACK_SILENT = "fallback-silent"  # stdout sink, nothing else
    FALLBACK_REPORT = "fallback-report"  # stdout sink + "new_statsd_sink" error event
    FAIL_FAST = "fail-fast"              # raise SinkConfigurationError


class SinkConfigurationError(Exception):
    """
    Raised by new_stream() under FAIL_FAST when a sink cannot be built.

    The original error is available as __cause__.
    """
    pass


def _add_stdout_sink(stream: Stream) -> None:
    logger.info("HEALTH: Adding stdout health sink...")
    stream.add_sink(WriterSink())


def new_stream(statsd_addr: str = "", app_name: str = "", json_sink_addr: str = "", *,
               failure_policy: SinkFailurePolicy = SinkFailurePolicy.FALLBACK_REPORT,
               prometheus: bool = False) -> Stream:
    """
    Create a stream with its sinks attached.

    Args:
        statsd_addr: StatsD daemon "host:port", empty for none
        app_name: Application name, the StatsD metric prefix
        json_sink_addr: Bind address for the JSON polling sink, empty for none
        failure_policy: How to handle a StatsD sink that cannot be built
        prometheus: Also attach a PrometheusSink

    Returns:
        The configured Stream

    Raises:
        SinkConfigurationError: only under SinkFailurePolicy.FAIL_FAST

    Example:
        # stdout only
        stream = new_stream()

        # stdout + JSON sink on its own HTTP server
        stream = new_stream("", "", "127.0.0.1:5020")

        # StatsD + JSON sink
        stream = new_stream("statsd.local:8125", "myapp", "127.0.0.1:5020")
    """
    failure_policy = SinkFailurePolicy(failure_policy)
    stream = Stream()

    if statsd_addr:
        try:
            statsd_sink = StatsDSink(statsd_addr, app_name)
        except (ValueError, OSError) as e:
            if failure_policy is SinkFailurePolicy.FAIL_FAST:
                raise SinkConfigurationError(f"Cannot create StatsD sink for {statsd_addr}: {e}") from e

            logger.warning(f"StatsD sink for {statsd_addr} unavailable: {e}")
            _add_stdout_sink(stream)
            if failure_policy is SinkFailurePolicy.FALLBACK_REPORT:
                stream.event_err("new_statsd_sink", e)
        else:
            logger.info("HEALTH: Adding statsd health sink...")
            stream.add_sink(statsd_sink)
    else:
        _add_stdout_sink(stream)

    if json_sink_addr:
        sink = JsonPollingSink(JSON_SINK_INTERVAL, JSON_SINK_RETAIN)
        try:
            sink.start_server(json_sink_addr)
        except (ValueError, OSError) as e:
            if failure_policy is SinkFailurePolicy.FAIL_FAST:
                raise SinkConfigurationError(f"Cannot serve JSON sink on {json_sink_addr}: {e}") from e

            logger.warning(f"JSON sink on {json_sink_addr} unavailable: {e}")
            if failure_policy is SinkFailurePolicy.FALLBACK_REPORT:
                stream.event_err("new_json_sink", e)
        else:
            stream.add_sink(sink)
            logger.info("HEALTH: Adding json health sink...")

    if prometheus:
        logger.info("HEALTH: Adding prometheus health sink...")
        stream.add_sink(PrometheusSink())

    return stream


def new_stream_from_settings(cfg: Optional[HealthConfig] = None) -> Stream:
    """
    Create a stream from HEALTH_* environment settings.

    Args:
        cfg: Health config to use, defaults to settings.health
    """
    cfg = cfg or settings.health
    return new_stream(
        cfg.statsd_addr,
        cfg.app_name,
        cfg.json_sink_addr,
        failure_policy=SinkFailurePolicy(cfg.failure_policy),
        prometheus=cfg.prometheus,
    )
