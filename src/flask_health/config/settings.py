# src/flask_health/config/settings.py
# Centralized configuration for the health middleware and the demo application
# Every value comes from an environment variable with a sensible default, so the
# same code runs locally (stdout sink only) and in production (StatsD + JSON sink)

import os
from dataclasses import dataclass, field

# Accepted values for HEALTH_SINK_FAILURE_POLICY
# They mirror monitoring.stream_factory.SinkFailurePolicy (kept as strings here so
# the config module does not import the monitoring package)
SINK_FAILURE_POLICIES = ("fallback-silent", "fallback-report", "fail-fast")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class HealthConfig:
    """
    Health stream configuration.

    Decides which sinks the stream gets and how the middleware behaves.
    Empty addresses mean "sink not wanted".
    """
    # StatsD daemon address in "host:port" form
    # Empty string means no StatsD: events go to stdout instead
    statsd_addr: str = field(default_factory=lambda: os.getenv("HEALTH_STATSD_ADDR", ""))

    # Application name, used as the StatsD metric prefix
    app_name: str = field(default_factory=lambda: os.getenv("HEALTH_APP_NAME", ""))

    # Bind address for the JSON polling sink ("127.0.0.1:5020")
    # Empty string means the JSON sink is not started
    json_sink_addr: str = field(default_factory=lambda: os.getenv("HEALTH_JSON_SINK_ADDR", ""))

    # What to do when the StatsD sink cannot be built
    # fallback-report: stdout sink + error event (default)
    # fallback-silent: stdout sink only
    # fail-fast: raise SinkConfigurationError
    failure_policy: str = field(
        default_factory=lambda: os.getenv("HEALTH_SINK_FAILURE_POLICY", "fallback-report")
    )

    # Whether the middleware recovers unhandled exceptions into a 500 response
    recover: bool = field(default_factory=lambda: _env_flag("HEALTH_RECOVER", "true"))

    # Also mirror every event into prometheus_client metrics
    prometheus: bool = field(default_factory=lambda: _env_flag("HEALTH_PROMETHEUS", "false"))


@dataclass
class AppConfig:
    """
    Configuration of the demo server (flask_health.main).

    Only the demo server reads these variables. They are loaded by
    load_app_config(), never at import time, so a host application that uses
    the same generic names (ENVIRONMENT, API_PORT, ...) for its own purposes
    can still import the middleware.
    """
    # Environment: development, staging, production
    environment: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    # Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Host and port where the demo API listens
    api_host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))

    # Debug mode - should be False in production
    debug: bool = field(default_factory=lambda: _env_flag("DEBUG", "false"))

    def validate(self):
        """
        Raises:
            ValueError: if a value is outside its accepted set
        """
        if self.environment not in ["development", "staging", "production"]:
            raise ValueError(f"ENVIRONMENT must be development, staging, or production, got {self.environment}")

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR, or CRITICAL, got {self.log_level}")

        if not (1 <= self.api_port <= 65535):
            raise ValueError(f"API_PORT must be between 1 and 65535, got {self.api_port}")


def load_app_config() -> AppConfig:
    """
    Read and validate the demo server configuration from the environment.

    Raises:
        RuntimeError: a variable is missing its expected format or range
    """
    try:
        cfg = AppConfig()
        cfg.validate()
    except ValueError as e:
        raise RuntimeError(f"Invalid configuration: {e}") from e
    return cfg


@dataclass
class Settings:
    """
    Settings read by the middleware itself.

    Other modules import the global instance and read values like:
    - settings.health.statsd_addr
    - settings.health.recover
    """
    health: HealthConfig = field(default_factory=HealthConfig)

    def validate(self):
        """
        Validate configuration values.

        Raises:
            ValueError: if a value is outside its accepted set
        """
        if self.health.failure_policy not in SINK_FAILURE_POLICIES:
            raise ValueError(
                "HEALTH_SINK_FAILURE_POLICY must be one of "
                f"{', '.join(SINK_FAILURE_POLICIES)}, got {self.health.failure_policy}"
            )


# Global settings instance shared by the whole package
settings = Settings()

# Catch HEALTH_* configuration errors at import time, before any server starts
try:
    settings.validate()
except ValueError as e:
    raise RuntimeError(f"Invalid configuration: {e}") from e
