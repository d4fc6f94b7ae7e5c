# src/flask_health/config/__init__.py
# Exports the settings object and the config dataclasses

from .settings import settings, Settings, HealthConfig, AppConfig, load_app_config, SINK_FAILURE_POLICIES

__all__ = [
    "settings",
    "Settings",
    "HealthConfig",
    "AppConfig",
    "load_app_config",
    "SINK_FAILURE_POLICIES",
]
