# src/flask_health/api/__init__.py
# Exports the demo application factory

from .app import create_app

__all__ = [
    "create_app",
]
