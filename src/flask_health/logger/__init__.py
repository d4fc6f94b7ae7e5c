# src/flask_health/logger/__init__.py
# Exports the logging setup functions
# Named 'logger' instead of 'logging' to avoid conflict with Python's built-in module

from .logging import setup_logging, get_logger

__all__ = [
    "setup_logging",
    "get_logger",
]
