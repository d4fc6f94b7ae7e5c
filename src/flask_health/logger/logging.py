# src/flask_health/logger/logging.py
# Centralized logging configuration
# Everything the package reports about itself (sinks being attached, sink
# failures, recovered exceptions) goes through loggers created here.
# Note: the folder is named 'logger' to avoid clashing with the built-in 'logging'
#
# Importing the package does not configure logging: the host application owns
# the root logger. The demo server (flask_health.main) calls setup_logging().

import logging
import sys
from typing import Optional


def setup_logging(level: Optional[str] = None):
    """
    Send log records to stdout, which is where the sink announcements
    ("HEALTH: Adding stdout health sink...") are expected to appear.

    Args:
        level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL),
               INFO when None
    """
    numeric_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=numeric_level,
        handlers=[handler]
    )


def get_logger(name: Optional[str] = None):
    """
    Get a logger instance for a specific module.

    Args:
        name: Name of the logger (usually __name__ from the calling module)
              If None, returns the root logger

    Returns:
        A logging.Logger
    """
    return logging.getLogger(name)
