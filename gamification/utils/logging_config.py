"""
Logging setup for the gamification service.

Configures the root logger once per process so gunicorn workers, the
Flask CLI and the test suite all share the same format.
"""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_configured = False


def setup_logging(level: str = None) -> None:
    """
    Configure root logging.

    Args:
        level: Log level name; defaults to the LOG_LEVEL env var, then INFO
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)

    # SQLAlchemy echoes every statement at INFO
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
