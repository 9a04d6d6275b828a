"""Logging setup for the application."""

import logging
import sys

from src.core.config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging once.

    Level comes from settings.log_level unless given explicitly. SQLAlchemy
    engine logging is left to `echo` (settings.debug).
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level or settings.log_level)
    _configured = True
