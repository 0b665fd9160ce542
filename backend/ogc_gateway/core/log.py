"""Logging setup for the gateway process.

Modules obtain their logger with ``logging.getLogger(__name__)``; this
module only installs a single stream handler on the package logger so
that records from every module share one format.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ogc_gateway.core import config

LOGGER_NAME = "ogc_gateway"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: config.Settings) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Calling it more than once only updates the level, so app factories
    used by tests do not stack handlers.

    Args:
        settings: Application settings providing the log level name.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(settings.log_level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
