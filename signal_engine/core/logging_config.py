"""
Logging setup for processes embedding the engine.

The engine modules only ever call logging.getLogger(__name__); the host
application decides where records go. configure_logging is the default setup
used by scripts and tests.
"""

import logging
from typing import Optional

from signal_engine.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Apply basicConfig using the configured log level.

    Args:
        settings: Optional settings override (defaults to get_settings())
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)
