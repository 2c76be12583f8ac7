"""
Core infrastructure package for the Performance Signal Engine.

Provides:
- Configuration management via pydantic-settings
- Clock injection and lenient date parsing
- Shared numeric helpers (half-up rounding, finite coercion)
- Logging setup for host processes

Re-exports key components so other modules can write:

    from signal_engine.core import get_settings, parse_date, resolve_today
"""

from signal_engine.core.config import Settings, get_settings
from signal_engine.core.dates import (
    DateLike,
    add_days,
    date_key,
    parse_date,
    parse_datetime,
    resolve_today,
)
from signal_engine.core.logging_config import configure_logging
from signal_engine.core.numeric import (
    clamp,
    finite_or_none,
    percent_or_none,
    round_half_up,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Dates and clock (from dates.py)
    'DateLike',
    'add_days',
    'date_key',
    'parse_date',
    'parse_datetime',
    'resolve_today',
    # Logging (from logging_config.py)
    'configure_logging',
    # Numeric helpers (from numeric.py)
    'clamp',
    'finite_or_none',
    'percent_or_none',
    'round_half_up',
]
