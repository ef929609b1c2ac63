"""Configuration package for stream-stats.

Re-exports the settings symbols so that callers can write::

    from stream_stats.config import Settings, load_settings
"""

from __future__ import annotations

from stream_stats.config.settings import (
    DEFAULT_CONFIG_FILE,
    Settings,
    get_settings,
    load_settings,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "Settings",
    "get_settings",
    "load_settings",
]
