"""Configuration module for the Mandrill exporter.

Provides settings loading and logging setup.
"""

from mandrill_exporter.config.logging_config import configure_logging
from mandrill_exporter.config.settings import (
    DEFAULT_API_URL,
    Settings,
    get_settings,
    load_settings,
    reload_settings,
)

__all__ = [
    "DEFAULT_API_URL",
    "Settings",
    "get_settings",
    "load_settings",
    "reload_settings",
    "configure_logging",
]
