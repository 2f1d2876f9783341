"""Configuration management for erlcheck."""

from erlcheck.core.config.loader import ConfigLoader
from erlcheck.core.config.settings import (
    LoggingSettings,
    Settings,
    ToolSettings,
    get_settings,
)

__all__ = [
    "ConfigLoader",
    "Settings",
    "ToolSettings",
    "LoggingSettings",
    "get_settings",
]
