"""Exception definitions module."""

from erlcheck.core.exceptions.errors import (
    BeamFormatError,
    BuildConfigError,
    CommandError,
    ConfigurationError,
    ErlCheckError,
    HotReloadError,
    ReplicationError,
    TermParseError,
)

__all__ = [
    "ErlCheckError",
    "BuildConfigError",
    "TermParseError",
    "BeamFormatError",
    "CommandError",
    "HotReloadError",
    "ReplicationError",
    "ConfigurationError",
]
