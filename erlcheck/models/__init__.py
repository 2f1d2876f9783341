"""Data models module."""

from erlcheck.models.options import CheckOptions, CopySpec, NameMode, RemoteTarget

__all__ = [
    "CheckOptions",
    "CopySpec",
    "NameMode",
    "RemoteTarget",
]
