"""
Core utilities module for erlcheck.
"""

from erlcheck.core.utils.paths import (
    absname,
    find_file,
    find_files,
    has_match,
    path_depth,
    relativize_path_maybe,
    walk_up,
    wildcard,
)

__all__ = [
    "absname",
    "walk_up",
    "find_file",
    "find_files",
    "wildcard",
    "has_match",
    "path_depth",
    "relativize_path_maybe",
]
