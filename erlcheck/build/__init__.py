"""Build environment resolution for Erlang source files.

This module provides:
- Application root and build system detection (rebar3, rebar, make)
- rebar3 lock file ranking to find the project root
- Compiler option and code path extraction from build files
- Execution of external build tools
"""

from erlcheck.build.detector import BuildSystemDetector
from erlcheck.build.executor import CommandResult, CommandRunner
from erlcheck.build.loader import BuildConfigLoader, remove_warnings_as_errors
from erlcheck.build.models import (
    BuildLayout,
    BuildOptions,
    BuildSystem,
    LockCandidate,
    SearchPathAccumulator,
)

__all__ = [
    "BuildSystem",
    "BuildLayout",
    "BuildOptions",
    "LockCandidate",
    "SearchPathAccumulator",
    "BuildSystemDetector",
    "BuildConfigLoader",
    "remove_warnings_as_errors",
    "CommandRunner",
    "CommandResult",
]
