"""Data models for build environment resolution."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from erlcheck.core.exceptions.errors import BuildConfigError
from erlcheck.erlang.terms import Atom


class BuildSystem(Enum):
    """Supported build systems, in detection precedence order."""

    REBAR3 = "rebar3"
    REBAR = "rebar"
    MAKEFILE = "makefile"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class LockCandidate:
    """A ``rebar.lock`` file competing to mark the project root.

    Attributes:
        path: Absolute path of the lock file.
        priority: ``(bucket, depth)``; lower sorts first.
    """

    path: Path
    priority: tuple[int, int]

    @property
    def directory(self) -> Path:
        return self.path.parent


@dataclass
class BuildLayout:
    """Where a source file sits in its project.

    Attributes:
        app_root: Smallest enclosing OTP application directory.
        project_root: Top of the build (same as app_root unless a
            rebar3 lock file marks an ancestor).
        build_system: The detected build system.
        build_files: Marker files of the build system, nearest first.
    """

    app_root: Path
    project_root: Path
    build_system: BuildSystem
    build_files: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "app_root": str(self.app_root),
            "project_root": str(self.project_root),
            "build_system": self.build_system.value,
            "build_files": [str(f) for f in self.build_files],
        }


@dataclass
class BuildOptions:
    """Compiler options extracted from the build configuration.

    Include directories are kept inside ``options`` as ``{i, Dir}`` tuples,
    in the order the compiler should search them.
    """

    options: list[Any] = field(default_factory=list)
    # Descriptors that failed to load without failing the check
    errors: list[BuildConfigError] = field(default_factory=list)

    @property
    def include_dirs(self) -> list[Path]:
        return [
            Path(opt[1])
            for opt in self.options
            if isinstance(opt, tuple) and len(opt) == 2 and opt[0] == Atom("i")
        ]


class SearchPathAccumulator:
    """Ordered, de-duplicated set of code paths for the Erlang runtime.

    Registrations only ever append: the first registration of a directory
    fixes its position, later registrations of the same directory are
    ignored.
    """

    def __init__(self) -> None:
        self._paths: list[Path] = []
        self._seen: set[Path] = set()

    def add(self, path: Path) -> bool:
        """Register ``path``; return False if it was already registered."""
        if path in self._seen:
            return False
        self._seen.add(path)
        self._paths.append(path)
        return True

    def add_all(self, paths: Iterable[Path]) -> int:
        """Register several paths in order; return how many were new."""
        return sum(1 for path in paths if self.add(path))

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(self._paths)

    def __contains__(self, path: object) -> bool:
        return path in self._seen

    def __iter__(self) -> Iterator[Path]:
        return iter(tuple(self._paths))

    def __len__(self) -> int:
        return len(self._paths)
