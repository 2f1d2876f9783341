"""Filesystem path helpers shared by the build resolver and the pipeline."""

import os
from collections.abc import Iterator, Sequence
from pathlib import Path

from erlcheck.core.logger.logger import get_logger

logger = get_logger(__name__)


def absname(directory: Path | str, name: Path | str) -> Path:
    """Return the absolute, normalized path of ``name`` inside ``directory``.

    Example:
        cwd = /home/my, directory = projects/erlang, name = rebar.config
        -> /home/my/projects/erlang/rebar.config
    """
    return Path(os.path.abspath(os.path.join(directory, name)))


def walk_up(start: Path | str) -> Iterator[Path]:
    """Yield ``start`` and each of its ancestors, ending with the filesystem root."""
    current = Path(os.path.abspath(start))
    while True:
        yield current
        parent = current.parent
        if parent == current:
            return
        current = parent


def find_file(directory: Path, names: Sequence[str]) -> Path | None:
    """Return the first of ``names`` that is a regular file in ``directory``."""
    for name in names:
        candidate = absname(directory, name)
        if candidate.is_file():
            logger.debug(f"Found build file: [{directory}] {candidate}")
            return candidate
    return None


def find_files(start: Path | str, names: Sequence[str]) -> list[Path]:
    """Search upward from ``start`` for files matching ``names``.

    At most one file is taken per directory (the first name that exists),
    and the search always continues into the parent directory.

    Returns:
        Absolute paths, nearest directory first.
    """
    found: list[Path] = []
    for directory in walk_up(start):
        match = find_file(directory, names)
        if match is not None:
            found.append(match)
    return found


def wildcard(directory: Path | str, pattern: str) -> list[Path]:
    """Return the sorted paths under ``directory`` matching a glob ``pattern``."""
    base = Path(directory)
    if not base.is_dir():
        return []
    return sorted(base.glob(pattern))


def has_match(directory: Path | str, pattern: str) -> bool:
    """Return True if at least one path under ``directory`` matches ``pattern``."""
    base = Path(directory)
    if not base.is_dir():
        return False
    return next(iter(base.glob(pattern)), None) is not None


def path_depth(path: Path | str) -> int:
    """Number of components of the absolute path, the root included."""
    return len(Path(os.path.abspath(path)).parts)


def relativize_path_maybe(path: Path | str, cwd: Path | str | None = None) -> str:
    """Return ``path`` relative to the working directory when it lies below it.

    Paths outside the working directory are returned unchanged.
    """
    base = Path(os.path.abspath(cwd if cwd is not None else os.getcwd()))
    target = Path(path)
    try:
        return str(target.relative_to(base))
    except ValueError:
        return str(target)
