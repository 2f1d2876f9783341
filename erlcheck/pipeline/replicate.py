"""Replication of a compiled module into other build trees."""

import os
import shutil
from pathlib import Path

from erlcheck.core.exceptions.errors import ReplicationError
from erlcheck.core.logger.logger import get_logger

logger = get_logger(__name__)


def find_targets(target_dir: Path, module: str) -> list[Path]:
    """Find every ``<module>.beam`` below ``target_dir``, in a stable order."""
    if not target_dir.is_dir():
        return []
    return sorted(p for p in target_dir.rglob(f"{module}.beam") if p.is_file())


def copy_artifact(source: Path, target: Path) -> None:
    """Overwrite ``target`` with ``source``.

    Raises:
        ReplicationError: If the copy fails.
    """
    try:
        shutil.copyfile(source, target)
    except OSError as e:
        raise ReplicationError(
            f"Error when copying: {e.strerror or e}", source=source, target=target
        ) from e


def replicate(source: Path, module: str, target_dir: Path) -> list[Path]:
    """Overwrite the same-named BEAM files under ``target_dir`` with ``source``.

    A failed copy is logged and the remaining targets are still updated.

    Args:
        source: Freshly compiled artifact.
        module: Module name.
        target_dir: Root of the tree to update.

    Returns:
        The targets that were overwritten.
    """
    copied = []
    for target in find_targets(target_dir, module):
        if os.path.exists(source) and os.path.samefile(source, target):
            continue
        try:
            copy_artifact(source, target)
        except ReplicationError as e:
            logger.error(f"{e.message}: {source} -> {target}")
            continue
        logger.debug(f"Copied {source} -> {target}")
        copied.append(target)
    return copied
