"""Build system detection for Erlang source files.

This module finds the OTP application a file belongs to, decides which
build system governs it, and for rebar3 picks the lock file that marks the
real project root.
"""

from pathlib import Path

from erlcheck.build.models import BuildLayout, BuildSystem, LockCandidate
from erlcheck.core.logger.logger import get_logger
from erlcheck.core.utils.paths import find_files, has_match, path_depth, walk_up

logger = get_logger(__name__)


class BuildSystemDetector:
    """Detects the application root, build system and project root.

    Supports:
    - rebar3: rebar.lock
    - rebar: rebar.config, rebar.config.script
    - make: Makefile
    """

    # Evidence that a directory is an OTP application
    APP_MARKERS = ("ebin/*.app", "src/*.app.src")

    # The order is important: Makefile comes last since a lot of projects
    # ship one alongside another build system.
    BUILD_SYSTEM_MARKERS: list[tuple[BuildSystem, list[str]]] = [
        (BuildSystem.REBAR3, ["rebar.lock"]),
        (BuildSystem.REBAR, ["rebar.config", "rebar.config.script"]),
        (BuildSystem.MAKEFILE, ["Makefile"]),
    ]

    def detect(self, directory: Path) -> BuildLayout:
        """Resolve the build layout for a source file's directory.

        Args:
            directory: Absolute path of the directory holding the source file.

        Returns:
            BuildLayout with app root, project root and build system.
        """
        app_root = self.find_app_root(directory)
        if app_root is None:
            logger.debug("Could not find project root.")
            app_root = directory
        else:
            logger.debug(f"Found project root: {app_root}")

        build_system, build_files = self.guess_build_system(app_root)
        project_root = self.get_project_root(build_system, build_files, app_root)

        layout = BuildLayout(
            app_root=app_root,
            project_root=project_root,
            build_system=build_system,
            build_files=build_files,
        )
        logger.debug(f"Build layout: {layout.to_dict()}")
        return layout

    def is_app_root(self, path: Path) -> bool:
        """Check whether a directory is the root of an OTP application."""
        return any(has_match(path, pattern) for pattern in self.APP_MARKERS)

    def find_app_root(self, path: Path) -> Path | None:
        """Walk upward (filesystem root included) until an app root is found."""
        for directory in walk_up(path):
            if self.is_app_root(directory):
                return directory
        return None

    def guess_build_system(self, path: Path) -> tuple[BuildSystem, list[Path]]:
        """Check which build system's files appear on the path upward from ``path``.

        Returns:
            The first build system (in precedence order) with any marker file,
            and all of its marker files, nearest first.
        """
        for build_system, names in self.BUILD_SYSTEM_MARKERS:
            logger.debug(f"Try build system: {build_system.value}")
            build_files = find_files(path, names)
            if build_files:
                return build_system, build_files

        logger.debug("Unknown build system.")
        return BuildSystem.UNKNOWN, []

    @staticmethod
    def lock_priority(lock_file: Path) -> tuple[int, int]:
        """Get the priority of a rebar3 lock file.

        Stray lock files in ancestor directories (a home directory, say)
        would otherwise be taken for the project root, so locks are ranked
        by how much their directory looks like a real rebar project:

        1. a ``rebar.config`` sits beside the lock;
        2. exactly one of ``src/`` or ``apps/`` sits beside it;
        3. anything else.

        Within a bucket, locks higher in the hierarchy win.
        """
        directory = lock_file.parent
        depth = path_depth(directory)

        if (directory / "rebar.config").is_file():
            return (1, depth)

        might_be_single_app = (directory / "src").is_dir()
        might_be_umbrella_app = (directory / "apps").is_dir()
        if might_be_single_app != might_be_umbrella_app:
            return (2, depth)

        return (3, depth)

    def rank_lock_files(self, build_files: list[Path]) -> list[LockCandidate]:
        """Rank the rebar.lock files among ``build_files``, best first."""
        candidates = [
            LockCandidate(path=f, priority=self.lock_priority(f))
            for f in build_files
            if f.name == "rebar.lock"
        ]
        return sorted(candidates, key=lambda c: c.priority)

    def get_project_root(
        self,
        build_system: BuildSystem,
        build_files: list[Path],
        app_root: Path,
    ) -> Path:
        """Get the root directory of the project."""
        if build_system is BuildSystem.REBAR3:
            ranked = self.rank_lock_files(build_files)
            if ranked:
                logger.debug(
                    "rebar.lock candidates: "
                    + ", ".join(f"{c.path} {c.priority}" for c in ranked)
                )
                return ranked[0].directory
        return app_root

