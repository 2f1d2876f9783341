"""Verification orchestrator.

For every file: sniff its type, resolve the build layout, load the build
configuration, compile, and on success run the enabled post-compile steps
(xref, hot-reload, replication). Files are processed one after the other
and share a single code path accumulator, so a later file sees the paths
registered for earlier ones.
"""

import os
import re
from collections.abc import Iterable
from enum import Enum
from pathlib import Path
from typing import Any

from erlcheck.build.detector import BuildSystemDetector
from erlcheck.build.executor import CommandRunner
from erlcheck.build.loader import BuildConfigLoader
from erlcheck.build.models import BuildLayout, BuildOptions, SearchPathAccumulator
from erlcheck.core.config.settings import ToolSettings
from erlcheck.core.exceptions.errors import BuildConfigError, CommandError, HotReloadError
from erlcheck.core.logger.logger import get_logger
from erlcheck.core.utils.paths import absname
from erlcheck.erlang.terms import Atom
from erlcheck.models.options import CheckOptions
from erlcheck.pipeline.compiler import CompileResult, ErlcCompiler
from erlcheck.pipeline.diagnostics import Emit, echo, format_file_error
from erlcheck.pipeline.remote import ReloadStatus, RemoteLoader
from erlcheck.pipeline.replicate import replicate
from erlcheck.pipeline.xref import XrefRunner

logger = get_logger(__name__)

# Flags every module is compiled with, ahead of the build's own options
DEFAULT_COMPILE_FLAGS = [
    Atom("warn_export_all"),
    Atom("warn_export_vars"),
    Atom("warn_shadow_vars"),
    Atom("warn_obsolete_guard"),
    Atom("warn_unused_import"),
    Atom("report"),
    # Keeps OTP 24+ from quoting source lines under each diagnostic
    Atom("brief"),
    # xref needs the abstract code to name the calling functions
    Atom("debug_info"),
]

ESCRIPT_PATTERN = re.compile(rb"^#!.*escript")
SNIFF_SIZE = 256


class FileType(Enum):
    """Kinds of Erlang source files."""

    MODULE = "module"
    ESCRIPT = "escript"


def sniff_file_type(path: Path) -> FileType:
    """Tell a module from an escript by its first bytes.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(path, "rb") as f:
        beginning = f.read(SNIFF_SIZE)
    if ESCRIPT_PATTERN.match(beginning):
        return FileType.ESCRIPT
    return FileType.MODULE


class Checker:
    """Checks Erlang source files the way their own build would compile them."""

    def __init__(
        self,
        options: CheckOptions,
        tools: ToolSettings | None = None,
        runner: CommandRunner | None = None,
        detector: BuildSystemDetector | None = None,
        loader: BuildConfigLoader | None = None,
        compiler: ErlcCompiler | None = None,
        xref: XrefRunner | None = None,
        remote: RemoteLoader | None = None,
        emit: Emit = echo,
    ) -> None:
        """Initialize the checker.

        Args:
            options: Options of this run.
            tools: External tool settings.
            runner: Shared command runner.
            detector: Build layout detector.
            loader: Build configuration loader.
            compiler: Module compiler.
            xref: Cross-reference runner.
            remote: Hot-reload client.
            emit: Sink for diagnostic lines.
        """
        self.options = options
        self.tools = tools or ToolSettings()
        self.runner = runner or CommandRunner(timeout=self.tools.command_timeout)
        self.emit = emit
        self.detector = detector or BuildSystemDetector()
        self.loader = loader or BuildConfigLoader(runner=self.runner, tools=self.tools)
        self.compiler = compiler or ErlcCompiler(runner=self.runner, tools=self.tools, emit=emit)
        self.xref = xref or XrefRunner(runner=self.runner, tools=self.tools, emit=emit)
        self.remote = remote or RemoteLoader(runner=self.runner, tools=self.tools)
        self.code_paths = SearchPathAccumulator()

    def run(self, files: Iterable[Path | str]) -> int:
        """Check every file.

        Returns:
            Exit code: 0 when all files passed, 1 otherwise.
        """
        results = [self.check_file(Path(file)) for file in files]
        return 0 if all(results) else 1

    def check_file(self, path: Path) -> bool:
        """Check one file; return whether it passed."""
        try:
            file_type = sniff_file_type(path)
        except OSError as e:
            self.emit(format_file_error(path, 1, e.strerror or str(e)))
            return False

        if file_type is FileType.ESCRIPT:
            return self.check_escript(path)
        return self.check_module(path)

    def check_escript(self, path: Path) -> bool:
        """Let ``escript -s`` check an escript without running it."""
        try:
            result = self.runner.stream(
                [self.tools.escript, "-s", str(path)],
                on_output=lambda line: self.emit(line.rstrip("\n")),
            )
        except CommandError as e:
            self.emit(format_file_error(path, 1, e.message))
            return False
        return result.success

    def check_module(self, path: Path) -> bool:
        """Compile a module with the options of its build system."""
        source = Path(os.path.abspath(path))
        layout = self.detector.detect(source.parent)

        try:
            build_options = self.loader.load(layout, source, self.code_paths)
        except BuildConfigError as e:
            self.emit(format_file_error(e.file or source, e.line, e.message))
            return False
        for error in build_options.errors:
            self.emit(format_file_error(error.file or source, error.line, error.message))

        logger.debug(f"Code paths: {[str(p) for p in self.code_paths]}")
        options = self.compile_options(layout, build_options)
        result = self.compiler.compile(source, options, self.code_paths)
        if not result.success:
            return False

        self.post_compilation(result, source)
        return True

    def output_directory(self, layout: BuildLayout) -> Path | None:
        """The absolute output directory, relative outdirs being taken from the project root."""
        if self.options.outdir is None:
            return None
        return absname(layout.project_root, self.options.outdir)

    def compile_options(self, layout: BuildLayout, build_options: BuildOptions) -> list[Any]:
        """Assemble the full compiler option list.

        rebar3 adds ``<app>/src``, ``<app>/include`` and ``<app>`` to the
        include path of every module; so do we.
        """
        outdir = self.output_directory(layout)
        if outdir is None:
            extra: list[Any] = [Atom("strong_validation")]
        else:
            extra = [(Atom("outdir"), str(outdir))]

        return (
            DEFAULT_COMPILE_FLAGS
            + build_options.options
            + extra
            + [
                (Atom("i"), str(absname(layout.app_root, "src"))),
                (Atom("i"), str(absname(layout.app_root, "include"))),
                (Atom("i"), str(layout.app_root)),
            ]
        )

    def post_compilation(self, result: CompileResult, source: Path) -> None:
        """Run xref, hot-reload and replication on a compiled module.

        None of these steps changes the outcome of the check.
        """
        beam_path = result.beam_path
        if beam_path is None:
            return

        if self.options.xref:
            self.xref.check(beam_path, source, self.code_paths)

        # Later files may depend on this module
        self.code_paths.add(beam_path.parent)

        if self.options.load is not None:
            self.hot_reload(result.module, beam_path)

        if self.options.copy_to is not None:
            replicate(beam_path, result.module, self.options.copy_to.target_dir)

    def hot_reload(self, module: str, beam_path: Path) -> None:
        target = self.options.load
        if target is None:
            return
        try:
            reload = self.remote.load(target, module, beam_path)
        except HotReloadError as e:
            logger.error(e.message)
            return

        if reload.success:
            return
        if reload.status is ReloadStatus.REMOTE_FAILURE:
            logger.error(f"Failed to load the module into node {reload.node}: {reload.reason}")
        else:
            logger.error(f"RPC towards node {reload.node} failed: {reload.reason}")
