"""Module compilation through ``erlc``.

Compiler options are kept as Erlang terms up to this point and translated
to the ``erlc`` command line here:

- ``{i, Dir}``       -> ``-I Dir``
- ``{outdir, Dir}``  -> ``-o Dir``
- code paths         -> ``-pa Dir``
- anything else      -> ``+Term``
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from erlcheck.build.executor import CommandRunner
from erlcheck.build.models import SearchPathAccumulator
from erlcheck.core.config.settings import ToolSettings
from erlcheck.core.exceptions.errors import CommandError
from erlcheck.core.logger.logger import get_logger
from erlcheck.erlang.terms import Atom, format_term, to_text
from erlcheck.pipeline.diagnostics import Emit, echo, format_file_error

logger = get_logger(__name__)


@dataclass
class CompileResult:
    """Outcome of compiling one module.

    Attributes:
        success: Whether ``erlc`` accepted the module.
        module: Module name (the file stem).
        beam_path: Written artifact, or None when no output directory
            was given.
    """

    success: bool
    module: str
    beam_path: Path | None = None


def _tagged(option: Any, tag: str) -> bool:
    return (
        isinstance(option, tuple)
        and len(option) == 2
        and isinstance(option[0], Atom)
        and option[0] == tag
    )


def output_directory(options: list[Any]) -> Path | None:
    """Return the ``{outdir, Dir}`` of an option list, if any; the last one wins like in erlc."""
    for option in reversed(options):
        if _tagged(option, "outdir"):
            return Path(to_text(option[1]))
    return None


class ErlcCompiler:
    """Compiles Erlang modules with ``erlc``."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        tools: ToolSettings | None = None,
        emit: Emit = echo,
    ) -> None:
        self.tools = tools or ToolSettings()
        self.runner = runner or CommandRunner(timeout=self.tools.command_timeout)
        self.emit = emit

    def build_command(
        self,
        source: Path,
        options: list[Any],
        code_paths: SearchPathAccumulator,
    ) -> list[str]:
        """Translate compiler options into an ``erlc`` argument vector."""
        command = [self.tools.erlc]
        for path in code_paths:
            command += ["-pa", str(path)]
        for option in options:
            if _tagged(option, "i"):
                command += ["-I", to_text(option[1])]
            elif _tagged(option, "outdir"):
                command += ["-o", to_text(option[1])]
            else:
                command.append("+" + format_term(option))
        command.append(str(source))
        return command

    def compile(
        self,
        source: Path,
        options: list[Any],
        code_paths: SearchPathAccumulator,
    ) -> CompileResult:
        """Compile ``source``, passing the compiler's diagnostics through.

        Args:
            source: Absolute path of the module.
            options: Compiler options as Erlang terms.
            code_paths: Directories of dependency modules.

        Returns:
            CompileResult for the module.
        """
        module = source.stem
        command = self.build_command(source, options, code_paths)
        logger.debug(f"Compiling {source} with options {format_term(options)}")

        try:
            result = self.runner.stream(
                command,
                on_output=lambda line: self.emit(line.rstrip("\n")),
                cwd=source.parent,
            )
        except CommandError as e:
            self.emit(format_file_error(source, 1, e.message))
            return CompileResult(success=False, module=module)

        if not result.success:
            return CompileResult(success=False, module=module)

        outdir = output_directory(options)
        beam_path = outdir / f"{module}.beam" if outdir is not None else None
        return CompileResult(success=True, module=module, beam_path=beam_path)
