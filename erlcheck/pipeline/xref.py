"""Cross-reference check of a compiled module.

``xref:m/1`` runs in an ``erl`` helper process. Only the ``undefined``
category is reported: other xref warnings (unused or deprecated calls) are
expected in most projects and would drown the useful ones.
"""

from dataclasses import dataclass
from pathlib import Path

from erlcheck.build.executor import CommandRunner
from erlcheck.build.models import SearchPathAccumulator
from erlcheck.core.config.settings import ToolSettings
from erlcheck.core.exceptions.errors import BeamFormatError, CommandError, TermParseError
from erlcheck.core.logger.logger import get_logger
from erlcheck.erlang.beam import find_mfa_source
from erlcheck.erlang.terms import format_term, parse_term, to_text
from erlcheck.pipeline.diagnostics import Emit, echo, format_undefined_call

logger = get_logger(__name__)

MFA = tuple[str, str, int]

_XREF_EVAL = (
    "case xref:m({root}) of "
    "Result when is_list(Result) -> "
    "io:format(\"~tp.~n\", [proplists:get_value(undefined, Result, [])]), halt(0); "
    "Error -> io:format(standard_error, \"~tp~n\", [Error]), halt(1) "
    "end."
)


@dataclass(frozen=True)
class XrefWarning:
    """A call from ``caller`` to the undefined function ``callee``."""

    caller: MFA
    callee: MFA


def _mfa(term: object) -> MFA:
    if not (isinstance(term, tuple) and len(term) == 3 and isinstance(term[2], int)):
        raise TermParseError(f"not an MFA: {term!r}")
    return (to_text(term[0]), to_text(term[1]), term[2])


def parse_undefined_calls(output: str) -> list[XrefWarning]:
    """Parse the ``[{Caller, Callee}]`` list printed by the helper.

    Raises:
        TermParseError: If the output is not such a list.
    """
    calls = parse_term(output)
    if not isinstance(calls, list):
        raise TermParseError("xref result is not a list")
    warnings = []
    for call in calls:
        if not (isinstance(call, tuple) and len(call) == 2):
            raise TermParseError(f"unexpected xref entry: {call!r}")
        warnings.append(XrefWarning(caller=_mfa(call[0]), callee=_mfa(call[1])))
    return warnings


class XrefRunner:
    """Runs ``xref:m/1`` on a BEAM file and reports undefined calls."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        tools: ToolSettings | None = None,
        emit: Emit = echo,
    ) -> None:
        self.tools = tools or ToolSettings()
        self.runner = runner or CommandRunner(timeout=self.tools.command_timeout)
        self.emit = emit

    def undefined_calls(
        self, beam_path: Path, code_paths: SearchPathAccumulator
    ) -> list[XrefWarning]:
        """Return the undefined calls of a module, in xref's order.

        The output directory itself is not put on the code path: it may hold
        stale BEAM files of unrelated modules that would hide real problems.
        A failing helper is logged and yields no warnings.
        """
        root = str(beam_path.with_suffix(""))
        command = [self.tools.erl, "-noshell"]
        for path in code_paths:
            command += ["-pa", str(path)]
        command += ["-eval", _XREF_EVAL.format(root=format_term(root))]

        try:
            result = self.runner.run(command, cwd=beam_path.parent)
        except CommandError as e:
            logger.warning(f"xref failed for {beam_path}: {e.message}")
            return []
        if not result.success:
            logger.warning(f"xref failed for {beam_path}: {result.output.strip()}")
            return []

        try:
            return parse_undefined_calls(result.stdout)
        except TermParseError as e:
            logger.warning(f"Unreadable xref output for {beam_path}: {e.message}")
            return []

    def locate(self, caller: MFA, beam_path: Path, source: Path) -> tuple[str, int]:
        """Find the source file and line of the calling function."""
        _, function, arity = caller
        try:
            return find_mfa_source(beam_path, function, arity)
        except BeamFormatError as e:
            logger.debug(f"No abstract code in {beam_path}: {e.message}")
            return str(source), 1

    def check(
        self, beam_path: Path, source: Path, code_paths: SearchPathAccumulator
    ) -> list[XrefWarning]:
        """Run xref and print a warning line for every undefined call.

        Args:
            beam_path: The freshly compiled artifact.
            source: The checked source file, used when the artifact has no
                abstract code.
            code_paths: Directories of dependency modules.

        Returns:
            The warnings in the order they were printed.
        """
        warnings = list(reversed(self.undefined_calls(beam_path, code_paths)))
        for warning in warnings:
            caller_file, caller_line = self.locate(warning.caller, beam_path, source)
            module, function, arity = warning.callee
            self.emit(format_undefined_call(caller_file, caller_line, module, function, arity))
        return warnings
