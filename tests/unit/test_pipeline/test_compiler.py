"""Tests for the erlc compiler stage."""

from pathlib import Path
from unittest.mock import MagicMock

from erlcheck.build.executor import CommandResult, CommandRunner
from erlcheck.build.models import SearchPathAccumulator
from erlcheck.core.exceptions.errors import CommandError
from erlcheck.erlang.terms import Atom
from erlcheck.pipeline.compiler import ErlcCompiler, output_directory


def streaming_runner(output: list[str], return_code: int = 0) -> MagicMock:
    """Create a runner whose stream() replays ``output`` lines."""
    runner = MagicMock(spec=CommandRunner)

    def stream(command, on_output, **kwargs):
        for line in output:
            on_output(line)
        return CommandResult(command=command, return_code=return_code, stdout="".join(output))

    runner.stream.side_effect = stream
    return runner


class TestBuildCommand:
    """Tests for translating options into erlc arguments."""

    def test_translation(self) -> None:
        """Test include, outdir, code path and generic options."""
        code_paths = SearchPathAccumulator()
        code_paths.add(Path("/deps/lager/ebin"))
        compiler = ErlcCompiler(runner=MagicMock(spec=CommandRunner))
        options = [
            Atom("debug_info"),
            (Atom("parse_transform"), Atom("lager_transform")),
            (Atom("d"), Atom("TEST")),
            (Atom("i"), "/proj/include"),
            (Atom("outdir"), "/proj/ebin"),
        ]

        command = compiler.build_command(Path("/proj/src/a.erl"), options, code_paths)

        assert command == [
            "erlc",
            "-pa", "/deps/lager/ebin",
            "+debug_info",
            "+{parse_transform,lager_transform}",
            "+{d,'TEST'}",
            "-I", "/proj/include",
            "-o", "/proj/ebin",
            "/proj/src/a.erl",
        ]

    def test_output_directory(self) -> None:
        """Test finding the outdir option."""
        assert output_directory([Atom("strong_validation")]) is None
        assert output_directory([(Atom("outdir"), "/out")]) == Path("/out")

    def test_last_output_directory_wins(self) -> None:
        """Test an outdir from the command line overrides one from rebar.config."""
        options = [(Atom("outdir"), "/proj/ebin"), Atom("debug_info"), (Atom("outdir"), "/check")]
        assert output_directory(options) == Path("/check")


class TestCompile:
    """Tests for running the compiler."""

    def test_success_with_outdir(self) -> None:
        """Test a successful compile names the artifact."""
        lines: list[str] = []
        runner = streaming_runner(["/p/a.erl:3:1: Warning: variable 'X' is unused\n"])
        compiler = ErlcCompiler(runner=runner, emit=lines.append)

        result = compiler.compile(
            Path("/p/a.erl"), [(Atom("outdir"), "/p/ebin")], SearchPathAccumulator()
        )

        assert result.success is True
        assert result.module == "a"
        assert result.beam_path == Path("/p/ebin/a.beam")
        assert lines == ["/p/a.erl:3:1: Warning: variable 'X' is unused"]
        assert runner.stream.call_args.kwargs["cwd"] == Path("/p")

    def test_success_without_outdir(self) -> None:
        """Test strong validation writes no artifact."""
        compiler = ErlcCompiler(runner=streaming_runner([]), emit=lambda line: None)
        result = compiler.compile(Path("/p/a.erl"), [Atom("strong_validation")], SearchPathAccumulator())
        assert result.success is True
        assert result.beam_path is None

    def test_failure(self) -> None:
        """Test compiler errors fail the module."""
        lines: list[str] = []
        runner = streaming_runner(["/p/a.erl:5:2: syntax error before: '.'\n"], return_code=1)
        compiler = ErlcCompiler(runner=runner, emit=lines.append)

        result = compiler.compile(Path("/p/a.erl"), [], SearchPathAccumulator())

        assert result.success is False
        assert lines == ["/p/a.erl:5:2: syntax error before: '.'"]

    def test_erlc_missing(self) -> None:
        """Test a compiler that cannot be started is reported on line 1."""
        lines: list[str] = []
        runner = MagicMock(spec=CommandRunner)
        runner.stream.side_effect = CommandError("Cannot execute erlc: not found", command=["erlc"])
        compiler = ErlcCompiler(runner=runner, emit=lines.append)

        result = compiler.compile(Path("/elsewhere/a.erl"), [], SearchPathAccumulator())

        assert result.success is False
        assert lines == ["/elsewhere/a.erl:1: Cannot execute erlc: not found"]
