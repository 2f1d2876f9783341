"""Tests for the verification orchestrator."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from erlcheck.build.executor import CommandResult, CommandRunner
from erlcheck.core.exceptions.errors import HotReloadError
from erlcheck.erlang.terms import Atom
from erlcheck.models.options import CheckOptions, CopySpec, NameMode, RemoteTarget
from erlcheck.pipeline.compiler import CompileResult, ErlcCompiler
from erlcheck.pipeline.orchestrator import DEFAULT_COMPILE_FLAGS, Checker, FileType, sniff_file_type
from erlcheck.pipeline.remote import ReloadResult, ReloadStatus, RemoteLoader
from erlcheck.pipeline.xref import XrefRunner


def fake_compiler(beam_path: Path | None = None, success: bool = True) -> MagicMock:
    """A compiler that always returns the given result."""
    compiler = MagicMock(spec=ErlcCompiler)
    compiler.compile.side_effect = lambda source, options, code_paths: CompileResult(
        success=success, module=source.stem, beam_path=beam_path
    )
    return compiler


def make_checker(options: CheckOptions, lines: list[str], **kwargs) -> Checker:
    kwargs.setdefault("runner", MagicMock(spec=CommandRunner))
    kwargs.setdefault("compiler", fake_compiler())
    kwargs.setdefault("xref", MagicMock(spec=XrefRunner))
    kwargs.setdefault("remote", MagicMock(spec=RemoteLoader))
    return Checker(options, emit=lines.append, **kwargs)


class TestSniffFileType:
    """Tests for telling modules from escripts."""

    def test_module(self, temp_dir: Path) -> None:
        """Test a plain module."""
        source = temp_dir / "a.erl"
        source.write_text("-module(a).\n")
        assert sniff_file_type(source) is FileType.MODULE

    def test_escript(self, temp_dir: Path) -> None:
        """Test a shebang naming escript."""
        script = temp_dir / "tool"
        script.write_text("#!/usr/bin/env escript\nmain(_) -> ok.\n")
        assert sniff_file_type(script) is FileType.ESCRIPT

    def test_escript_on_second_line_is_a_module(self, temp_dir: Path) -> None:
        """Test only the first line counts."""
        source = temp_dir / "a.erl"
        source.write_text("%% not a shebang\n#!/usr/bin/env escript\n")
        assert sniff_file_type(source) is FileType.MODULE


class TestCheckModule:
    """Tests for checking modules."""

    def test_lone_file_strong_validation(self, temp_dir: Path) -> None:
        """Test a file without any markers is validated without output."""
        source = temp_dir / "a.erl"
        source.write_text("-module(a).\n")
        compiler = fake_compiler()
        lines: list[str] = []
        checker = make_checker(CheckOptions(), lines, compiler=compiler)

        assert checker.run([source]) == 0

        options = compiler.compile.call_args.args[1]
        assert options[: len(DEFAULT_COMPILE_FLAGS)] == DEFAULT_COMPILE_FLAGS
        assert Atom("strong_validation") in options
        assert options[-3:] == [
            (Atom("i"), str(temp_dir / "src")),
            (Atom("i"), str(temp_dir / "include")),
            (Atom("i"), str(temp_dir)),
        ]
        assert lines == []

    def test_outdir_relative_to_project_root(self, rebar3_app: Path) -> None:
        """Test the output directory is resolved against the project root."""
        (rebar3_app / "rebar3").write_text("")
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandResult(command=["rebar3"], stdout="")
        compiler = fake_compiler()
        checker = make_checker(
            CheckOptions(outdir=Path("_check/ebin")), [], runner=runner, compiler=compiler
        )

        assert checker.run([rebar3_app / "src" / "myapp.erl"]) == 0

        options = compiler.compile.call_args.args[1]
        assert (Atom("outdir"), str(rebar3_app / "_check" / "ebin")) in options
        assert Atom("strong_validation") not in options
        assert Atom("debug_info") in options

    def test_rebar3_failure_skips_compiler(self, rebar3_app: Path) -> None:
        """Test a failing rebar3 is reported against the checked file and nothing is compiled."""
        (rebar3_app / "rebar3").write_text("")
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandResult(command=["rebar3"], return_code=1, stderr="boom")
        compiler = fake_compiler()
        lines: list[str] = []
        checker = make_checker(CheckOptions(), lines, runner=runner, compiler=compiler)
        source = rebar3_app / "src" / "myapp.erl"

        assert checker.run([source]) == 1

        compiler.compile.assert_not_called()
        assert len(lines) == 1
        assert lines[0].endswith("failed with exit code 1: boom")
        assert lines[0].startswith(f"{source}:1: ")

    def test_broken_rebar_config(self, temp_dir: Path) -> None:
        """Test a rebar.config syntax error is reported against the config file."""
        (temp_dir / "rebar.config").write_text("{erl_opts, [}.\n")
        source = temp_dir / "a.erl"
        source.write_text("-module(a).\n")
        lines: list[str] = []
        checker = make_checker(CheckOptions(), lines)

        assert checker.run([source]) == 1
        assert "rebar.config:1: " in lines[0]

    def test_compile_failure(self, temp_dir: Path) -> None:
        """Test a failed compile fails the run and skips the pipeline."""
        source = temp_dir / "a.erl"
        source.write_text("-module(a).\n")
        xref = MagicMock(spec=XrefRunner)
        checker = make_checker(
            CheckOptions(outdir=temp_dir, xref=True),
            [],
            compiler=fake_compiler(temp_dir / "a.beam", success=False),
            xref=xref,
        )

        assert checker.run([source]) == 1
        xref.check.assert_not_called()

    def test_unreadable_file(self, temp_dir: Path) -> None:
        """Test a missing file is reported on line 1 and fails the run."""
        lines: list[str] = []
        checker = make_checker(CheckOptions(), lines)
        missing = temp_dir / "missing.erl"

        assert checker.run([missing]) == 1
        assert lines[0].endswith("missing.erl:1: No such file or directory")

    def test_some_files_fail(self, temp_dir: Path) -> None:
        """Test every file is checked even after a failure."""
        good = temp_dir / "good.erl"
        good.write_text("-module(good).\n")
        compiler = fake_compiler()
        checker = make_checker(CheckOptions(), [], compiler=compiler)

        assert checker.run([temp_dir / "missing.erl", good]) == 1
        compiler.compile.assert_called_once()

    def test_undecodable_rebar_config_fails_only_its_file(self, temp_dir: Path) -> None:
        """Test a rebar.config that is not UTF-8 does not stop the later files."""
        bad_app = temp_dir / "bad"
        bad_app.mkdir()
        (bad_app / "rebar.config").write_bytes(b"%% Autor: M\xfcller\n{erl_opts, [debug_info]}.\n")
        bad = bad_app / "a.erl"
        bad.write_text("-module(a).\n")
        good = temp_dir / "good.erl"
        good.write_text("-module(good).\n")
        compiler = fake_compiler()
        lines: list[str] = []
        checker = make_checker(CheckOptions(), lines, compiler=compiler)

        assert checker.run([bad, good]) == 1

        assert [c.args[0] for c in compiler.compile.call_args_list] == [good]
        assert len(lines) == 1
        assert "rebar.config:1: Invalid UTF-8 byte 0xfc" in lines[0]

    def test_broken_outer_rebar_config_is_reported(self, temp_dir: Path) -> None:
        """Test an unreadable outer rebar.config is printed but does not fail the file."""
        (temp_dir / "rebar.config").write_text("{erl_opts, [}.\n")
        app = temp_dir / "apps" / "web"
        (app / "src").mkdir(parents=True)
        (app / "rebar.config").write_text("{erl_opts, [debug_info]}.\n")
        source = app / "src" / "web.erl"
        source.write_text("-module(web).\n")
        compiler = fake_compiler()
        lines: list[str] = []
        checker = make_checker(CheckOptions(), lines, compiler=compiler)

        assert checker.run([source]) == 0

        compiler.compile.assert_called_once()
        assert len(lines) == 1
        assert lines[0].startswith(f"{temp_dir / 'rebar.config'}:1: ")


class TestCheckEscript:
    """Tests for checking escripts."""

    def test_escript(self, temp_dir: Path) -> None:
        """Test escripts are checked with escript -s and their output passed through."""
        script = temp_dir / "tool"
        script.write_text("#!/usr/bin/env escript\nmain(_) -> ok.\n")
        runner = MagicMock(spec=CommandRunner)

        def stream(command, on_output, **kwargs):
            on_output("tool:2: Warning: variable 'X' is unused\n")
            return CommandResult(command=command, return_code=0)

        runner.stream.side_effect = stream
        compiler = fake_compiler()
        lines: list[str] = []
        checker = make_checker(CheckOptions(), lines, runner=runner, compiler=compiler)

        assert checker.run([script]) == 0

        assert runner.stream.call_args.args[0] == ["escript", "-s", str(script)]
        assert lines == ["tool:2: Warning: variable 'X' is unused"]
        compiler.compile.assert_not_called()

    def test_escript_errors(self, temp_dir: Path) -> None:
        """Test a failing escript check fails the run."""
        script = temp_dir / "tool"
        script.write_text("#!/usr/bin/env escript\nmain(_) ->\n")
        runner = MagicMock(spec=CommandRunner)
        runner.stream.return_value = CommandResult(command=["escript"], return_code=127)
        checker = make_checker(CheckOptions(), [], runner=runner)

        assert checker.run([script]) == 1


class TestPostCompilation:
    """Tests for xref, hot-reload and replication after a compile."""

    @pytest.fixture
    def project(self, temp_dir: Path) -> tuple[Path, Path]:
        """A lone module and its compiled artifact in an output directory."""
        source = temp_dir / "foo.erl"
        source.write_text("-module(foo).\n")
        beam = temp_dir / "out" / "foo.beam"
        beam.parent.mkdir()
        beam.write_bytes(b"NEW")
        return source, beam

    def test_all_steps(self, project: tuple[Path, Path], temp_dir: Path) -> None:
        """Test xref, load and copy all run on the fresh artifact."""
        source, beam = project
        target = temp_dir / "targets" / "rel" / "foo.beam"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"OLD")
        untouched = temp_dir / "targets" / "rel" / "bar.beam"
        untouched.write_bytes(b"OLD")
        xref = MagicMock(spec=XrefRunner)
        remote = MagicMock(spec=RemoteLoader)
        remote.load.return_value = ReloadResult(ReloadStatus.LOADED, "foo", "app@host")
        load = RemoteTarget(naming=NameMode.SHORTNAMES, local_node="c", remote_node="app@host")
        options = CheckOptions(
            outdir=Path("out"),
            xref=True,
            load=load,
            copy_to=CopySpec(target_dir=temp_dir / "targets"),
        )
        checker = make_checker(options, [], compiler=fake_compiler(beam), xref=xref, remote=remote)

        assert checker.run([source]) == 0

        xref.check.assert_called_once_with(beam, source, checker.code_paths)
        remote.load.assert_called_once_with(load, "foo", beam)
        assert target.read_bytes() == b"NEW"
        assert untouched.read_bytes() == b"OLD"
        assert beam.parent in checker.code_paths

    def test_failures_do_not_change_exit_code(self, project: tuple[Path, Path]) -> None:
        """Test hot-reload failures are only logged."""
        source, beam = project
        remote = MagicMock(spec=RemoteLoader)
        remote.load.return_value = ReloadResult(
            ReloadStatus.TRANSPORT_FAILURE, "foo", "app@host", "{badrpc,nodedown}"
        )
        load = RemoteTarget(naming=NameMode.SHORTNAMES, local_node="c", remote_node="app@host")
        checker = make_checker(
            CheckOptions(outdir=Path("out"), load=load), [], compiler=fake_compiler(beam), remote=remote
        )
        assert checker.run([source]) == 0

        remote.load.side_effect = HotReloadError("Failed to find object code for module foo")
        assert checker.run([source]) == 0

    def test_no_steps_without_outdir(self, project: tuple[Path, Path]) -> None:
        """Test nothing runs after a compile without an artifact."""
        source, _ = project
        xref = MagicMock(spec=XrefRunner)
        checker = make_checker(CheckOptions(xref=True), [], xref=xref)

        assert checker.run([source]) == 0
        xref.check.assert_not_called()
