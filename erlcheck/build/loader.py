"""Build configuration loading.

Turns the build files found by the detector into compiler options, and
registers the directories the compiler needs to resolve dependency modules
(behaviours, parse transforms, include_lib targets) on a
:class:`SearchPathAccumulator`.
"""

import shutil
from pathlib import Path
from typing import Any

from erlcheck.build.executor import CommandRunner
from erlcheck.build.models import BuildLayout, BuildOptions, BuildSystem, SearchPathAccumulator
from erlcheck.core.config.settings import ToolSettings
from erlcheck.core.exceptions.errors import BuildConfigError, CommandError, TermParseError
from erlcheck.core.logger.logger import get_logger
from erlcheck.core.utils.paths import absname, find_files, wildcard
from erlcheck.erlang.terms import Atom, consult, delete, format_term, get_value, parse_term, to_text

logger = get_logger(__name__)

REBAR_CONFIG_NAMES = ["rebar.config", "rebar.config.script"]

# Evaluates a rebar.config.script and prints the resulting terms
_SCRIPT_EVAL = (
    "case file:script({file}) of "
    "{{ok, Terms}} -> io:format(\"~tp.~n\", [Terms]), halt(0); "
    "{{error, Reason}} -> io:format(standard_error, \"~ts~n\", "
    "[file:format_error(Reason)]), halt(1) "
    "end."
)


def remove_warnings_as_errors(erl_opts: list[Any]) -> list[Any]:
    """Remove the ``warnings_as_errors`` option.

    With it, rebar prints ``compile: warnings being treated as errors``,
    which editors read as a diagnostic for a file called ``compile``.
    Warnings are reported as warnings instead.
    """
    return delete("warnings_as_errors", erl_opts)


def _include(directory: Path, name: str) -> tuple[Atom, str]:
    return (Atom("i"), str(absname(directory, name)))


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any, key: str) -> str:
    try:
        return to_text(value)
    except TypeError as e:
        raise BuildConfigError(f"{key} must be a string, got {format_term(value)}") from e


def _located(error: BuildConfigError, config_file: Path) -> BuildConfigError:
    if error.file is not None:
        return error
    return BuildConfigError(error.message, file=config_file, line=error.line)


def resolve_relative_options(path: Path, erl_opts: list[Any]) -> list[Any]:
    """Make ``{i, Dir}`` and ``{outdir, Dir}`` absolute against ``path``.

    rebar resolves them from the directory of the rebar.config, while erlc
    runs from elsewhere.
    """
    resolved = []
    for option in erl_opts:
        if (
            isinstance(option, tuple)
            and len(option) == 2
            and isinstance(option[0], Atom)
            and option[0] in ("i", "outdir")
        ):
            option = (option[0], str(absname(path, _text(option[1], option[0]))))
        resolved.append(option)
    return resolved


class BuildConfigLoader:
    """Loads compiler options for each supported build system."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        tools: ToolSettings | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            runner: Runner for rebar3 and erl invocations.
            tools: External tool settings.
        """
        self.tools = tools or ToolSettings()
        self.runner = runner or CommandRunner(timeout=self.tools.command_timeout)

    def load(
        self,
        layout: BuildLayout,
        checked_file: Path,
        code_paths: SearchPathAccumulator,
    ) -> BuildOptions:
        """Load the settings from the build files of a layout.

        Args:
            layout: Build layout from the detector.
            checked_file: The source file being checked; rebar3 failures
                are reported against it.
            code_paths: Accumulator receiving the code path registrations.

        Returns:
            BuildOptions for the compiler.

        Raises:
            BuildConfigError: If the configuration cannot be loaded.
        """
        if layout.build_system is BuildSystem.REBAR:
            return self.load_rebar_files(layout.build_files, code_paths)
        if layout.build_system is BuildSystem.REBAR3:
            return self.load_rebar3_files(layout.project_root, checked_file, code_paths)
        if layout.build_system is BuildSystem.MAKEFILE:
            return self.load_makefiles(layout.build_files, code_paths)
        return self.load_unknown(layout.project_root)

    # ------------------------------------------------------------------
    # Descriptor reading
    # ------------------------------------------------------------------

    def read_config(self, config_file: Path) -> list[Any]:
        """Read the terms of a rebar.config or rebar.config.script file.

        Raises:
            BuildConfigError: If the file cannot be read or evaluated.
        """
        if config_file.suffix == ".script":
            terms = self._eval_script(config_file)
        else:
            try:
                terms = consult(config_file)
            except OSError as e:
                raise BuildConfigError(
                    e.strerror or str(e), file=config_file
                ) from e
            except TermParseError as e:
                raise BuildConfigError(e.message, file=config_file, line=e.line) from e

        logger.debug(f"rebar.config read: {config_file}")
        return terms

    def _eval_script(self, config_file: Path) -> list[Any]:
        expression = _SCRIPT_EVAL.format(file=format_term(str(config_file)))
        command = [self.tools.erl, "-noshell", "-eval", expression]
        try:
            result = self.runner.run(command, cwd=config_file.parent)
        except CommandError as e:
            raise BuildConfigError(e.message, file=config_file) from e

        if not result.success:
            raise BuildConfigError(
                result.stderr.strip() or f"evaluation failed with exit code {result.return_code}",
                file=config_file,
            )
        try:
            terms = parse_term(result.stdout)
        except TermParseError as e:
            raise BuildConfigError(
                f"unreadable script result: {e.message}", file=config_file
            ) from e
        if not isinstance(terms, list):
            raise BuildConfigError("script did not return a list of terms", file=config_file)
        return terms

    # ------------------------------------------------------------------
    # rebar
    # ------------------------------------------------------------------

    def load_rebar_files(
        self,
        config_files: list[Path],
        code_paths: SearchPathAccumulator,
    ) -> BuildOptions:
        """Load every rebar config file, nearest first.

        Only the first (nearest) file supplies options; outer files
        contribute code paths only. If an outer file cannot be read, the
        options of the inner ones are kept and the failure is returned in
        ``BuildOptions.errors``.

        Raises:
            BuildConfigError: If no file could be read.
        """
        options: list[Any] | None = None
        errors: list[BuildConfigError] = []
        for config_file in config_files:
            try:
                terms = self.read_config(config_file)
                file_options = self.process_rebar_config(config_file.parent, terms, code_paths)
            except BuildConfigError as e:
                error = _located(e, config_file)
                if options is None:
                    raise error
                logger.warning(f"rebar.config consult failed: {config_file}")
                errors.append(error)
                break
            if options is None:
                options = file_options

        if options is None:
            raise BuildConfigError("no rebar.config could be loaded")
        return BuildOptions(options=options, errors=errors)

    def process_rebar_config(
        self,
        path: Path,
        terms: list[Any],
        code_paths: SearchPathAccumulator,
    ) -> list[Any]:
        """Apply a rebar.config file.

        App layout::

            rebar.config
            src/
            ebin/        -> code path
            include/     -> include path

        Project layout::

            rebar.config
            $(deps_dir)/$(app)/ebin   -> code path
            apps/$(sub_dir)/ebin      -> code path
            apps/$(sub_dir)/include   -> include path

        Returns:
            Compiler options: erl_opts followed by the include directories.

        Raises:
            BuildConfigError: If a directory setting is not a string.
        """
        deps_dir = _text(get_value("deps_dir", terms, "deps"), "deps_dir")
        lib_dirs = [_text(d, "lib_dirs") for d in _as_list(get_value("lib_dirs", terms, []))]
        sub_dirs = [_text(d, "sub_dirs") for d in _as_list(get_value("sub_dirs", terms, []))]
        erl_opts = resolve_relative_options(path, _as_list(get_value("erl_opts", terms, [])))

        code_paths.add(absname(path, "ebin"))
        code_paths.add_all(wildcard(absname(path, deps_dir), "*/ebin"))
        for lib_dir in lib_dirs:
            code_paths.add_all(wildcard(absname(path, lib_dir), "*/ebin"))
        for sub_dir in sub_dirs:
            code_paths.add_all(wildcard(absname(path, sub_dir), "ebin"))

        includes = [_include(path, name) for name in ("apps", "include")]
        includes += [_include(path, f"{sub_dir}/include") for sub_dir in sub_dirs]
        return remove_warnings_as_errors(erl_opts + includes)

    # ------------------------------------------------------------------
    # rebar3
    # ------------------------------------------------------------------

    def load_rebar3_files(
        self,
        project_root: Path,
        checked_file: Path,
        code_paths: SearchPathAccumulator,
    ) -> BuildOptions:
        """Load the rebar.config of a rebar3 project and ask rebar3 for paths.

        Raises:
            BuildConfigError: If rebar.config or rebar3 is missing, or
                ``rebar3 path`` fails.
        """
        config_files = find_files(project_root, REBAR_CONFIG_NAMES)
        if not config_files:
            raise BuildConfigError(
                f"rebar.config not found in {project_root}", file=checked_file
            )
        config_file = config_files[0]
        terms = self.read_config(config_file)
        try:
            options = self.process_rebar3_config(
                config_file.parent, terms, checked_file, code_paths
            )
        except BuildConfigError as e:
            raise _located(e, config_file)
        return BuildOptions(options=options)

    def find_rebar3(self, config_path: Path) -> Path | None:
        """Find the rebar3 executable, in the project first, then on PATH."""
        local = find_files(config_path, [self.tools.rebar3])
        if local:
            return local[0]
        on_path = shutil.which(self.tools.rebar3)
        return Path(on_path) if on_path else None

    @staticmethod
    def get_profile(terms: list[Any]) -> str:
        """Read the rebar3 profile to use for path queries.

        The profile can be set in rebar.config::

            {vim_erlang_compiler, [
              {profile, "test"}
            ]}.
        """
        settings = get_value("vim_erlang_compiler", terms)
        if not isinstance(settings, list):
            return "default"
        return _text(get_value("profile", settings, "default"), "profile")

    @staticmethod
    def get_extra_profiles(terms: list[Any]) -> list[tuple[str, list[str]]]:
        """Read every profile that declares its own dependencies."""
        extra: list[tuple[str, list[str]]] = []
        for entry in _as_list(get_value("profiles", terms, [])):
            if not (isinstance(entry, tuple) and len(entry) == 2):
                continue
            name, profile = entry
            deps = _as_list(get_value("deps", profile, []))
            apps = [
                str(dep[0] if isinstance(dep, tuple) else dep)
                for dep in deps
                if isinstance(dep, Atom) or (isinstance(dep, tuple) and dep and isinstance(dep[0], Atom))
            ]
            if apps:
                extra.append((_text(name, "profiles"), apps))
        return extra

    def _rebar3_path(
        self, rebar3: Path, config_path: Path, profile: str, apps: list[str] | None = None
    ) -> list[str]:
        command = [str(rebar3), "as", profile, "path"]
        if apps:
            command.append(f"--app={','.join(apps)}")
        # QUIET=1 keeps rebar3 from printing anything but the paths
        result = self.runner.run(command, cwd=config_path, env={"QUIET": "1"})
        if not result.success:
            raise CommandError(
                f"'{result.command_line}' failed with exit code {result.return_code}: "
                f"{result.output}",
                command=command,
            )
        return result.stdout.split()

    def process_rebar3_config(
        self,
        config_path: Path,
        terms: list[Any],
        checked_file: Path,
        code_paths: SearchPathAccumulator,
    ) -> list[Any]:
        """Register the paths rebar3 reports and return the compiler options."""
        rebar3 = self.find_rebar3(config_path)
        if rebar3 is None:
            # Compilation would likely fail without the paths
            raise BuildConfigError("rebar3 executable not found.", file=checked_file)
        logger.debug(f"rebar3 executable found: {rebar3}")

        profile = self.get_profile(terms)
        try:
            fragments = self._rebar3_path(rebar3, config_path, profile)
        except CommandError as e:
            raise BuildConfigError(e.message, file=checked_file) from e
        code_paths.add_all(absname(config_path, fragment) for fragment in fragments)

        # _checkouts dependencies: _checkouts/<app>/ebin until rebar 3.13,
        # _build/<profile>/checkouts/<app>/ebin from rebar 3.14
        code_paths.add_all(wildcard(absname(config_path, "_checkouts"), "*/ebin"))
        code_paths.add_all(wildcard(absname(config_path, "_build"), "default/checkouts/*/ebin"))

        for profile_name, apps in self.get_extra_profiles(terms):
            try:
                extra = self._rebar3_path(rebar3, config_path, profile_name, apps)
            except CommandError as e:
                logger.warning(f"Paths of profile {profile_name} not loaded: {e.message}")
                continue
            code_paths.add_all(absname(config_path, fragment) for fragment in extra)

        erl_opts = resolve_relative_options(config_path, _as_list(get_value("erl_opts", terms, [])))
        return remove_warnings_as_errors(erl_opts)

    # ------------------------------------------------------------------
    # Makefile and fallback
    # ------------------------------------------------------------------

    def load_makefiles(
        self,
        makefiles: list[Path],
        code_paths: SearchPathAccumulator,
    ) -> BuildOptions:
        """Set code paths and options for a simple Makefile project."""
        path = makefiles[0].parent
        code_paths.add(absname(path, "ebin"))
        code_paths.add_all(wildcard(absname(path, "deps"), "*/ebin"))
        code_paths.add_all(wildcard(absname(path, "lib"), "*/ebin"))
        return BuildOptions(
            options=[_include(path, name) for name in ("include", "deps", "lib")]
        )

    def load_unknown(self, project_root: Path) -> BuildOptions:
        """Fallback options when no build system was detected."""
        return BuildOptions(
            options=[
                _include(project_root, "include"),
                _include(project_root, "../include"),
                (Atom("i"), str(project_root)),
            ]
        )
