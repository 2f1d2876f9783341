"""Command executor for build tools and Erlang helpers.

Every external program erlcheck talks to (``rebar3``, ``erl``, ``erlc``,
``escript``) is run through :class:`CommandRunner`. Commands run one at a
time and block until they exit or the timeout expires.
"""

import os
import shlex
import subprocess
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from erlcheck.core.exceptions.errors import CommandError
from erlcheck.core.logger.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Result of a command execution.

    Attributes:
        command: The argument vector that was executed.
        return_code: Exit code of the command.
        stdout: Standard output (or the combined output when streamed).
        stderr: Standard error.
        duration_seconds: Time taken by the command.
    """

    command: list[str]
    return_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.return_code == 0

    @property
    def output(self) -> str:
        """Standard output followed by standard error."""
        return self.stdout + self.stderr

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "command": self.command_line,
            "return_code": self.return_code,
            "duration_seconds": self.duration_seconds,
        }


class CommandRunner:
    """Runs external commands synchronously with a timeout."""

    def __init__(self, timeout: int = 300):
        """Initialize the command runner.

        Args:
            timeout: Maximum time for each command in seconds.
        """
        self.timeout = timeout

    def _environment(self, env: dict[str, str] | None) -> dict[str, str]:
        merged = os.environ.copy()
        if env:
            merged.update(env)
        return merged

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run a command and capture stdout and stderr separately.

        Args:
            command: Argument vector.
            cwd: Working directory for the command.
            env: Extra environment variables.
            timeout: Overrides the runner's timeout.
            input: Text written to the command's standard input.

        Returns:
            CommandResult with the captured output.

        Raises:
            CommandError: If the command cannot be started or times out.
        """
        argv = [str(arg) for arg in command]
        limit = timeout or self.timeout
        logger.debug(f"Call: {shlex.join(argv)} (cwd={cwd or os.getcwd()})")

        start_time = time.time()
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                env=self._environment(env),
                input=input,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=limit,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"Command timed out after {limit} seconds", command=argv
            ) from e
        except OSError as e:
            raise CommandError(f"Cannot execute {argv[0]}: {e}", command=argv) from e

        result = CommandResult(
            command=argv,
            return_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            duration_seconds=time.time() - start_time,
        )
        logger.debug(f"Result: {result.return_code} {result.output!r}")
        return result

    def stream(
        self,
        command: Sequence[str],
        on_output: Callable[[str], None],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """Run a command, forwarding its combined output line by line.

        Standard error is merged into standard output, the way a terminal
        would show it.

        Args:
            command: Argument vector.
            on_output: Called with each chunk of output as it arrives.
            cwd: Working directory for the command.
            env: Extra environment variables.
            timeout: Overrides the runner's timeout.

        Returns:
            CommandResult whose ``stdout`` holds the combined output.

        Raises:
            CommandError: If the command cannot be started or times out.
        """
        argv = [str(arg) for arg in command]
        limit = timeout or self.timeout
        logger.debug(f"Call: {shlex.join(argv)}")

        start_time = time.time()
        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd,
                env=self._environment(env),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise CommandError(f"Cannot execute {argv[0]}: {e}", command=argv) from e

        expired = threading.Event()

        def kill() -> None:
            expired.set()
            process.kill()

        timer = threading.Timer(limit, kill)
        timer.start()
        chunks: list[str] = []
        try:
            for line in process.stdout or ():
                chunks.append(line)
                on_output(line)
            return_code = process.wait()
        finally:
            timer.cancel()
            if process.stdout is not None:
                process.stdout.close()

        if expired.is_set():
            raise CommandError(f"Command timed out after {limit} seconds", command=argv)

        return CommandResult(
            command=argv,
            return_code=return_code,
            stdout="".join(chunks),
            duration_seconds=time.time() - start_time,
        )
