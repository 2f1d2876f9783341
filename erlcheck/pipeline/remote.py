"""Hot-reload of compiled modules into a running Erlang node.

A short-lived hidden helper node connects to the target, purges the old
code and loads the new object code with ``rpc:call/5``. The object code is
handed to the helper base64-encoded on its standard input.
"""

import base64
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from erlcheck.build.executor import CommandRunner
from erlcheck.core.config.settings import ToolSettings
from erlcheck.core.exceptions.errors import CommandError, HotReloadError
from erlcheck.core.logger.logger import get_logger
from erlcheck.erlang.terms import format_atom, format_term
from erlcheck.models.options import NameMode, RemoteTarget

logger = get_logger(__name__)

# Helper exit codes
_EXIT_LOADED = 0
_EXIT_TRANSPORT = 2
_EXIT_REMOTE = 3

_RELOAD_EVAL = (
    "ReadAll = fun Loop(Acc) -> case io:get_line(\"\") of "
    "eof -> lists:append(lists:reverse(Acc)); Line -> Loop([Line | Acc]) end end, "
    "Bin = base64:decode(string:trim(ReadAll([]))), "
    "{set_cookie}"
    "case rpc:call({node}, code, purge, [{module}], {timeout}) of "
    "{{badrpc, R1}} -> io:format(\"~tp~n\", [{{badrpc, R1}}]), halt({transport}); "
    "_ -> case rpc:call({node}, code, load_binary, [{module}, {file}, Bin], {timeout}) of "
    "{{module, _}} -> halt({loaded}); "
    "{{error, R2}} -> io:format(\"~tp~n\", [R2]), halt({remote}); "
    "{{badrpc, R3}} -> io:format(\"~tp~n\", [{{badrpc, R3}}]), halt({transport}) "
    "end "
    "end."
)


class ReloadStatus(Enum):
    """Outcome of a hot-reload attempt."""

    LOADED = "loaded"
    TRANSPORT_FAILURE = "transport_failure"
    REMOTE_FAILURE = "remote_failure"


@dataclass
class ReloadResult:
    """Result of loading one module into a node.

    Attributes:
        status: What happened.
        module: The module that was sent.
        node: The target node.
        reason: Failure reason as printed by the helper.
    """

    status: ReloadStatus
    module: str
    node: str
    reason: str = ""

    @property
    def success(self) -> bool:
        return self.status is ReloadStatus.LOADED


class RemoteLoader:
    """Loads compiled modules into a remote node."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        tools: ToolSettings | None = None,
    ) -> None:
        self.tools = tools or ToolSettings()
        self.runner = runner or CommandRunner(timeout=self.tools.command_timeout)

    def build_command(self, target: RemoteTarget, module: str, beam_path: Path) -> list[str]:
        """Build the helper node command line."""
        node = format_atom(target.remote_node)
        set_cookie = ""
        if target.cookie is not None:
            set_cookie = f"erlang:set_cookie({node}, {format_atom(target.cookie)}), "
        expression = _RELOAD_EVAL.format(
            set_cookie=set_cookie,
            node=node,
            module=format_atom(module),
            file=format_term(str(beam_path)),
            timeout=self.tools.rpc_timeout * 1000,
            loaded=_EXIT_LOADED,
            transport=_EXIT_TRANSPORT,
            remote=_EXIT_REMOTE,
        )
        name_flag = "-sname" if target.naming is NameMode.SHORTNAMES else "-name"
        return [
            self.tools.erl,
            "-noshell",
            "-hidden",
            name_flag,
            target.local_node,
            "-eval",
            expression,
        ]

    def load(self, target: RemoteTarget, module: str, beam_path: Path) -> ReloadResult:
        """Purge ``module`` on the target node and load the new object code.

        Args:
            target: Node to load into.
            module: Module name.
            beam_path: Freshly compiled artifact.

        Returns:
            ReloadResult describing the outcome.

        Raises:
            HotReloadError: If the object code cannot be read.
        """
        try:
            object_code = beam_path.read_bytes()
        except OSError as e:
            raise HotReloadError(
                f"Failed to find object code for module {module}: {e.strerror or e}",
                module=module,
                node=target.remote_node,
            ) from e

        command = self.build_command(target, module, beam_path)
        encoded = base64.b64encode(object_code).decode("ascii")
        try:
            result = self.runner.run(command, input=encoded + "\n")
        except CommandError as e:
            return ReloadResult(
                ReloadStatus.TRANSPORT_FAILURE, module, target.remote_node, e.message
            )

        reason = result.output.strip()
        if result.return_code == _EXIT_LOADED:
            logger.debug(f"Module {module} is reloaded on {target.remote_node}")
            return ReloadResult(ReloadStatus.LOADED, module, target.remote_node)
        if result.return_code == _EXIT_REMOTE:
            return ReloadResult(ReloadStatus.REMOTE_FAILURE, module, target.remote_node, reason)
        return ReloadResult(
            ReloadStatus.TRANSPORT_FAILURE,
            module,
            target.remote_node,
            reason or f"helper node exited with code {result.return_code}",
        )
