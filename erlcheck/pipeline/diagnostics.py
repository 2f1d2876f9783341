"""Editor-facing diagnostic lines.

Diagnostics are not log records. They go to standard output in the
``path:line: message`` form that editors parse into a quickfix list, so
they are written with ``click.echo`` and never through ``logging``.
"""

from collections.abc import Callable
from pathlib import Path

import click

from erlcheck.core.utils.paths import relativize_path_maybe
from erlcheck.erlang.terms import format_atom

Emit = Callable[[str], None]


def echo(line: str) -> None:
    """Write one diagnostic line to standard output."""
    click.echo(line)


def format_file_error(file: Path | str, line: int, message: str) -> str:
    """Format an error that belongs to a file rather than to the compiler.

    Editors only show entries that carry a line number, so errors without
    one are reported on line 1.
    """
    return f"{relativize_path_maybe(file)}:{line}: {message}"


def format_undefined_call(
    source: str, line: int, module: str, function: str, arity: int
) -> str:
    """Format a call to a function that does not exist."""
    return (
        f"{source}:{line}: Warning: Calling undefined function "
        f"{format_atom(module)}:{format_atom(function)}/{arity}"
    )
