"""Main CLI entry point for erlcheck."""

from pathlib import Path

import click

from erlcheck import __version__
from erlcheck.core.config.settings import get_settings
from erlcheck.core.exceptions.errors import ConfigurationError
from erlcheck.core.logger.logger import setup_logging
from erlcheck.models.options import CheckOptions, CopySpec, NameMode, RemoteTarget
from erlcheck.pipeline.orchestrator import Checker

HELP = """Check the given Erlang source files.

Each file is compiled with the options of the build system it belongs to
(rebar3, rebar or make), and the compiler's warnings and errors are printed
in the `path:line: message` form editors understand.

The exit code is 0 if every file compiled, 1 otherwise.
"""


@click.command(help=HELP, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True, help="Print debug output on stderr.")
@click.option(
    "--outdir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Put the BEAM files into DIR (relative to the project root).",
)
@click.option("--nooutdir", is_flag=True, help="Do not write BEAM files (the default).")
@click.option(
    "--xref",
    is_flag=True,
    help="Run xref on the BEAM file and print the calls to undefined functions.",
)
@click.option(
    "--load",
    type=(click.Choice([m.value for m in NameMode]), str, str),
    default=None,
    metavar="NAMING MYNAME TARGET",
    help="Load the compiled module into the TARGET node, connecting as MYNAME.",
)
@click.option("--cookie", metavar="SECRET", help="Cookie to use towards the --load target.")
@click.option(
    "--copy",
    "copy_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Overwrite the BEAM files with the same name under DIR.",
)
@click.version_option(__version__, prog_name="erlcheck")
@click.argument("files", nargs=-1, type=click.Path(path_type=Path))
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    outdir: Path | None,
    nooutdir: bool,
    xref: bool,
    load: tuple[str, str, str] | None,
    cookie: str | None,
    copy_dir: Path | None,
    files: tuple[Path, ...],
) -> None:
    if not files:
        click.echo("Usage: see --help.")
        ctx.exit(2)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    setup_logging(settings.logging, verbose=verbose)

    remote = None
    if load is not None:
        naming, local_node, remote_node = load
        remote = RemoteTarget(
            naming=NameMode(naming),
            local_node=local_node,
            remote_node=remote_node,
            cookie=cookie,
        )

    options = CheckOptions(
        verbose=verbose,
        outdir=None if nooutdir else outdir,
        xref=xref,
        load=remote,
        copy_to=CopySpec(target_dir=copy_dir) if copy_dir is not None else None,
    )
    options, disabled = options.disable_outdir_features()
    for feature in disabled:
        click.echo(f"Warning: {feature} disabled (it requires --outdir).", err=True)

    checker = Checker(options, tools=settings.tools)
    ctx.exit(checker.run(files))


if __name__ == "__main__":
    main()
