"""
Main CLI entry point.
"""

import typer

from filemover import __version__
from filemover.cli import fingerprint, info, run, scan


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"filemover version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="filemover",
    help="FileMover - multi-tenant file detection and transfer worker",
    add_completion=True,
)

# Register subcommands
app.add_typer(run.app, name="run")
app.add_typer(scan.app, name="scan")
app.add_typer(info.app, name="info")
app.add_typer(fingerprint.app, name="fingerprint")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """
    FileMover - multi-tenant file detection and transfer worker.

    Run 'filemover <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
