"""
filemover fingerprint - Compute a file fingerprint.

Prints the key the ledger and the broker use to recognise a file.
"""

from pathlib import Path

import typer

from filemover.core.types import parse_datetime
from filemover.detection.fingerprint import canonical_string, fingerprint

app = typer.Typer(name="fingerprint", help="Compute a file fingerprint", invoke_without_command=True)


@app.callback()
def compute(
    ctx: typer.Context,
    path: Path | None = typer.Argument(None, help="Existing file to fingerprint"),
    name: str | None = typer.Option(None, "--name", help="File name (when not reading a file)"),
    mtime: str | None = typer.Option(None, "--mtime", help="Modification time, ISO-8601 (naive = UTC)"),
    size: int | None = typer.Option(None, "--size", help="Size in bytes"),
    show_canonical: bool = typer.Option(False, "--canonical", help="Also print the hashed string"),
) -> None:
    """
    Fingerprint a file on disk, or a (name, mtime, size) triple.
    """
    if ctx.invoked_subcommand is not None:
        return

    if path is not None:
        if not path.is_file():
            typer.echo(f"Error: not a file: {path}", err=True)
            raise typer.Exit(1)
        stat = path.stat()
        name = path.name
        file_mtime = parse_datetime(stat.st_mtime)
        size = stat.st_size
    else:
        if name is None or mtime is None or size is None:
            typer.echo("Error: give a PATH, or all of --name, --mtime and --size", err=True)
            raise typer.Exit(2)
        try:
            file_mtime = parse_datetime(mtime)
        except ValueError as e:
            typer.echo(f"Error: invalid --mtime {mtime!r}: {e}", err=True)
            raise typer.Exit(2) from e

    if show_canonical:
        typer.echo(canonical_string(name, file_mtime, size))
    typer.echo(fingerprint(name, file_mtime, size))
