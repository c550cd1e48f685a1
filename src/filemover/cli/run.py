"""
filemover run - Start the worker.

Runs the detection scheduler and the transfer consumers until SIGINT/SIGTERM.
"""

from pathlib import Path

import typer

from filemover.exceptions import InitializationError
from filemover.utils.logging import get_logger

logger = get_logger("filemover.cli.run")


app = typer.Typer(name="run", help="Run the FileMover worker", invoke_without_command=True)


@app.callback()
def run(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    no_scheduler: bool = typer.Option(False, "--no-scheduler", help="Only consume transfers, never scan"),
    no_consumer: bool = typer.Option(False, "--no-consumer", help="Only scan and publish, never transfer"),
) -> None:
    """
    Run the worker until interrupted.
    """
    if ctx.invoked_subcommand is not None:
        return
    if no_scheduler and no_consumer:
        typer.echo("Error: --no-scheduler and --no-consumer leave nothing to run", err=True)
        raise typer.Exit(2)

    import asyncio

    from filemover.service.initialization import FileMoverInitializer
    from filemover.service.worker import serve

    try:
        initializer = FileMoverInitializer(project_dir, env=env, verbose=verbose)
        initializer.initialize_config()
        worker = initializer.build_worker()
    except InitializationError as e:
        logger.error(f"Initialization failed: {e}")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    logger.info("Starting FileMover worker...")
    asyncio.run(serve(worker, enable_scheduler=not no_scheduler, enable_consumer=not no_consumer))
