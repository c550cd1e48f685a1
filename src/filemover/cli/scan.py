"""
filemover scan - Run one detection scan now.

With the in-memory broker the detected files are also transferred before the
command returns; with RabbitMQ the events are left for running workers.
"""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from filemover.exceptions import FileMoverError, InitializationError
from filemover.utils.logging import get_logger

logger = get_logger("filemover.cli.scan")

app = typer.Typer(name="scan", help="Run a single detection scan", invoke_without_command=True)

console = Console()


async def scan_once(worker, tenant_id: str, config_id: int, *, transfer: bool):
    """Start ``worker`` without its scheduler, scan one config, and drain its channel when transferring."""
    from filemover.messaging.adapters.memory import InMemoryBus
    from filemover.messaging.topology import channel_name

    await worker.start(enable_scheduler=False, enable_consumer=transfer)
    try:
        result = await worker.scheduler.trigger(tenant_id, config_id)
        if transfer and isinstance(worker.bus, InMemoryBus):
            await worker.bus.join(channel_name(tenant_id, config_id))
        return result
    finally:
        await worker.stop()


@app.callback()
def scan(
    ctx: typer.Context,
    tenant_id: str = typer.Argument(..., help="Tenant to scan for"),
    config_id: int = typer.Argument(..., help="Transfer configuration id"),
    env: str | None = typer.Option(None, help="Environment (dev, staging, prod)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
    no_transfer: bool = typer.Option(False, "--no-transfer", help="Publish events without consuming them"),
) -> None:
    """
    Scan one transfer configuration and report what was published.
    """
    if ctx.invoked_subcommand is not None:
        return

    from filemover.messaging.adapters.memory import InMemoryBus
    from filemover.service.initialization import FileMoverInitializer

    try:
        initializer = FileMoverInitializer(project_dir, env=env, verbose=verbose)
        initializer.initialize_config()
        worker = initializer.build_worker()
    except InitializationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    # Only the in-memory broker loses events when this process exits
    transfer = isinstance(worker.bus, InMemoryBus) and not no_transfer

    try:
        result = asyncio.run(scan_once(worker, tenant_id, config_id, transfer=transfer))
    except FileMoverError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    table = Table(title=f"Scan {tenant_id}/{config_id}", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for field, value in result.to_dict().items():
        table.add_row(field, "" if value is None else str(value))
    if transfer:
        stats = worker.consumer.stats
        table.add_row("transferred", str(stats.succeeded))
        table.add_row("dead_lettered", str(stats.dead_lettered))
    console.print(table)

    if result.status == "failed":
        raise typer.Exit(1)
