"""
filemover info - Display project information.

Shows tenants with their ledger routing, and the configured transfers with
their next fire time.
"""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="info", help="Display FileMover project information", invoke_without_command=True)

console = Console()


async def _routes(router, tenant_ids: list[str]) -> dict[str, str]:
    from filemover.exceptions import FileMoverError

    routes = {}
    for tenant_id in tenant_ids:
        try:
            descriptor = await router.resolve(tenant_id)
            routes[tenant_id] = f"{descriptor.dsn} ({descriptor.source})"
        except FileMoverError as e:
            routes[tenant_id] = f"[red]{e}[/red]"
    return routes


@app.callback()
def info(
    ctx: typer.Context,
    env: str | None = typer.Option(None, help="Environment"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    project_dir: Path = typer.Option(Path.cwd(), "--project-dir", "-d", help="Project directory"),
) -> None:
    """
    Display tenants and transfer configurations.
    """
    if ctx.invoked_subcommand is not None:
        return

    from filemover.detection.cron_parser import CronParseError, parse_schedule
    from filemover.exceptions import FileMoverError, InitializationError
    from filemover.service import factory
    from filemover.service.initialization import initialize

    try:
        config = initialize(project_dir, env=env, verbose=verbose)
        directory = factory.build_directory(config)
        router = factory.build_router(config, directory)
        catalog = factory.build_catalog(config, directory)
    except (InitializationError, FileMoverError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    console.print(f"\n[bold blue]{config.get('name', project_dir.name)}[/bold blue]")
    console.print(f"[dim]Environment: {config.environment}  Broker: {config.broker.get('url')}[/dim]\n")

    tenant_ids = asyncio.run(directory.list_tenant_ids(active_only=False))
    routes = asyncio.run(_routes(router, tenant_ids))

    tenant_table = Table(title=f"Tenants ({len(tenant_ids)})", show_header=True)
    tenant_table.add_column("Tenant", style="cyan")
    tenant_table.add_column("Mode", style="green")
    tenant_table.add_column("Active")
    tenant_table.add_column("Client codes", style="dim")
    tenant_table.add_column("Ledger", style="dim")
    for tenant_id in tenant_ids:
        tenant = asyncio.run(directory.get_tenant(tenant_id))
        codes = ", ".join(tenant.allowed_client_codes) if tenant.allowed_client_codes else tenant_id
        tenant_table.add_row(
            tenant_id,
            str(tenant.database_mode),
            "yes" if tenant.active else "no",
            codes,
            routes[tenant_id],
        )
    console.print(tenant_table)

    if config.get("catalog.type", "static") != "static":
        console.print(f"\n[dim]Transfers are read from {config.get('catalog.base_url')}[/dim]")
        return

    now = datetime.now(UTC)
    timezone = config.scheduler.get("timezone")
    transfer_table = Table(title="Transfers", show_header=True)
    transfer_table.add_column("Tenant", style="cyan")
    transfer_table.add_column("Id", style="cyan")
    transfer_table.add_column("Route", style="green")
    transfer_table.add_column("Schedule")
    transfer_table.add_column("Next fire", style="dim")
    for tenant_id in tenant_ids:
        for transfer in asyncio.run(catalog.list_active_configs(tenant_id)):
            try:
                next_fire = parse_schedule(transfer.schedule_spec).next_fire(now, timezone).isoformat()
            except CronParseError as e:
                next_fire = f"[red]{e}[/red]"
            route = (
                f"{transfer.source_type}:{transfer.source_location} -> "
                f"{transfer.destination_type}:{transfer.destination_location}"
            )
            transfer_table.add_row(
                tenant_id, str(transfer.config_id), route, transfer.schedule_spec or "(default)", next_fire
            )
    console.print(transfer_table)
