"""
Command-line interface for tenantsync.
"""

import asyncio
import signal
import sys
from functools import wraps
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import TenantSyncConfig
from .database.connection import ConnectionConfig
from .exceptions import ConfigurationError, TenantSyncError
from .logging_setup import configure_logging
from .orchestrator import BatchResult, BuildMode, Orchestrator, ReconciliationStatus
from .schema.spec import applicant_types_spec


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TenantSyncError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(130)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


def _load_config(ctx: click.Context) -> TenantSyncConfig:
    return TenantSyncConfig.load(ctx.obj.get("config_path"))


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path (defaults to TENANTSYNC_* environment variables)",
)
@click.pass_context
def main(ctx, debug: bool, config_path: Optional[str]):
    """tenantsync: provision a table across a master database and its tenants."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path


@main.command()
@click.argument(
    "mode",
    type=click.Choice([m.value for m in BuildMode], case_sensitive=False),
)
@click.pass_context
@handle_errors
def build(ctx, mode: str):
    """Create or upgrade the table on the master or on every tenant database."""
    config = _load_config(ctx)
    configure_logging(config.logging, debug=ctx.obj["debug"])

    build_mode = BuildMode(mode.lower())
    console.print(
        f"[blue]Building {config.schema_name}.{config.table_name} "
        f"({build_mode.value})[/blue]"
    )

    batch = asyncio.run(_run_build(config, build_mode))

    _display_results(batch)

    if not batch.all_succeeded:
        sys.exit(1)


async def _run_build(config: TenantSyncConfig, build_mode: BuildMode) -> BatchResult:
    """Run one build; Ctrl+C stops after the statement in flight."""
    cancel_event = asyncio.Event()

    def handle_sigint():
        console.print("\n[yellow]Cancelling after the current statement...[/yellow]")
        cancel_event.set()

    loop = asyncio.get_running_loop()
    installed = False
    try:
        loop.add_signal_handler(signal.SIGINT, handle_sigint)
        installed = True
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl+C interrupts the run
        pass

    try:
        orchestrator = Orchestrator(config, cancel_event=cancel_event)
        return await orchestrator.reconcile_all(build_mode)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


@main.command()
@click.pass_context
@handle_errors
def validate_config(ctx):
    """Validate configuration."""
    config = _load_config(ctx)

    try:
        ConnectionConfig.from_url(config.require_master_connection_string())
        applicant_types_spec(config.schema_name, config.table_name)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Configuration error: {escape(str(e))}")
        sys.exit(1)

    console.print("[green]✓[/green] Configuration is valid")
    _display_config_summary(config)


@main.command()
@click.pass_context
@handle_errors
def show_spec(ctx):
    """Show the table layout that build provisions."""
    config = _load_config(ctx)
    spec = applicant_types_spec(config.schema_name, config.table_name)

    col_table = Table(title=f"Table {spec.display_name}")
    col_table.add_column("Column", style="cyan")
    col_table.add_column("Definition", style="magenta")
    col_table.add_column("Identity", style="yellow")
    for column in spec.columns:
        col_table.add_row(column.name, column.sql_type, "yes" if column.is_identity else "")
    console.print(col_table)

    console.print(f"Check constraint: {spec.not_blank_constraint_name or '-'}")
    console.print(f"Unique index: {spec.unique_index_name or '-'}")
    console.print(
        "Seed rows: " + ", ".join(str(r.values.get("name", dict(r.values))) for r in spec.seed_rows)
    )


def _display_results(batch: BatchResult) -> None:
    """Display per-target results."""
    styles = {
        ReconciliationStatus.SUCCESS: "green",
        ReconciliationStatus.FAILED: "red",
        ReconciliationStatus.CANCELLED: "yellow",
    }

    result_table = Table(title=f"Reconciliation Results ({batch.mode.value})")
    result_table.add_column("Database", style="cyan")
    result_table.add_column("Status")
    result_table.add_column("Changes", style="magenta")
    result_table.add_column("Time (ms)", justify="right")
    result_table.add_column("Error", style="red")

    for result in batch.results:
        style = styles[result.status]
        result_table.add_row(
            result.target,
            f"[{style}]{result.status.value}[/{style}]",
            _describe_changes(result),
            f"{result.execution_time_ms:.1f}",
            escape(result.error or ""),
        )

    console.print(result_table)
    summary = batch.summary()
    console.print(
        f"{summary['successful']}/{summary['total_targets']} succeeded, "
        f"{summary['failed']} failed, {summary['cancelled']} cancelled"
    )


def _describe_changes(result) -> str:
    changes = result.changes
    if changes is None:
        return ""
    if not changes.has_changes:
        return "up to date"

    parts = []
    if changes.table_created:
        parts.append("created")
    if changes.columns_added:
        parts.append(f"+columns: {', '.join(changes.columns_added)}")
    if changes.constraints_added:
        parts.append(f"+constraints: {len(changes.constraints_added)}")
    if changes.indexes_added:
        parts.append(f"+indexes: {len(changes.indexes_added)}")
    if changes.rows_seeded:
        parts.append(f"seeded {changes.rows_seeded}")
    return "; ".join(parts)


def _display_config_summary(config: TenantSyncConfig) -> None:
    """Display a summary of the configuration."""
    summary = Table(title="Configuration Summary")
    summary.add_column("Setting", style="cyan")
    summary.add_column("Value", style="green")

    try:
        master = ConnectionConfig.from_url(config.master_connection_string).redacted_url()
    except ConfigurationError:
        master = "[red]unparseable[/red]"

    summary.add_row("Master database", master)
    summary.add_row("Table", f"{config.schema_name}.{config.table_name}")
    summary.add_row("Command timeout", f"{config.command_timeout:g}s")
    summary.add_row("Connect timeout", f"{config.connect_timeout:g}s")
    summary.add_row("Tenants query", config.tenants_query)
    summary.add_row("Max concurrency", str(config.max_concurrency))
    summary.add_row("Log level", config.logging.level)

    console.print(summary)


if __name__ == "__main__":
    main()
