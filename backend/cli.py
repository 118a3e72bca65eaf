"""
Traceability CLI.

Command-line access to batch traces and database setup, for recall
exercises run from a terminal and for local development.
"""

import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="traceability",
    help="Batch Traceability CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Trace Commands
# =============================================================================

@app.command()
def trace(
    batch_code: str = typer.Argument(..., help="Root batch code"),
    tenant: int = typer.Option(..., "--tenant", "-t", help="Tenant ID"),
    direction: str = typer.Option("forward", "--direction", "-d", help="forward or backward"),
    max_depth: int = typer.Option(None, "--max-depth", help="Maximum hops from the root"),
    max_nodes: int = typer.Option(None, "--max-nodes", help="Maximum batches in the trace"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON"),
):
    """Trace a batch forward or backward and show its mass balance."""
    from rest_api.services.traceability import TraceService
    from shared.infrastructure.db import get_db_context
    from shared.utils.exceptions import AppException
    from shared.utils.trace_schemas import TraceResultOutput

    try:
        with get_db_context() as db:
            result = TraceService.for_session(db).trace(
                tenant_id=tenant,
                batch_code=batch_code,
                direction=direction,
                max_depth=max_depth,
                max_nodes=max_nodes,
            )
    except AppException as e:
        console.print(f"[red]✗ {e.detail}[/red]")
        raise typer.Exit(1)

    output = TraceResultOutput.from_result(result)
    if as_json:
        console.print_json(output.model_dump_json())
        return

    balances = {record.batch_id: record for record in output.node_balances}
    flagged = {flag.batch_id for flag in output.cycle_flags}

    table = Table(title=f"{output.direction.capitalize()} trace of {output.batch.code}")
    table.add_column("Depth", style="cyan", justify="right")
    table.add_column("Batch", style="bold")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("In", justify="right")
    table.add_column("Out", justify="right")
    table.add_column("Variance", style="yellow", justify="right")

    for node in output.nodes:
        record = balances.get(node.batch.id)
        code = node.batch.code
        if node.batch.id in flagged:
            code += " [red](cycle)[/red]"
        if record is None:
            table.add_row(str(node.depth), code, node.batch.kind, node.batch.status, "-", "-", "[red]unit mismatch[/red]")
            continue
        table.add_row(
            str(node.depth),
            code,
            node.batch.kind,
            node.batch.status,
            f"{record.total_input:g} {record.unit}",
            f"{record.total_output:g} {record.unit}",
            f"{record.variance:g} {record.unit}",
        )

    console.print(table)

    if output.endpoints:
        codes = {node.batch.id: node.batch.code for node in output.nodes}
        parties = Table(title="Suppliers" if output.direction == "backward" else "Customers")
        parties.add_column("Name", style="bold")
        parties.add_column("Reference")
        parties.add_column("Batch")
        parties.add_column("Quantity", justify="right")
        for endpoint in output.endpoints:
            quantity = f"{endpoint.quantity:g} {endpoint.unit}" if endpoint.quantity is not None else "-"
            parties.add_row(endpoint.label, endpoint.sublabel or "-", codes.get(endpoint.batch_id, "-"), quantity)
        console.print(parties)
    if output.allergens:
        console.print(f"Allergens: [bold]{', '.join(output.allergens)}[/bold]")

    headline = output.mass_balance
    if headline is not None:
        percent = f"{headline.variance_percent:.2f}%" if headline.variance_percent is not None else "n/a"
        console.print(
            f"Mass balance: in {headline.total_input:g} {headline.unit}, "
            f"out {headline.total_output:g} {headline.unit}, "
            f"variance {headline.variance:g} {headline.unit} ({percent})"
        )
    for mismatch in output.unit_mismatches:
        where = f"batch {mismatch.batch_id}" if mismatch.batch_id is not None else "aggregate"
        console.print(f"[red]Unit mismatch at {where}: {', '.join(mismatch.units)} ({mismatch.reason})[/red]")
    if output.truncated:
        console.print("[yellow]⚠ Trace truncated by depth or node limit; it is NOT complete[/yellow]")

    summary = output.summary
    console.print(
        f"[dim]{summary.node_count} batches, {summary.link_count} links, "
        f"{summary.levels_fetched} level fetches, {summary.elapsed_ms:.1f}ms[/dim]"
    )


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_init():
    """Create database tables."""
    from rest_api.models import Base
    from shared.infrastructure.db import engine

    console.print("[blue]Creating tables[/blue]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓ Tables created/verified[/green]")


@app.command()
def db_seed(
    force: bool = typer.Option(False, "--force", "-f", help="Seed even in production"),
):
    """Seed database with the demo bakery lineage."""
    from rest_api.seed import seed
    from shared.config.settings import settings
    from shared.infrastructure.db import get_db_context

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        created = seed(db)

    if created:
        console.print("[green]✓ Demo data seeded[/green]")
    else:
        console.print("[yellow]Demo data already present[/yellow]")


# =============================================================================
# Config Commands
# =============================================================================

@app.command()
def check_config():
    """Show effective trace settings and configuration errors."""
    from shared.config.settings import settings

    table = Table(title="Trace Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Default max depth", str(settings.trace_default_max_depth))
    table.add_row("Default max nodes", str(settings.trace_default_max_nodes))
    table.add_row("Max depth limit", str(settings.trace_max_depth_limit))
    table.add_row("Max nodes limit", str(settings.trace_max_nodes_limit))
    table.add_row("Timeout (s)", f"{settings.trace_timeout_seconds:g}")
    table.add_row("Fetch chunk size", str(settings.trace_fetch_chunk_size))
    console.print(table)

    errors = settings.validate_production_settings()
    if errors:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Configuration valid[/green]")


if __name__ == "__main__":
    app()
