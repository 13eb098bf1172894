"""BerthBoard CLI: berth scheduling from the terminal.

Commands:
  init         create the database and check reference data
  sample-data  replace the schedule with the demo vessel calls
  list         vessel calls ordered by ETA
  show         one vessel call with its conflicts
  delete       remove a vessel call
  clear        remove every vessel call
  conflicts    schedule-wide conflict scan
  metrics      dashboard KPIs
  export       write the schedule as CSV or JSON
  serve        run the API server
"""
from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="berthboard",
    help="Berth scheduling for port terminals.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

_SEVERITY_STYLE = {"error": "red", "warning": "yellow"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _open_store():
    """Store wired to the configured slot (mockable for testing)."""
    from berthboard.api.state import build_store
    return build_store()


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def _print_conflicts(conflicts) -> None:
    for c in conflicts:
        style = _SEVERITY_STYLE.get(c.severity.value, "white")
        console.print(f"  [{style}]{c.severity.value.upper()}[/{style}] {c.conflict_type.value}: {c.message}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("init")
def init():
    """Create the database tables and validate reference data."""
    try:
        from berthboard.database import init_db
        from berthboard.modules.reference_data import get_reference_data

        with console.status("[bold]Creating database..."):
            init_db()
        reference = get_reference_data()
    except Exception as e:
        console.print(f"[red]Setup failed: {e}[/red]")
        raise typer.Exit(1)

    console.print("[green]Database ready.[/green]")
    console.print(
        f"  {len(reference.tenants)} tenants, {len(reference.terminals)} terminals, "
        f"{len(reference.berths)} berths ({sum(1 for b in reference.berths if b.is_active)} active)"
    )


@app.command("sample-data")
def sample_data(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Replace all vessel calls with the demo schedule."""
    from berthboard.modules.conflict_detector import detect_all_conflicts
    from berthboard.modules.sample_data import generate_sample_vessels

    if not yes:
        typer.confirm("This deletes every existing vessel call. Continue?", abort=True)

    store = _open_store()
    cleared = store.clear()
    if not cleared.success:
        console.print(f"[red]{cleared.error}[/red]")
        raise typer.Exit(1)

    drafts = generate_sample_vessels()
    created = 0
    for draft in drafts:
        result = store.create(draft)
        if result.success:
            created += 1
        else:
            console.print(f"[yellow]Skipped {draft['voyage_number']}: {result.error}[/yellow]")

    conflicts = detect_all_conflicts(store.get_all(), store.berths)
    console.print(f"[green]Generated {created} sample vessels successfully[/green]")
    if conflicts:
        console.print(f"[dim]{len(conflicts)} scheduling conflicts included for demonstration[/dim]")
    if created < len(drafts):
        raise typer.Exit(1)


@app.command("list")
def list_vessels(
    terminal: Optional[str] = typer.Option(None, "--terminal", help="Terminal id"),
    berth: Optional[str] = typer.Option(None, "--berth", help="Berth id"),
    vessel_type: Optional[str] = typer.Option(None, "--type", help="Container, RoRo or Bulk"),
    status: Optional[str] = typer.Option(None, "--status"),
    search: Optional[str] = typer.Option(None, "--search", help="Voyage number, name or operator"),
):
    """List vessel calls ordered by ETA."""
    from berthboard.modules.vessel_store import sort_by_eta

    store = _open_store()
    vessels = sort_by_eta(store.filter_vessels(
        terminal_id=terminal, berth_id=berth, vessel_type=vessel_type, status=status, search=search,
    ))
    if not vessels:
        console.print("[yellow]No vessels found[/yellow]")
        return

    table = Table(title=f"Vessel calls ({len(vessels)})")
    table.add_column("Voyage", style="cyan")
    table.add_column("Vessel")
    table.add_column("Type")
    table.add_column("ETA")
    table.add_column("ETD")
    table.add_column("LOA", justify="right")
    table.add_column("Draft", justify="right")
    table.add_column("Berth")
    table.add_column("Status")
    for v in vessels:
        table.add_row(
            v.voyage_number, v.vessel_name, v.vessel_type.value,
            _fmt_time(v.eta), _fmt_time(v.etd),
            f"{v.loa:g}", f"{v.draft:g}",
            v.berth_id or "-", v.status.value,
        )
    console.print(table)


@app.command("show")
def show(voyage_number: str = typer.Argument(..., help="Voyage number, e.g. 2024-001-E")):
    """Show one vessel call and its conflicts."""
    from berthboard.modules.conflict_detector import detect_conflicts

    store = _open_store()
    vessel = store.get_by_voyage_number(voyage_number)
    if vessel is None:
        console.print(f"[red]Vessel with voyage number {voyage_number} not found[/red]")
        raise typer.Exit(1)

    console.print(f"[bold cyan]{vessel.voyage_number}[/bold cyan]  [bold]{vessel.vessel_name}[/bold] ({vessel.vessel_type.value})")
    console.print(f"  Operator: {vessel.operator or '-'}  Route: {vessel.route_info or '-'}")
    console.print(f"  ETA {_fmt_time(vessel.eta)}  ETD {_fmt_time(vessel.etd)}")
    console.print(f"  LOA {vessel.loa:g}m  Draft {vessel.draft:g}m")
    console.print(f"  Terminal {vessel.terminal_id}  Berth {vessel.berth_id or '-'}  Status {vessel.status.value}")

    conflicts = detect_conflicts(vessel, store.get_all(), store.berths)
    if conflicts:
        console.print("[bold]Conflicts[/bold]")
        _print_conflicts(conflicts)


@app.command("delete")
def delete(
    voyage_number: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y"),
):
    """Delete a vessel call."""
    if not yes:
        typer.confirm(f"Delete vessel {voyage_number}?", abort=True)
    result = _open_store().delete(voyage_number)
    if not result.success:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{result.message}[/green]")


@app.command("clear")
def clear(yes: bool = typer.Option(False, "--yes", "-y")):
    """Delete every vessel call."""
    if not yes:
        typer.confirm("Delete ALL vessel calls?", abort=True)
    result = _open_store().clear()
    if not result.success:
        console.print(f"[red]{result.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]{result.message}[/green]")


@app.command("conflicts")
def conflicts(
    terminal: Optional[str] = typer.Option(None, "--terminal", help="Terminal id"),
    strict: bool = typer.Option(False, "--strict", help="Exit 1 if any error-severity conflict exists"),
):
    """Scan the whole schedule for berth conflicts."""
    from berthboard.modules.conflict_detector import detect_all_conflicts, has_blocking_conflicts

    store = _open_store()
    vessels = store.get_all()
    found = detect_all_conflicts(vessels, store.berths)
    if terminal:
        in_terminal = {v.voyage_number for v in vessels if v.terminal_id == terminal}
        found = [c for c in found if c.voyage_number in in_terminal]

    if not found:
        console.print("[green]No conflicts[/green]")
        return

    table = Table(title=f"Conflicts ({len(found)})")
    table.add_column("Voyage", style="cyan")
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Message")
    for c in found:
        style = _SEVERITY_STYLE.get(c.severity.value, "white")
        table.add_row(c.voyage_number, c.conflict_type.value, f"[{style}]{c.severity.value}[/{style}]", c.message)
    console.print(table)

    if strict and has_blocking_conflicts(found):
        raise typer.Exit(1)


@app.command("metrics")
def metrics(
    hours: Optional[int] = typer.Option(None, "--hours", help="Utilization window length from now"),
    terminal: Optional[str] = typer.Option(None, "--terminal", help="Terminal id"),
):
    """Show dashboard KPIs."""
    from berthboard.config import settings
    from berthboard.modules.metrics import compute_metrics
    from berthboard.schemas.metrics import MetricsWindow
    from berthboard.utils.dates import utcnow

    store = _open_store()
    now = utcnow()
    window = MetricsWindow(start=now, end=now + timedelta(hours=hours or settings.METRICS_WINDOW_HOURS))
    vessels = store.filter_vessels(terminal_id=terminal) if terminal else store.get_all()
    berths = [b for b in store.berths if b.is_active and (terminal is None or b.terminal_id == terminal)]
    result = compute_metrics(vessels, berths, window, now=now)

    console.print("[bold]Schedule[/bold]")
    console.print(f"  Total vessels: {result.total_vessels}")
    console.print(f"  Upcoming arrivals (next {settings.UPCOMING_ARRIVALS_HOURS}h): {result.upcoming_arrivals}")
    console.print(f"  Berth utilization: {result.berth_utilization:.1f}%")
    delay_color = "red" if result.operational_delays else "green"
    console.print(f"  Operational delays: [{delay_color}]{result.operational_delays}[/{delay_color}]")
    if result.average_turnaround_hours is not None:
        console.print(f"  Average turnaround: {result.average_turnaround_hours:.1f}h")
    console.print("  By type: " + "  ".join(f"{k} {v}" for k, v in result.vessels_by_type.items()))

    table = Table(title="Daily arrivals")
    table.add_column("Date")
    table.add_column("Arrivals", justify="right")
    for point in result.daily_throughput:
        table.add_row(point.date, str(point.count))
    console.print(table)


@app.command("export")
def export(
    fmt: str = typer.Option("csv", "--format", "-f", help="csv or json"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File to write (default: stdout)"),
    terminal: Optional[str] = typer.Option(None, "--terminal", help="Terminal id"),
):
    """Export the schedule."""
    from berthboard.modules.export import export_vessels
    from berthboard.modules.vessel_store import sort_by_eta

    store = _open_store()
    vessels = sort_by_eta(store.filter_vessels(terminal_id=terminal))
    try:
        content = export_vessels(vessels, fmt)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if output is None:
        typer.echo(content, nl=False)
        return
    output.write_text(content, encoding="utf-8")
    console.print(f"[green]Wrote {len(vessels)} vessels to {output}[/green]")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the API server."""
    import uvicorn

    console.print(f"API running at [cyan]http://{host}:{port}/docs[/cyan] (Ctrl+C to stop)")
    uvicorn.run("berthboard.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
