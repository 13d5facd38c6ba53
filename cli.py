#!/usr/bin/env python3
"""
Sprout CLI

Command-line interface for growth percentiles, timelines and rosters.
"""

import json
import logging
import sys
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

console = Console()

# Event colors without a rich color of the same name
RICH_COLORS = {"orange": "dark_orange", "indigo": "slate_blue1", "pink": "hot_pink", "gray": "grey50"}


def setup_paths():
    """Add the project root to sys.path for imports."""
    root = Path(__file__).parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


setup_paths()


def setup_logging(level: str):
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _load_events(events_path: Path):
    """Read timeline events from a JSON file (a list, or {"events": [...]})."""
    from src.models import TimelineEvent

    data = json.loads(events_path.read_text())
    if isinstance(data, dict):
        data = data.get("events", [])
    return [TimelineEvent.model_validate(row) for row in data]


@click.group()
@click.version_option(version="0.1.0", prog_name="sprout")
@click.option("--log-level", type=str, help="Override SPROUT_LOG_LEVEL")
def cli(log_level: Optional[str]):
    """
    Sprout - Child Health Data Engine

    Score growth measurements, browse health timelines and inspect
    a parent's roster of children.
    """
    from src.config import get_settings

    try:
        level = (log_level or get_settings().log_level).upper()
    except ValueError as e:
        raise click.ClickException(str(e))
    setup_logging(level)


@cli.command()
@click.argument("value", type=float)
@click.option("--age-months", type=int, required=True, help="Age in whole months")
@click.option("--gender", type=click.Choice(["male", "female"]), required=True, help="Child gender")
@click.option("--measurement", type=click.Choice(["height", "weight"]), default="height",
              help="Height in cm or weight in kg")
@click.option("--reference", type=click.Choice(["sample", "cdc"]), help="Growth reference table")
def percentile(value: float, age_months: int, gender: str, measurement: str, reference: Optional[str]):
    """
    Look up the percentile of a single measurement.

    Example:

        sprout percentile 88.4 --age-months 24 --gender male
    """
    from knowledge.growth import describe_percentile, load_table
    from src.config import get_settings

    table = load_table(reference or get_settings().growth_reference)
    result = table.percentile(value, age_months, gender, measurement)

    if table.entry(age_months, gender) is None:
        console.print(f"[yellow]No reference data for {gender} at {age_months} months, "
                      f"reporting the 50th percentile[/yellow]")

    console.print(f"[bold]P{result:.1f}[/bold]  {describe_percentile(result, measurement)}")


@cli.command()
@click.option("--height", type=float, required=True, help="Height in cm")
@click.option("--weight", type=float, required=True, help="Weight in kg")
@click.option("--age-months", type=int, required=True, help="Age in whole months")
@click.option("--gender", type=click.Choice(["male", "female"]), required=True, help="Child gender")
@click.option("--reference", type=click.Choice(["sample", "cdc"]), help="Growth reference table")
def assess(height: float, weight: float, age_months: int, gender: str, reference: Optional[str]):
    """
    Score a height/weight pair and show the growth assessment.

    Example:

        sprout assess --height 84.1 --weight 12.5 --age-months 24 --gender male
    """
    from knowledge.growth import classify, describe_percentile, load_table
    from src.config import get_settings

    table = load_table(reference or get_settings().growth_reference)
    height_p = table.percentile(height, age_months, gender, "height")
    weight_p = table.percentile(weight, age_months, gender, "weight")
    assessment = classify(height_p, weight_p)
    style = assessment.severity_color.value

    console.print(Panel(
        f"Height: {height} cm  [bold]P{height_p:.1f}[/bold]  {describe_percentile(height_p, 'height')}\n"
        f"Weight: {weight} kg  [bold]P{weight_p:.1f}[/bold]  {describe_percentile(weight_p, 'weight')}\n\n"
        f"[{style}]{assessment.status.value}[/{style}]: {assessment.message}",
        title=f"Growth at {age_months} months ({gender})",
        border_style=style,
    ))


@cli.command()
@click.argument("events_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--search", "search_text", type=str, default="", help="Text to look for in title, description or provider")
@click.option("--type", "event_type", type=str, default="all", help="Event type, or 'all'")
@click.option("--severity", type=click.Choice(["all", "low", "medium", "high"]), default="all")
@click.option("--range", "date_range",
              type=click.Choice(["all", "today", "week", "month", "3months", "year", "custom"]),
              default="all", help="Date window")
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), help="Custom range start")
@click.option("--end", type=click.DateTime(formats=["%Y-%m-%d"]), help="Custom range end")
@click.option("--horizon-days", type=int, help="Only show follow-ups within this many days")
def timeline(
    events_path: str,
    search_text: str,
    event_type: str,
    severity: str,
    date_range: str,
    start: Optional[datetime],
    end: Optional[datetime],
    horizon_days: Optional[int],
):
    """
    Filter a timeline export and show it grouped by day.

    Example:

        sprout timeline ./events.json --type illness --range 3months
    """
    import pydantic

    from src.config import get_settings
    from src.timeline import TimelineCriteria, build_view, date_label

    try:
        events = _load_events(Path(events_path))
        criteria = TimelineCriteria(
            search_text=search_text,
            type=event_type,
            severity=severity,
            date_range=date_range,
            custom_start=start.date() if start else None,
            custom_end=end.date() if end else None,
        )
    except (ValueError, pydantic.ValidationError) as e:
        raise click.ClickException(f"Invalid timeline input: {e}")

    if horizon_days is None:
        horizon_days = get_settings().follow_up_horizon_days

    now = datetime.now()
    view = build_view(events, criteria, now=now, horizon_days=horizon_days)

    console.print(f"\n[bold]{len(view.events)}[/bold] of {view.total} events\n")

    if not view.groups:
        console.print("[dim]No events match these filters[/dim]")

    for day, day_events in view.groups:
        table = Table(title=date_label(date.fromisoformat(day), now.date()), title_justify="left")
        table.add_column("Time")
        table.add_column("Type")
        table.add_column("Title")
        table.add_column("Severity")

        for event in day_events:
            severity_style = event.severity_color
            type_style = RICH_COLORS.get(event.style.color, event.style.color)
            table.add_row(
                event.date.strftime("%H:%M"),
                f"[{type_style}]{event.style.label}[/{type_style}]",
                event.title,
                f"[{severity_style}]{event.severity.value}[/{severity_style}]",
            )
        console.print(table)

    if view.unresolved:
        tree = Tree("[bold]Unresolved[/bold]")
        for event in view.unresolved:
            tree.add(f"[red]{event.title}[/red] ({event.style.label}, {event.date:%Y-%m-%d})")
        console.print(tree)

    if view.follow_ups:
        tree = Tree("[bold]Upcoming Follow-ups[/bold]")
        for event in view.follow_ups:
            tree.add(f"{event.follow_up_date:%Y-%m-%d}  {event.title}")
        console.print(tree)


@cli.command()
@click.option("--parent-id", type=str, required=True, help="Parent account id")
@click.option("--timeout", type=float, default=10.0, help="Seconds to wait for the roster")
def children(parent_id: str, timeout: float):
    """
    Show a parent's children as the live roster sees them.

    Requires SUPABASE_URL and SUPABASE_SERVICE_KEY.

    Example:

        sprout children --parent-id 5f0c...
    """
    from src.auth import AuthenticatedUser
    from src.config import get_settings
    from src.db import ChildRepository
    from src.db.client import get_config
    from src.db.stores import SupabaseChildStore
    from src.roster import RosterStatus, RosterStore

    config = get_config()
    if not config.is_configured or not config.service_key:
        raise click.ClickException(
            "Supabase is not configured (set SUPABASE_URL, SUPABASE_ANON_KEY and SUPABASE_SERVICE_KEY)"
        )

    remote = SupabaseChildStore(
        ChildRepository(use_admin=True),
        poll_interval=get_settings().roster_poll_seconds,
    )
    settled = threading.Event()

    def on_change(state):
        if state.status != RosterStatus.LOADING:
            settled.set()

    store = RosterStore(remote, AuthenticatedUser(id=parent_id))
    store.add_listener(on_change)
    with store:
        if not settled.wait(timeout):
            raise click.ClickException(f"Roster did not load within {timeout:g}s")
        state = store.state

    if state.error is not None:
        raise click.ClickException(state.error.user_message)

    if state.is_empty:
        console.print("[dim]No children yet[/dim]")
        return

    table = Table(title="Children")
    table.add_column("", width=1)
    table.add_column("Name")
    table.add_column("Born")
    table.add_column("Age")
    table.add_column("Gender")
    table.add_column("ID", style="dim")

    for child in state.children:
        table.add_row(
            "[green]●[/green]" if child.id == state.selected_id else "",
            child.name,
            child.date_of_birth.isoformat(),
            f"{child.age_years()} y",
            child.gender.value,
            child.id,
        )
    console.print(table)


@cli.command()
def info():
    """
    Show information about Sprout.
    """
    from src.config import get_settings

    settings = get_settings()
    console.print(Panel(
        "[bold]Sprout[/bold]\n\n"
        "Child health data engine:\n"
        "• Growth percentiles against a reference table\n"
        "• Health timeline filtering and grouping\n"
        "• Live child roster with a selected child\n\n"
        f"[dim]Growth reference: {settings.growth_reference}[/dim]",
        title="About",
        border_style="blue",
    ))

    console.print("\n[bold]Quick Start:[/bold]")
    console.print("  sprout percentile 88.4 --age-months 24 --gender male")
    console.print("  sprout timeline ./events.json --range month")
    console.print("  sprout children --parent-id <id>")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
