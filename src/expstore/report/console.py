"""
Console rendering of query results.

Prints experiment profiles, trial job events and metric samples as Rich
tables. Rendering is pure: callers query the store and pass the records in.
"""

import json
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from expstore.schema import (
    ExperimentProfile,
    MetricDataRecord,
    MetricType,
    TrialJobEvent,
    TrialJobEventRecord,
)


# Event styling
EVENT_STYLES: dict[TrialJobEvent, str] = {
    TrialJobEvent.WAITING: "dim",
    TrialJobEvent.RUNNING: "yellow",
    TrialJobEvent.SUCCEEDED: "green",
    TrialJobEvent.FAILED: "red",
    TrialJobEvent.USER_CANCELED: "magenta",
    TrialJobEvent.SYS_CANCELED: "magenta",
    TrialJobEvent.EARLY_STOPPED: "cyan",
}


def print_profiles(
    console: Console,
    profiles: list[ExperimentProfile],
    verbose: bool = False,
) -> None:
    """
    Print experiment profile revisions, one row per revision.

    With verbose, the full params document of the first (newest) profile
    is printed below the table.
    """
    if not profiles:
        console.print("[dim]No profiles found.[/dim]")
        return

    header = Text()
    header.append(" Experiment ", style="bold")
    header.append(profiles[0].id, style="bold cyan")
    header.append(" │ ", style="dim")
    header.append(f"{len(profiles)} revision(s)")
    console.print(Panel(header, expand=False))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Revision", justify="right", style="cyan")
    table.add_column("Exec Duration", justify="right")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Params", overflow="fold")

    for profile in profiles:
        table.add_row(
            str(profile.revision),
            f"{profile.exec_duration}s",
            _format_time(profile.start_time),
            _format_time(profile.end_time),
            _truncate(json.dumps(profile.params), 60),
        )

    console.print(table)

    if verbose:
        console.print()
        console.print(f"[bold]Params (revision {profiles[0].revision}):[/bold]")
        console.print(json.dumps(profiles[0].params, indent=2))


def print_events(console: Console, events: list[TrialJobEventRecord]) -> None:
    """Print trial job events in the order they were returned."""
    if not events:
        console.print("[dim]No events found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Time", style="dim")
    table.add_column("Trial", style="cyan")
    table.add_column("Event")
    table.add_column("Data", overflow="fold")
    table.add_column("Log Path", overflow="fold")

    for record in events:
        style = EVENT_STYLES.get(record.event, "white")
        table.add_row(
            _format_time(record.timestamp),
            record.trial_job_id,
            f"[{style}]{record.event.value}[/{style}]",
            _truncate(record.data or "", 40),
            record.log_path or "",
        )

    console.print(table)
    console.print(f"[dim]Total: {len(events)}[/dim]")


def print_metrics(console: Console, metrics: list[MetricDataRecord]) -> None:
    """Print metric samples, final metrics highlighted."""
    if not metrics:
        console.print("[dim]No metrics found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Time", style="dim")
    table.add_column("Trial", style="cyan")
    table.add_column("Parameter")
    table.add_column("Type")
    table.add_column("Seq", justify="right")
    table.add_column("Data", overflow="fold")

    for record in metrics:
        type_str = record.type.value
        if record.type == MetricType.FINAL:
            type_str = f"[bold green]{type_str}[/bold green]"
        table.add_row(
            _format_time(record.timestamp),
            record.trial_job_id,
            record.parameter_id,
            type_str,
            str(record.sequence),
            _truncate(record.data, 60),
        )

    console.print(table)
    console.print(f"[dim]Total: {len(metrics)}[/dim]")


def _format_time(value: datetime | None) -> str:
    if value is None:
        return "—"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def _truncate(s: Any, max_len: int) -> str:
    """Truncate string with ellipsis."""
    s = str(s)
    if len(s) <= max_len:
        return s
    return s[: max_len - 3] + "..."
