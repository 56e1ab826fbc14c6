"""
CLI entry point for expstore.

This module provides the Typer-based command-line interface for inspecting
and feeding an experiment store by hand.

Commands:
    init            Create a new store in a directory
    record-profile  Store an experiment profile revision from a YAML/JSON file
    profiles        Show the revisions of an experiment
    record-event    Append a trial job event
    events          List trial job events
    record-metric   Append a metric sample from its JSON envelope
    metrics         List metric samples

Every command finds the store directory from --dir (or EXPSTORE_DIR),
then from the directory named in --config, then the current directory.

Architecture Note:
    The CLI is intentionally thin - it parses arguments, runs one store
    session under asyncio.run and hands the records to expstore.report.
"""

import asyncio
import json
import logging
import sqlite3
import traceback
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from expstore import __version__
from expstore.errors import ExpStoreError
from expstore.report import generate_json_report, print_events, print_metrics, print_profiles
from expstore.schema import MetricType, TrialJobEvent, load_config, load_profile
from expstore.store import SqlStore, open_store

app = typer.Typer(
    name="expstore",
    help="Inspect and feed a local experiment store.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich console for formatted output; logs go to stderr
console = Console()
err_console = Console(stderr=True)

# Errors a command reports instead of crashing
HANDLED_ERRORS = (ExpStoreError, sqlite3.Error, ValidationError, OSError)


# =============================================================================
# Shared Options
# =============================================================================

DirOption = Annotated[
    Optional[Path],
    typer.Option(
        "--dir",
        "-d",
        help="Directory holding the store file.",
        envvar="EXPSTORE_DIR",
        resolve_path=True,
    ),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="YAML file naming the store directory.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable verbose output and store logging."),
]
DebugOption = Annotated[
    bool,
    typer.Option("--debug", help="Enable debug mode with full error tracebacks."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]expstore[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    expstore - Local persistence for experiment profiles, trial events and metrics.
    """
    pass


# =============================================================================
# Helpers
# =============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _resolve_directory(directory: Optional[Path], config: Optional[Path]) -> Path:
    """Pick the store directory: --dir, then --config, then the cwd."""
    if directory is not None:
        return directory
    if config is not None:
        return load_config(config).directory
    return Path.cwd()


def _execute(
    session: Callable[[SqlStore], Awaitable[Any]],
    directory: Optional[Path],
    config: Optional[Path],
    *,
    create_new: bool = False,
    json_output: bool = False,
    verbose: bool = False,
    debug: bool = False,
    error_type: str = "store_error",
) -> Any:
    """Open the store, run one session against it and close it again."""
    _configure_logging(verbose)

    async def _run() -> Any:
        async with open_store(target, create_new=create_new) as store:
            return await session(store)

    try:
        target = _resolve_directory(directory, config)
        if verbose and not json_output:
            console.print(f"[dim]Using store directory: {target}[/dim]")
        return asyncio.run(_run())
    except HANDLED_ERRORS as e:
        if json_output:
            _output_json_error(error_type, str(e), debug)
        else:
            console.print(f"[red]Error: {e}[/red]")
            if debug:
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
        raise typer.Exit(code=1)


def _output_json_error(error_type: str, message: str, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {
        "error": True,
        "error_type": error_type,
        "message": message,
    }
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2))


def _output_json_ok(**fields: Any) -> None:
    print(json.dumps({"ok": True, **fields}, indent=2))


# =============================================================================
# Commands
# =============================================================================


@app.command()
def init(
    directory: DirOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Create a new store (file and schema) in an existing directory.

    Example:
        $ expstore init --dir ./experiment
    """

    async def session(store: SqlStore) -> Path:
        return store.db_path

    db_path = _execute(
        session,
        directory,
        config,
        create_new=True,
        json_output=json_output,
        verbose=verbose,
        debug=debug,
        error_type="init_error",
    )
    if json_output:
        _output_json_ok(db_path=str(db_path))
    else:
        console.print(f"[green]✓[/green] Created store [bold]{db_path}[/bold]")


@app.command("record-profile")
def record_profile(
    profile_path: Annotated[
        Path,
        typer.Argument(
            help="YAML or JSON file holding one experiment profile.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    directory: DirOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Store one experiment profile revision.

    Example:
        $ expstore record-profile profile.yaml --dir ./experiment
    """
    try:
        profile = load_profile(profile_path)
    except HANDLED_ERRORS as e:
        if json_output:
            _output_json_error("profile_load_error", str(e), debug)
        else:
            console.print(f"[red]Error loading profile: {e}[/red]")
        raise typer.Exit(code=1)

    async def session(store: SqlStore) -> None:
        await store.store_experiment_profile(profile)

    _execute(session, directory, config, json_output=json_output, verbose=verbose, debug=debug)
    if json_output:
        _output_json_ok(id=profile.id, revision=profile.revision)
    else:
        console.print(
            f"[green]✓[/green] Stored [bold]{profile.id}[/bold] revision {profile.revision}"
        )


@app.command()
def profiles(
    experiment_id: Annotated[str, typer.Argument(help="Experiment identifier.")],
    revision: Annotated[
        Optional[int],
        typer.Option("--revision", "-r", help="Show only this revision."),
    ] = None,
    latest: Annotated[
        bool,
        typer.Option("--latest", help="Show only the newest revision."),
    ] = False,
    directory: DirOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Show the stored revisions of an experiment, newest first.

    Example:
        $ expstore profiles exp1 --latest --dir ./experiment
    """
    if latest and revision is not None:
        raise typer.BadParameter("cannot be combined with --latest", param_hint="--revision")

    async def session(store: SqlStore) -> list:
        if latest:
            found = await store.query_latest_experiment_profile(experiment_id)
            return [] if found is None else [found]
        return await store.query_experiment_profile(experiment_id, revision)

    records = _execute(session, directory, config, json_output=json_output, verbose=verbose, debug=debug)
    if json_output:
        print(generate_json_report("profiles", records))
    else:
        print_profiles(console, records, verbose)


@app.command("record-event")
def record_event(
    event: Annotated[TrialJobEvent, typer.Argument(help="Event kind.")],
    trial_job_id: Annotated[str, typer.Argument(help="Trial job identifier.")],
    data: Annotated[
        Optional[str],
        typer.Option("--data", help="Free-form event payload."),
    ] = None,
    log_path: Annotated[
        Optional[str],
        typer.Option("--log-path", help="Location of the trial's log."),
    ] = None,
    directory: DirOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Append a trial job event, timestamped now.

    Example:
        $ expstore record-event RUNNING t1 --dir ./experiment
    """

    async def session(store: SqlStore) -> None:
        await store.store_trial_job_event(event, trial_job_id, data, log_path)

    _execute(session, directory, config, json_output=json_output, verbose=verbose, debug=debug)
    if json_output:
        _output_json_ok(trialJobId=trial_job_id, event=event.value)
    else:
        console.print(f"[green]✓[/green] Recorded {event.value} for [bold]{trial_job_id}[/bold]")


@app.command()
def events(
    trial: Annotated[
        Optional[str],
        typer.Option("--trial", "-t", help="Only events of this trial job."),
    ] = None,
    event: Annotated[
        Optional[TrialJobEvent],
        typer.Option("--event", "-e", help="Only events of this kind."),
    ] = None,
    directory: DirOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    List trial job events.

    Example:
        $ expstore events --trial t1 --event SUCCEEDED --dir ./experiment
    """

    async def session(store: SqlStore) -> list:
        return await store.query_trial_job_event(trial, event)

    records = _execute(session, directory, config, json_output=json_output, verbose=verbose, debug=debug)
    if json_output:
        print(generate_json_report("events", records))
    else:
        print_events(console, records)


@app.command("record-metric")
def record_metric(
    envelope: Annotated[
        str,
        typer.Argument(help="JSON envelope: trialJobId, parameterId, type, sequence, data."),
    ],
    directory: DirOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Append a metric sample from its serialized envelope.

    Example:
        $ expstore record-metric '{"trialJobId": "t1", "parameterId": "0",
          "type": "FINAL", "sequence": 0, "data": 0.93}' --dir ./experiment
    """

    async def session(store: SqlStore) -> None:
        await store.store_metric_data(envelope)

    _execute(
        session,
        directory,
        config,
        json_output=json_output,
        verbose=verbose,
        debug=debug,
        error_type="metric_error",
    )
    if json_output:
        _output_json_ok()
    else:
        console.print("[green]✓[/green] Recorded metric")


@app.command()
def metrics(
    trial: Annotated[
        Optional[str],
        typer.Option("--trial", "-t", help="Only metrics of this trial job."),
    ] = None,
    metric_type: Annotated[
        Optional[MetricType],
        typer.Option("--type", help="Only metrics of this kind."),
    ] = None,
    directory: DirOption = None,
    config: ConfigOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    List metric samples.

    Example:
        $ expstore metrics --trial t1 --type FINAL --dir ./experiment
    """

    async def session(store: SqlStore) -> list:
        return await store.query_metric_data(trial, metric_type)

    records = _execute(session, directory, config, json_output=json_output, verbose=verbose, debug=debug)
    if json_output:
        print(generate_json_report("metrics", records))
    else:
        print_metrics(console, records)


if __name__ == "__main__":
    app()
