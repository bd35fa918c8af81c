# ABOUTME: Provides a CLI for recording events and reading insights from a local JSON store.
# ABOUTME: Renders insights and progress reports as rich tables and exports snapshots to parquet.

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import load_config
from .errors import BehaviorTrackingError
from .event_store import EventStore
from .insights import CollectingNotifier
from .service import BehaviorTracker
from .storage import JsonFileStorage

console = Console()
app = typer.Typer(help="Record behavioral events and inspect engagement insights.")

PRIORITY_STYLES = {"high": "bold red", "medium": "yellow", "low": "dim"}


def configure_logging(level: str = "INFO") -> None:
    """Route library logging through rich; called once per CLI invocation."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _default_store_dir() -> Path:
    return Path("data/behavior")


def _build_tracker(store_dir: Optional[Path], config_path: Optional[Path], notifier=None) -> BehaviorTracker:
    try:
        config = load_config(config_path)
    except BehaviorTrackingError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    root = store_dir or Path(config.storage_dir or _default_store_dir())
    store = EventStore(JsonFileStorage(root), config=config)
    return BehaviorTracker(store=store, config=config, notifier=notifier)


def _parse_now(raw: Optional[str]) -> Optional[datetime]:
    if raw is None:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--now") from exc


@app.callback()
def main_callback(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level for library output."),
) -> None:
    configure_logging(log_level)


@app.command()
def track(
    user_id: str = typer.Option(..., "--user-id", help="User the event belongs to."),
    event_type: str = typer.Option(..., "--event-type", help="One of the supported event types."),
    metadata: str = typer.Option("{}", "--metadata", help="Event metadata as a JSON object."),
    duration: Optional[int] = typer.Option(None, "--duration", help="Session length in seconds (session_end only)."),
    store_dir: Optional[Path] = typer.Option(None, "--store-dir", help="Directory holding the JSON store."),
    config: Optional[Path] = typer.Option(Path("configs/tracking.yaml"), "--config", help="Tracking config YAML."),
) -> None:
    """Append one event to a user's log."""
    try:
        parsed = json.loads(metadata)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(str(exc), param_hint="--metadata") from exc
    if not isinstance(parsed, dict):
        raise typer.BadParameter("Metadata must be a JSON object.", param_hint="--metadata")

    tracker = _build_tracker(store_dir, config)
    try:
        event = tracker.track_event(user_id, event_type, parsed, duration=duration)
    except BehaviorTrackingError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Recorded[/green] {event.event_type} {event.event_id} at {event.timestamp.isoformat()}")


@app.command()
def insights(
    user_id: str = typer.Option(..., "--user-id", help="User to analyze."),
    now: Optional[str] = typer.Option(None, "--now", help="ISO timestamp to evaluate at; defaults to the current time."),
    notify: bool = typer.Option(False, "--notify", help="Also list the insights that would be pushed as notifications."),
    store_dir: Optional[Path] = typer.Option(None, "--store-dir", help="Directory holding the JSON store."),
    config: Optional[Path] = typer.Option(Path("configs/tracking.yaml"), "--config", help="Tracking config YAML."),
) -> None:
    """Show the ranked insights for a user."""
    notifier = CollectingNotifier()
    tracker = _build_tracker(store_dir, config, notifier=notifier)
    ranked = tracker.refresh_insights(user_id, now=_parse_now(now))

    console.rule(f"[bold blue]Insights for {user_id}[/bold blue]")
    if not ranked:
        console.print("[yellow]No insights for this user yet.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Priority")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Suggested action")
    for insight in ranked:
        style = PRIORITY_STYLES.get(insight.priority, "")
        table.add_row(f"[{style}]{insight.priority}[/{style}]", insight.type, insight.title, insight.suggested_action or "-")
    console.print(table)

    if notify:
        console.print()
        console.print(f"[bold]Notifications:[/] {len(notifier.delivered)}")
        for _, insight in notifier.delivered:
            console.print(f"  - {insight.title}")


@app.command()
def report(
    user_id: str = typer.Option(..., "--user-id", help="User to report on."),
    period: str = typer.Option("weekly", "--period", help="weekly or monthly."),
    now: Optional[str] = typer.Option(None, "--now", help="ISO timestamp the period ends at."),
    store_dir: Optional[Path] = typer.Option(None, "--store-dir", help="Directory holding the JSON store."),
    config: Optional[Path] = typer.Option(Path("configs/tracking.yaml"), "--config", help="Tracking config YAML."),
) -> None:
    """Print a weekly or monthly progress report."""
    tracker = _build_tracker(store_dir, config)
    try:
        result = tracker.progress_report(user_id, period=period, now=_parse_now(now))
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--period") from exc

    console.rule(f"[bold blue]{period.capitalize()} report for {user_id}[/bold blue]")
    summary = Table(show_header=True, header_style="bold magenta")
    summary.add_column("Metric")
    summary.add_column("Value")
    summary.add_row("Sessions", str(result.total_sessions))
    summary.add_row("Learning time (min)", f"{result.total_learning_minutes:.1f}")
    summary.add_row("Avg session (min)", f"{result.average_session_minutes:.1f}")
    summary.add_row("Current streak", str(result.streak_days))
    summary.add_row("Quiz attempts", str(result.quiz_attempts))
    summary.add_row("Avg quiz score", "-" if result.average_quiz_score is None else f"{result.average_quiz_score:.1f}")
    summary.add_row("Average mood", f"{result.average_mood:.2f} ({result.mood_trend})")
    console.print(summary)

    if result.subject_breakdown:
        subjects = Table(show_header=True, header_style="bold magenta")
        subjects.add_column("Subject")
        subjects.add_column("Quizzes")
        for subject, count in result.subject_breakdown.items():
            subjects.add_row(subject, str(count))
        console.print(subjects)

    for line in result.highlights:
        console.print(f"[green]*[/green] {line}")
    for line in result.recommendations:
        console.print(f"[yellow]>[/yellow] {line}")


@app.command()
def prune(
    retention_days: Optional[int] = typer.Option(None, "--retention-days", help="Override the configured retention window."),
    store_dir: Optional[Path] = typer.Option(None, "--store-dir", help="Directory holding the JSON store."),
    config: Optional[Path] = typer.Option(Path("configs/tracking.yaml"), "--config", help="Tracking config YAML."),
) -> None:
    """Remove events older than the retention window for every stored user."""
    tracker = _build_tracker(store_dir, config)
    removed = tracker.cleanup_old_data(retention_days)
    console.print(f"[green]Pruned {removed} events.[/green]")


@app.command()
def export(
    user_id: str = typer.Option(..., "--user-id", help="User whose events to export."),
    out: Path = typer.Option(..., "--out", help="Output parquet path."),
    store_dir: Optional[Path] = typer.Option(None, "--store-dir", help="Directory holding the JSON store."),
    config: Optional[Path] = typer.Option(Path("configs/tracking.yaml"), "--config", help="Tracking config YAML."),
) -> None:
    """Write a user's event snapshot to parquet."""
    tracker = _build_tracker(store_dir, config)
    events = tracker.snapshot(user_id)
    frame = pd.DataFrame(
        {
            "event_id": [e.event_id for e in events],
            "user_id": [e.user_id for e in events],
            "event_type": [e.event_type for e in events],
            "timestamp": [e.timestamp.isoformat() for e in events],
            "duration": pd.array([e.duration for e in events], dtype="Int64"),
            "metadata": [json.dumps(dict(e.metadata), default=str) for e in events],
        }
    )
    out.parent.mkdir(parents=True, exist_ok=True)
    frame.to_parquet(out, index=False)
    console.print(f"[green]Wrote {len(frame)} events to {out}[/green]")


def main():
    app()


if __name__ == "__main__":
    main()
