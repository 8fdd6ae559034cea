"""Taskpilot CLI - task intelligence for your productivity items."""

import asyncio
import json
import logging
import sys
from datetime import datetime

import click

from .adapters.file_items import load_items_file
from .config import Config, ConfigError, load_config
from .conflict_detector import ConflictRequest
from .core.conflicts import TimeWindow
from .core.items import Item, as_utc
from .worker import build_worker, run_worker
from .workflows import build_engine, get_repository


def _setup_logging(debug: bool, level: int = logging.WARNING) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else level,
    )


def _load_items(config: Config, items_path: str | None, user_id: str) -> list[Item]:
    if items_path:
        return load_items_file(items_path)
    return get_repository(config).fetch_items(user_id)


def _parse_when(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return as_utc(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO date or datetime: {value}")


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _engine(config: Config, use_ai: bool = True):
    try:
        return build_engine(config, use_ai=use_ai)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


items_option = click.option("--items", "items_path", type=click.Path(exists=True, dir_okay=False),
                             help="JSON file of items (defaults to the configured data dir)")
user_option = click.option("--user", "user_id", default=None, help="User id (defaults to USER_ID)")
json_option = click.option("--json", "as_json", is_flag=True, help="Output as JSON")
debug_option = click.option("--debug", is_flag=True, help="Enable debug logging")


@click.group()
@click.version_option(package_name="taskpilot")
def main():
    """Taskpilot - priorities, patterns and conflicts for your items."""
    pass


@main.command()
@items_option
@user_option
@click.option("--available-time", type=float, default=None, help="Minutes available right now")
@click.option("--rules-only", is_flag=True, help="Skip AI scoring")
@json_option
@debug_option
def prioritize(items_path, user_id, available_time, rules_only, as_json, debug):
    """Rank items by urgency and importance."""
    _setup_logging(debug)
    config = load_config()
    user_id = user_id or config.user_id
    items = _load_items(config, items_path, user_id)
    engine = _engine(config, use_ai=not rules_only)

    result = asyncio.run(engine.scorer.prioritize(items, available_time, user_id=user_id))

    if as_json:
        _echo_json(result.to_dict())
        return

    titles = {i.id: i.title for i in items}
    if not result.prioritized_tasks:
        click.echo("No items to prioritize.")
    for task in result.prioritized_tasks:
        click.echo(f"{task.rank:>3}. [{task.priority_score:.2f}] {titles.get(task.item_id, task.item_id)}")
        for reason in task.reasoning:
            click.echo(f"       - {reason}")
    click.echo(f"\n{result.justification} (method: {result.method}, confidence {result.confidence:.2f})")


@main.command()
@items_option
@user_option
@json_option
@debug_option
def patterns(items_path, user_id, as_json, debug):
    """Detect recurring, batchable, postponed and performance patterns."""
    _setup_logging(debug)
    config = load_config()
    user_id = user_id or config.user_id
    items = _load_items(config, items_path, user_id)
    engine = _engine(config, use_ai=False)

    detected = asyncio.run(engine.patterns.detect(user_id, items))

    if as_json:
        _echo_json([p.to_dict() for p in detected])
        return

    if not detected:
        click.echo("No significant patterns found.")
        return
    for pattern in detected:
        click.echo(f"[{pattern.pattern_type.value}] {pattern.suggestion.title} "
                   f"(confidence {pattern.confidence:.2f}, impact {pattern.suggestion.impact})")
        click.echo(f"    {pattern.suggestion.description}")


@main.command()
@items_option
@user_option
@click.option("--new-item", "new_item_path", type=click.Path(exists=True, dir_okay=False),
              help="JSON file with a single item about to be added")
@click.option("--from", "window_start", default=None, help="Window start (ISO date/datetime)")
@click.option("--to", "window_end", default=None, help="Window end (ISO date/datetime)")
@click.option("--unresolved", is_flag=True, help="List stored conflicts not yet resolved instead of checking")
@json_option
@debug_option
def conflicts(items_path, user_id, new_item_path, window_start, window_end, unresolved, as_json, debug):
    """Check for overlaps, overloaded days and squeezed deadlines."""
    _setup_logging(debug)
    config = load_config()
    user_id = user_id or config.user_id
    engine = _engine(config, use_ai=False)

    if unresolved:
        stored = engine.conflicts.unresolved_conflicts(user_id)
        if as_json:
            _echo_json(stored)
            return
        if not stored:
            click.echo("No unresolved conflicts.")
            return
        for record in stored:
            click.echo(f"{record['id']}  [{record['severity'].upper()}] {record['description']}")
        return

    items = _load_items(config, items_path, user_id)

    new_item = None
    if new_item_path:
        with open(new_item_path) as f:
            new_item = Item.from_dict(json.load(f))

    start, end = _parse_when(window_start), _parse_when(window_end)
    window = None
    if start or end:
        window = TimeWindow(start=start or datetime.min.replace(tzinfo=end.tzinfo),
                            end=end or datetime.max.replace(tzinfo=start.tzinfo))

    found = asyncio.run(engine.conflicts.detect(ConflictRequest(user_id, new_item, window), items))

    if as_json:
        _echo_json([c.to_dict() for c in found])
        return

    if not found:
        click.echo("No conflicts detected.")
        return
    for conflict in found:
        click.echo(f"[{conflict.severity.value.upper()}] {conflict.description} ({conflict.id})")
        for suggestion in conflict.suggestions:
            click.echo(f"    - {suggestion.action} ({suggestion.impact}): {json.dumps(suggestion.details)}")


@main.command()
@items_option
@user_option
@click.option("--available-time", type=float, default=None, help="Minutes available right now")
@click.option("--rules-only", is_flag=True, help="Skip AI scoring")
@json_option
@debug_option
def analyze(items_path, user_id, available_time, rules_only, as_json, debug):
    """Run prioritization, pattern and conflict analysis together."""
    _setup_logging(debug)
    config = load_config()
    user_id = user_id or config.user_id
    items = _load_items(config, items_path, user_id)
    engine = _engine(config, use_ai=not rules_only)

    report = asyncio.run(engine.analyze(user_id, items, available_minutes=available_time))

    if as_json:
        _echo_json(report.to_dict())
        return

    titles = {i.id: i.title for i in items}
    top = report.prioritization.prioritized_tasks[:3]
    click.echo(f"Top priorities ({report.prioritization.method}):")
    for task in top:
        click.echo(f"  {task.rank}. {titles.get(task.item_id, task.item_id)}")
    if not top:
        click.echo("  (none)")
    click.echo(f"Patterns: {len(report.patterns)}")
    for pattern in report.patterns:
        click.echo(f"  - {pattern.suggestion.title}")
    click.echo(f"Conflicts: {len(report.conflicts)}")
    for conflict in report.conflicts:
        click.echo(f"  - [{conflict.severity.value}] {conflict.description}")


@main.command()
@user_option
@click.option("--limit", default=10, show_default=True, help="Maximum suggestions to show")
@json_option
def suggestions(user_id, limit, as_json):
    """List active pattern suggestions."""
    config = load_config()
    engine = _engine(config, use_ai=False)
    active = engine.patterns.recent_suggestions(user_id or config.user_id, limit)

    if as_json:
        _echo_json([s.to_dict() for s in active])
        return
    if not active:
        click.echo("No active suggestions.")
        return
    for s in active:
        click.echo(f"{s.id}  [{s.suggestion_type}/{s.impact}] {s.title}")


@main.command()
@click.argument("suggestion_id")
def accept(suggestion_id):
    """Accept a pattern suggestion."""
    engine = _engine(load_config(), use_ai=False)
    if not engine.patterns.accept_suggestion(suggestion_id):
        click.echo(f"Suggestion not found: {suggestion_id}", err=True)
        sys.exit(1)
    click.echo(f"Accepted {suggestion_id}")


@main.command()
@click.argument("suggestion_id")
def dismiss(suggestion_id):
    """Dismiss a pattern suggestion."""
    engine = _engine(load_config(), use_ai=False)
    if not engine.patterns.dismiss_suggestion(suggestion_id):
        click.echo(f"Suggestion not found: {suggestion_id}", err=True)
        sys.exit(1)
    click.echo(f"Dismissed {suggestion_id}")


@main.command()
@click.argument("conflict_id")
def resolve(conflict_id):
    """Mark a detected conflict as resolved."""
    engine = _engine(load_config(), use_ai=False)
    if not engine.conflicts.resolve_conflict(conflict_id):
        click.echo(f"No unresolved conflict with id {conflict_id}", err=True)
        sys.exit(1)
    click.echo(f"Resolved {conflict_id}")


@main.command()
@click.option("--once", is_flag=True, help="Run a single analysis pass and exit")
@debug_option
def worker(once, debug):
    """Run periodic pattern analysis for every user."""
    _setup_logging(debug, level=logging.INFO)
    config = load_config()

    if once:
        result = asyncio.run(build_worker(config).execute())
        click.echo(
            f"Processed {result.users_processed} users: {result.patterns_detected} patterns, "
            f"{result.errors} errors"
        )
        return

    click.echo(f"Running pattern analysis every {config.worker_interval_hours}h")
    click.echo("Press Ctrl+C to stop")
    try:
        run_worker(config)
    except KeyboardInterrupt:
        click.echo("\nWorker stopped.")
