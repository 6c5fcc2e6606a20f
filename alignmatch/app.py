"""AlignMatch command-line entry point."""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from alignmatch.config import DEFAULT_EXPORT_PATH, ENGINE_LOG_PATH, Settings, ensure_data_dir, load_settings
from alignmatch.errors import AlignMatchError
from alignmatch.generation.generator import MatchGenerator, RunSummary
from alignmatch.matching.aggregator import CompatibilityEngine, CompatibilityScore
from alignmatch.output.export import export_matches
from alignmatch.profile.models import MatchPreferences, UserSignals
from alignmatch.storage.database import create_db_engine, init_db
from alignmatch.storage.repository import MatchRepository, RunStatus, UserStatus
from alignmatch.storage.sql import SqlRepository

logger = logging.getLogger(__name__)
console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Configure application logging."""
    ensure_data_dir()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    log_path = str(ENGINE_LOG_PATH.resolve())
    has_file_handler = any(
        isinstance(handler, logging.FileHandler)
        and handler.baseFilename == log_path
        for handler in root_logger.handlers
    )
    if not has_file_handler:
        file_handler = logging.FileHandler(ENGINE_LOG_PATH, encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if not any(isinstance(handler, RichHandler) for handler in root_logger.handlers):
        rich_handler = RichHandler(console=Console(stderr=True), show_path=False)
        rich_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        root_logger.addHandler(rich_handler)


def open_repository(settings: Settings) -> SqlRepository:
    engine = create_db_engine(settings.resolved_database_url())
    init_db(engine)
    return SqlRepository(engine)


def load_users(repository: MatchRepository, path: Path) -> int:
    """Import users from a YAML file.

    The file holds a `users` list. Each entry has the `UserSignals` fields
    plus optional `preferences`, `status` and `blocks` (ids this user blocked).

    Returns:
        Number of users imported
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries: List[Dict[str, Any]] = data.get("users", [])
    blocks = []

    for entry in entries:
        entry = dict(entry)
        preferences = MatchPreferences.model_validate(entry.pop("preferences", None) or {})
        status = UserStatus(entry.pop("status", UserStatus.ACTIVE.value))
        for blocked_id in entry.pop("blocks", None) or []:
            blocks.append((entry["profile"]["user_id"], blocked_id))

        signals = UserSignals.model_validate(entry)
        repository.save_user(signals, preferences, status)

    for blocker, blocked in blocks:
        repository.add_block(blocker, blocked)

    return len(entries)


def render_run(summary: RunSummary) -> None:
    style = {"completed": "green", "partial": "yellow", "failed": "red"}.get(summary.status.value, "white")
    console.print(
        f"Run [bold]{summary.run_id}[/bold] [{style}]{summary.status.value}[/{style}]: "
        f"{summary.users_evaluated} users evaluated, {summary.matches_generated} matches created"
    )

    if summary.matches:
        table = Table(title="New matches")
        table.add_column("#", justify="right")
        table.add_column("User A")
        table.add_column("User B")
        table.add_column("Overall", justify="right")
        table.add_column("Confidence", justify="right")
        for i, match in enumerate(sorted(summary.matches, key=lambda m: -m.overall_score), 1):
            table.add_row(
                str(i),
                match.user_a_id,
                match.user_b_id,
                str(match.overall_score),
                f"{match.confidence:.0%}",
            )
        console.print(table)

    if summary.errors:
        errors = Table(title="Errors")
        errors.add_column("User")
        errors.add_column("Error")
        for user_id, message in summary.errors:
            errors.add_row(user_id, message)
        console.print(errors)


def render_score(score: CompatibilityScore) -> None:
    table = Table(title=f"{score.user_a_id} & {score.user_b_id}")
    table.add_column("Dimension")
    table.add_column("Score", justify="right")
    for dimension, value in score.dimension_scores.items():
        table.add_row(dimension.value.replace("_", " ").title(), str(value))
    table.add_row("[bold]Overall[/bold]", f"[bold]{score.overall}[/bold]")
    console.print(table)

    console.print(f"[italic]{score.details.summary}[/italic] (confidence {score.confidence:.0%})")
    for note in score.details.strengths:
        console.print(f"  [green]+[/green] {note}")
    for note in score.details.considerations:
        console.print(f"  [yellow]~[/yellow] {note}")
    for note in score.details.deal_breakers:
        console.print(f"  [red]x[/red] {note}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="alignmatch", description="Compatibility scoring and match generation")
    parser.add_argument("--config", type=Path, help="Settings YAML (default: data/settings.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    load = sub.add_parser("load", help="Import users from a YAML file")
    load.add_argument("path", type=Path)

    run = sub.add_parser("run", help="Run one batch of match generation")
    run.add_argument("--json", action="store_true", help="Print the run summary as JSON")

    score = sub.add_parser("score", help="Score a single pair without saving")
    score.add_argument("user_a")
    score.add_argument("user_b")

    export = sub.add_parser("export", help="Export a run's matches (.json, .csv or .md)")
    export.add_argument("run_id")
    export.add_argument("path", type=Path, nargs="?", default=DEFAULT_EXPORT_PATH)

    return parser


def run_command(args: argparse.Namespace, settings: Settings) -> int:
    repository = open_repository(settings)

    if args.command == "init-db":
        console.print("Database initialized")
        return 0

    if args.command == "load":
        count = load_users(repository, args.path)
        console.print(f"Imported {count} user(s) from {args.path}")
        return 0

    engine = CompatibilityEngine.from_settings(settings)

    if args.command == "run":
        # Ctrl-C lets in-flight users finish and records the run as partial
        cancel_event = threading.Event()
        previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())
        try:
            summary = MatchGenerator(repository, engine, settings).run(cancel_event)
        finally:
            signal.signal(signal.SIGINT, previous)
        if args.json:
            console.print_json(data=summary.to_dict())
        else:
            render_run(summary)
        return 1 if summary.status == RunStatus.FAILED else 0

    if args.command == "score":
        user_a = repository.get_signals(args.user_a)
        user_b = repository.get_signals(args.user_b)
        missing = [uid for uid, signals in ((args.user_a, user_a), (args.user_b, user_b)) if signals is None]
        if missing:
            console.print(f"[red]No profile for: {', '.join(missing)}[/red]")
            return 1
        render_score(engine.score(user_a, user_b))
        return 0

    if args.command == "export":
        run = repository.get_run(args.run_id)
        if run is None:
            console.print(f"[red]Unknown run: {args.run_id}[/red]")
            return 1
        matches = repository.list_matches(args.run_id)
        export_matches(matches, str(args.path), run)
        console.print(f"Exported {len(matches)} match(es) to {args.path}")
        return 0

    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the application."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(args.config)
        return run_command(args, settings)
    except (AlignMatchError, ValidationError, ValueError, OSError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
