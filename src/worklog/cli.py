"""Command-line entry point.

With no command, opens the interactive viewer. The other commands are
thin callers into the log store for scripting::

    worklog add "write report" -d 1h30m
    worklog list
    worklog delete 3
    worklog summary --by week
    worklog export hours.csv
    worklog repair
    worklog start "write report"; worklog pause; worklog resume; worklog stop

Exit codes: 0 success, 2 usage, 3 invalid input, 4 no such entry,
5 file I/O failure, 6 corrupt log file.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.markup import escape

from worklog import __version__
from worklog.config import Config, load_config, save_config, setup_logging, timer_path
from worklog.errors import (
    EXIT_OK,
    CorruptLogError,
    ValidationError,
    WorklogError,
    exit_code_for,
)
from worklog.models import format_duration, parse_duration
from worklog.parser import parse_timestamp
from worklog.presenter import render, render_summary
from worklog.services.export import export_csv
from worklog.services.store import LogStore
from worklog.services.summary import Grouping
from worklog.services.timer import Timer

logger = logging.getLogger(__name__)

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worklog",
        description="Personal task and time log with a terminal viewer.",
    )
    parser.add_argument("--version", action="version", version=f"worklog {__version__}")
    parser.add_argument(
        "-o", "--output-file", metavar="PATH",
        help="log file to use (remembered in config.yaml)",
    )
    parser.add_argument(
        "-z", "--timezone", metavar="TZ",
        help="IANA timezone for display and day grouping (this run only)",
    )
    parser.add_argument(
        "--skip-corrupt", action="store_true",
        help="skip unparsable records instead of refusing to load",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.add_parser("tui", help="open the interactive viewer (default)")

    add = sub.add_parser("add", help="log a finished task")
    add.add_argument("description", nargs="+", help="what you worked on")
    add.add_argument("-d", "--duration", required=True, help="e.g. 1h30m, 90m, 1:30, 5400")
    add.add_argument("--at", metavar="TIMESTAMP", help="start time (ISO 8601); default now")
    add.add_argument("--paused", metavar="DURATION", default="0", help="time spent paused")

    sub.add_parser("list", help="print all entries")

    delete = sub.add_parser("delete", help="delete an entry by index (later entries shift down)")
    delete.add_argument("index", type=int)

    summary = sub.add_parser("summary", help="print total time per group")
    summary.add_argument(
        "--by", choices=[g.value for g in Grouping], default=None,
        help="grouping (default from config)",
    )

    export = sub.add_parser("export", help="export entries for spreadsheets")
    export.add_argument("dest", type=Path)

    sub.add_parser("repair", help="rewrite the log without unparsable records")

    start = sub.add_parser("start", help="start timing a task")
    start.add_argument("description", nargs="+", help="what you are working on")
    sub.add_parser("pause", help="pause the running timer")
    sub.add_parser("resume", help="resume the paused timer")
    sub.add_parser("stop", help="stop the timer and log the task")
    sub.add_parser("status", help="show the running timer")
    return parser


# -- Commands --


def cmd_tui(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    from worklog.app import WorklogApp

    app = WorklogApp(store, config)
    app.run()
    return app.return_code or EXIT_OK


def cmd_add(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    duration = parse_duration(args.duration)
    paused = parse_duration(args.paused)
    timestamp = None
    if args.at:
        try:
            timestamp = parse_timestamp(args.at)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
    index = store.append(" ".join(args.description), duration, timestamp, paused=paused)
    console.print(f"Added entry [bold]{index}[/] ({format_duration(duration)})")
    return EXIT_OK


def cmd_list(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    for line in render(store.list(), console.width, settings=config.display_settings()):
        console.print(line, markup=False, emoji=False, soft_wrap=True)
    return EXIT_OK


def cmd_delete(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    removed = store.delete(args.index)
    console.print(
        f"Deleted entry [bold]{removed.index}[/]: {escape(removed.description)} "
        f"({format_duration(removed.duration)})"
    )
    if removed.index < len(store):
        console.print(f"[dim]Entries after it were renumbered; the log now has {len(store)} entries.[/]")
    return EXIT_OK


def cmd_summary(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    settings = config.display_settings()
    if args.by:
        settings = replace(settings, grouping=Grouping(args.by))
    for line in render_summary(store.list(), console.width, settings):
        console.print(line, markup=False, emoji=False, soft_wrap=True)
    return EXIT_OK


def cmd_export(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    count = export_csv(store.list(), args.dest)
    console.print(f"Exported {count} entries to {escape(str(args.dest))}")
    return EXIT_OK


def cmd_repair(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    dropped = store.repair()
    for err in dropped:
        err_console.print(f"[yellow]dropped[/] line {err.line}: {escape(err.reason)}")
    console.print(f"Kept {len(store)} entries, dropped {len(dropped)}.")
    return EXIT_OK


def cmd_start(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    state = Timer(timer_path()).start(" ".join(args.description))
    console.print(f"Timer started: {escape(state.description)}")
    return EXIT_OK


def cmd_pause(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    state = Timer(timer_path()).pause()
    console.print(f"Timer paused: {escape(state.description)}")
    return EXIT_OK


def cmd_resume(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    state = Timer(timer_path()).resume()
    console.print(
        f"Timer resumed: {escape(state.description)} "
        f"(paused {format_duration(state.paused_seconds)} so far)"
    )
    return EXIT_OK


def cmd_stop(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    timer = Timer(timer_path())
    index, state = timer.stop(store)
    entry = store[index]
    console.print(
        f"Logged entry [bold]{index}[/]: {escape(state.description)} "
        f"({format_duration(entry.duration)}, paused {format_duration(entry.paused)})"
    )
    return EXIT_OK


def cmd_status(args: argparse.Namespace, store: LogStore, config: Config) -> int:
    state = Timer(timer_path()).load()
    if state is None:
        console.print("No timer running.")
        return EXIT_OK
    now = datetime.now(timezone.utc)
    label = "paused" if state.is_paused else "running"
    console.print(
        f"{escape(state.description)}: {label}, "
        f"{format_duration(state.elapsed(now))} active, {format_duration(state.paused(now))} paused"
    )
    return EXIT_OK


COMMANDS: dict[str, Callable[[argparse.Namespace, LogStore, Config], int]] = {
    "tui": cmd_tui,
    "add": cmd_add,
    "list": cmd_list,
    "delete": cmd_delete,
    "summary": cmd_summary,
    "export": cmd_export,
    "repair": cmd_repair,
    "start": cmd_start,
    "pause": cmd_pause,
    "resume": cmd_resume,
    "stop": cmd_stop,
    "status": cmd_status,
}


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    command = args.command or "tui"

    config = load_config()
    if args.output_file:
        # Remember the chosen log file for later runs
        config.log_file = str(Path(args.output_file).expanduser())
        try:
            save_config(config)
        except OSError as exc:
            err_console.print(f"[yellow]warning:[/] could not save config: {escape(str(exc))}")
    if args.timezone:
        config.timezone = args.timezone
    try:
        setup_logging(config)
    except OSError as exc:
        err_console.print(f"[yellow]warning:[/] logging disabled: {escape(str(exc))}")
    logger.debug("Running %r with log file %s", command, config.log_path)

    try:
        if command == "repair":
            store = LogStore(config.log_path)
        else:
            store = LogStore.open(config.log_path, skip_corrupt=args.skip_corrupt)
            if store.skipped:
                err_console.print(
                    f"[yellow]warning:[/] skipped {len(store.skipped)} corrupt record(s); "
                    "run 'worklog repair' to remove them"
                )
            if store.torn is not None:
                err_console.print(
                    f"[yellow]warning:[/] ignored an incomplete final record at line "
                    f"{store.torn.line} (interrupted write); the next change removes it"
                )
        return COMMANDS[command](args, store, config)
    except CorruptLogError as exc:
        err_console.print(f"[red]corrupt log:[/] {escape(str(exc))}")
        err_console.print("Use --skip-corrupt to load the rest, or 'worklog repair' to drop bad records.")
        return exit_code_for(exc)
    except WorklogError as exc:
        err_console.print(f"[red]error:[/] {escape(str(exc))}")
        return exit_code_for(exc)


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
