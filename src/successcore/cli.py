# src/successcore/cli.py
"""
Command-line interface for successcore.

A thin collaborator around :class:`~successcore.tracking.Tracker`: it
resolves the configuration, runs one operation, prints the result and
translates library errors into messages and exit codes.

Exit codes:
    0  success
    1  recoverable error (bad input, unknown id, I/O or config problem)
    2  archive integrity error (corrupt archive or unsupported schema)

Examples:
    successcore --archive ~/success add-goal "Read 12 books" --target 12
    successcore --archive ~/success log goal_1a2b3c4d5e6f7a8b9c0d1e2f3a4b5c6d 1 --date 2024-01-04
    successcore --archive ~/success progress goal_1a2b3c4d5e6f7a8b9c0d1e2f3a4b5c6d --date 2024-01-04
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import load_config
from .exceptions import ConfigError, CorruptArchive, SuccessError, UnsupportedSchema
from .logging_config import configure_logging
from .models import Goal, GoalKind, Session
from .tracking import DateRange, GoalFilter, Tracker
from .tracking.progress import DayView, ProgressView

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/successcore/config.toml")


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

class OutputFormatter:
    """Formats CLI output as colored text or JSON."""

    COLORS = {
        "green": "\033[92m",
        "red": "\033[91m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "bold": "\033[1m",
        "reset": "\033[0m",
    }

    def __init__(self, use_color: bool = True, json_output: bool = False):
        self.use_color = use_color and not json_output
        self.json_output = json_output

    def _color(self, text: str, color: str) -> str:
        if not self.use_color:
            return text
        return f"{self.COLORS[color]}{text}{self.COLORS['reset']}"

    def success(self, text: str) -> str:
        return self._color(f"✓ {text}", "green")

    def error(self, text: str) -> str:
        return self._color(f"✗ {text}", "red")

    def header(self, text: str) -> str:
        return self._color(text, "bold")

    def emit(self, payload: Any, text: str) -> None:
        print(json.dumps(payload, indent=2, default=str) if self.json_output else text)

    def goal_line(self, goal: Goal) -> str:
        marker = "★" if goal.kind is GoalKind.REWARD else "•"
        target = f" target={goal.target:g}" if goal.target is not None else ""
        state = "" if goal.is_active else f" [{goal.state.value}]"
        return f"{marker} {self._color(goal.id, 'blue')}  {goal.title}{target}{state}"

    def session_line(self, session: Session, quantity_name: Optional[str] = None) -> str:
        line = f"{session.date.isoformat()}  {session.value:g}"
        if session.quantity is not None:
            line += f" ({session.quantity:g} {quantity_name or 'units'})"
        if session.note:
            line += f"  - {session.note}"
        return f"{line}  [{session.id}]"

    def progress_block(self, goal: Goal, view: ProgressView) -> str:
        lines = [self.header(f"{goal.title} as of {view.as_of.isoformat()}")]
        if view.has_target:
            width = 20
            filled = int(round(view.percent_complete * width))
            bar = "#" * filled + "-" * (width - filled)
            lines.append(f"  [{bar}] {view.cumulative_value:g}/{view.target:g} ({view.percent_complete:.0%})")
        else:
            lines.append(f"  {view.cumulative_value:g} (no target)")
        if goal.quantity_name:
            lines.append(f"  {view.cumulative_quantity:g} {goal.quantity_name}")
        lines.append(f"  streak: {view.current_streak_days} day(s), sessions today: {len(view.sessions_on)}")
        return "\n".join(lines)

    def day_block(self, view: DayView) -> str:
        lines = [self.header(f"Day {view.day.isoformat()}")]
        if view.is_empty:
            lines.append("  (no sessions)")
        for entry in view.entries:
            lines.append(f"  {self.goal_line(entry.goal)}  total={entry.total_value:g}")
            for session in entry.sessions:
                lines.append(f"      {self.session_line(session, entry.goal.quantity_name)}")
        lines.append(f"  goals: {view.goal_total:g}  rewards: {view.reward_total:g}")
        return "\n".join(lines)


def _progress_payload(view: ProgressView) -> Dict[str, Any]:
    return {
        "goal_id": view.goal_id,
        "as_of": view.as_of.isoformat(),
        "cumulative_value": view.cumulative_value,
        "cumulative_quantity": view.cumulative_quantity,
        "target": view.target,
        "percent_complete": view.percent_complete if view.has_target else None,
        "sessions_on": [s.model_dump(mode="json") for s in view.sessions_on],
        "current_streak_days": view.current_streak_days,
    }


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_goals(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    selection = GoalFilter.ACTIVE
    if args.archived:
        selection = GoalFilter.ARCHIVED
    elif args.all:
        selection = GoalFilter.ALL
    elif args.deleted:
        selection = GoalFilter.TOMBSTONED
    goals = tracker.goals.list(selection)
    out.emit(
        [g.model_dump(mode="json") for g in goals],
        "\n".join(out.goal_line(g) for g in goals) or "(no goals)",
    )
    return 0


def cmd_add_goal(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    goal_id = tracker.goals.create(
        args.title,
        target=args.target,
        reward=args.reward,
        kind=GoalKind.REWARD if args.reward_goal else GoalKind.GOAL,
        quantity_name=args.quantity_name,
        commands=args.commands,
    )
    out.emit({"id": goal_id}, out.success(f"Created {goal_id}"))
    return 0


def cmd_rename(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    goal = tracker.goals.rename(args.goal_id, args.title)
    out.emit(goal.model_dump(mode="json"), out.success(f"Renamed {goal.id} to '{goal.title}'"))
    return 0


def cmd_set_target(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    if args.clear == (args.value is not None):
        raise argparse.ArgumentTypeError("give either a target value or --clear")
    goal = tracker.goals.set_target(args.goal_id, None if args.clear else args.value)
    out.emit(goal.model_dump(mode="json"), out.success(f"Target of {goal.id} is now {goal.target}"))
    return 0


def cmd_state(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    if args.command == "archive":
        goal = tracker.goals.archive(args.goal_id)
    else:
        goal = tracker.goals.restore(args.goal_id)
    out.emit(goal.model_dump(mode="json"), out.success(f"{goal.id} is {goal.state.value}"))
    return 0


def cmd_delete(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    tombstone = tracker.goals.delete(args.goal_id)
    if tombstone is None:
        out.emit({"id": args.goal_id, "removed": True}, out.success(f"Removed {args.goal_id}"))
    else:
        out.emit(
            {"id": args.goal_id, "removed": False, "state": tombstone.state.value},
            out.success(f"{args.goal_id} has sessions and was kept as a tombstone"),
        )
    return 0


def cmd_search(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    kind = GoalKind.REWARD if args.rewards else GoalKind.GOAL if args.goals else None
    goals = tracker.goals.search(args.query, kind=kind, include_archived=args.include_archived)
    out.emit(
        [g.model_dump(mode="json") for g in goals],
        "\n".join(out.goal_line(g) for g in goals) or "(no matches)",
    )
    return 0


def cmd_log(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    session_id = tracker.ledger.add(
        args.goal_id,
        args.date or date.today(),
        args.value,
        args.note,
        quantity=args.quantity,
    )
    out.emit({"id": session_id}, out.success(f"Logged {session_id}"))
    return 0


def cmd_sessions(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    goal = tracker.goals.get(args.goal_id, include_tombstoned=True)
    sessions = list(tracker.ledger.sessions_for(goal.id, DateRange(args.start, args.end)))
    out.emit(
        [s.model_dump(mode="json") for s in sessions],
        "\n".join(out.session_line(s, goal.quantity_name) for s in sessions) or "(no sessions)",
    )
    return 0


def cmd_edit_session_note(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    session = tracker.ledger.edit_note(args.session_id, args.text)
    out.emit(session.model_dump(mode="json"), out.success(f"Updated note of {session.id}"))
    return 0


def cmd_progress(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    goal = tracker.goals.get(args.goal_id, include_tombstoned=True)
    view = tracker.aggregator.progress(goal.id, args.date or date.today())
    out.emit(_progress_payload(view), out.progress_block(goal, view))
    return 0


def cmd_day(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    view = tracker.aggregator.day_view(args.date or date.today())
    payload = {
        "day": view.day.isoformat(),
        "goal_total": view.goal_total,
        "reward_total": view.reward_total,
        "entries": [
            {
                "goal": e.goal.model_dump(mode="json"),
                "total_value": e.total_value,
                "sessions": [s.model_dump(mode="json") for s in e.sessions],
            }
            for e in view.entries
        ],
    }
    out.emit(payload, out.day_block(view))
    return 0


def cmd_notes(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    text = tracker.notes_text(args.goal_id)
    out.emit({"id": args.goal_id, "notes": text}, text)
    return 0


def cmd_set_notes(tracker: Tracker, args: argparse.Namespace, out: OutputFormatter) -> int:
    if args.file is not None:
        try:
            text = Path(args.file).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not read notes file {args.file}: {e}") from e
    elif args.text is not None:
        text = args.text
    else:
        text = sys.stdin.read()
    tracker.set_notes(args.goal_id, text)
    out.emit({"id": args.goal_id}, out.success(f"Notes of {args.goal_id} saved"))
    return 0


COMMANDS = {
    "goals": cmd_goals,
    "add-goal": cmd_add_goal,
    "rename": cmd_rename,
    "set-target": cmd_set_target,
    "archive": cmd_state,
    "restore": cmd_state,
    "delete": cmd_delete,
    "search": cmd_search,
    "log": cmd_log,
    "sessions": cmd_sessions,
    "edit-session-note": cmd_edit_session_note,
    "progress": cmd_progress,
    "day": cmd_day,
    "notes": cmd_notes,
    "set-notes": cmd_set_notes,
}


# =============================================================================
# MAIN CLI ENTRY POINT
# =============================================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the successcore CLI."""
    parser = argparse.ArgumentParser(prog="successcore", description="Track goals, sessions and progress")
    parser.add_argument("--archive", "-a", help="Archive directory (overrides the config file)", default=None)
    parser.add_argument("--config", "-c", help="Path to configuration file", default=None)
    parser.add_argument("--json", help="Output in JSON format", action="store_true")
    parser.add_argument("--no-color", help="Disable colored output", action="store_true")
    parser.add_argument("--verbose", "-v", help="Show log output on the console", action="store_true")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    goals = sub.add_parser("goals", help="List goals")
    which = goals.add_mutually_exclusive_group()
    which.add_argument("--archived", action="store_true", help="Only archived goals")
    which.add_argument("--all", action="store_true", help="Active and archived goals")
    which.add_argument("--deleted", action="store_true", help="Only tombstoned goals")

    add_goal = sub.add_parser("add-goal", help="Create a goal")
    add_goal.add_argument("title")
    add_goal.add_argument("--target", type=float, default=None)
    add_goal.add_argument("--reward", default=None, help="Reward description")
    add_goal.add_argument("--reward-goal", action="store_true", help="Create a reward instead of a goal")
    add_goal.add_argument("--quantity-name", default=None, help="Unit of session quantities, e.g. pages")
    add_goal.add_argument("--command", dest="commands", action="append", default=[], help="Associated command (repeatable)")

    rename = sub.add_parser("rename", help="Rename a goal")
    rename.add_argument("goal_id")
    rename.add_argument("title")

    set_target = sub.add_parser("set-target", help="Set or clear a goal's target")
    set_target.add_argument("goal_id")
    set_target.add_argument("value", type=float, nargs="?", default=None)
    set_target.add_argument("--clear", action="store_true")

    for name, help_text in (("archive", "Archive a goal"), ("restore", "Restore an archived goal"),
                            ("delete", "Delete a goal (tombstoned if it has sessions)"),
                            ("notes", "Print a goal's notes")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("goal_id")

    search = sub.add_parser("search", help="Search goals by title")
    search.add_argument("query")
    kind = search.add_mutually_exclusive_group()
    kind.add_argument("--rewards", action="store_true")
    kind.add_argument("--goals", action="store_true")
    search.add_argument("--include-archived", action="store_true")

    log = sub.add_parser("log", help="Log a session")
    log.add_argument("goal_id")
    log.add_argument("value", type=float)
    log.add_argument("--date", type=_parse_date, default=None, help="YYYY-MM-DD, default today")
    log.add_argument("--note", default=None)
    log.add_argument("--quantity", type=float, default=None)

    sessions = sub.add_parser("sessions", help="List a goal's sessions")
    sessions.add_argument("goal_id")
    sessions.add_argument("--from", dest="start", type=_parse_date, default=None)
    sessions.add_argument("--to", dest="end", type=_parse_date, default=None)

    edit_note = sub.add_parser("edit-session-note", help="Replace a session's note")
    edit_note.add_argument("session_id")
    edit_note.add_argument("text")

    for name, help_text in (("progress", "Show a goal's progress"), ("day", "Show one day's sessions")):
        p = sub.add_parser(name, help=help_text)
        if name == "progress":
            p.add_argument("goal_id")
        p.add_argument("--date", type=_parse_date, default=None, help="YYYY-MM-DD, default today")

    set_notes = sub.add_parser("set-notes", help="Replace a goal's notes (from TEXT, --file or stdin)")
    set_notes.add_argument("goal_id")
    set_notes.add_argument("text", nargs="?", default=None)
    set_notes.add_argument("--file", default=None)

    return parser


def _resolve_config(parsed: argparse.Namespace):
    config_path = parsed.config
    if config_path is None and DEFAULT_CONFIG_PATH.expanduser().exists():
        config_path = DEFAULT_CONFIG_PATH
    if config_path is None and parsed.archive is None:
        raise ConfigError(
            f"No archive configured. Pass --archive or create {DEFAULT_CONFIG_PATH}."
        )
    return load_config(config_path=config_path, overrides={"archive_path": parsed.archive})


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the successcore CLI.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)
    out = OutputFormatter(use_color=not parsed.no_color and sys.stdout.isatty(), json_output=parsed.json)

    if parsed.command is None:
        parser.print_help()
        return 0

    try:
        config = _resolve_config(parsed)
        log_overrides = dict(config.logging)
        if parsed.verbose:
            log_overrides.update(console_enabled=True, console_level="DEBUG")
        configure_logging(app_name="successcore", config=log_overrides)
        logger.debug("Running '%s' against %s", parsed.command, config.archive_path)

        tracker = Tracker.from_config(config)
        return COMMANDS[parsed.command](tracker, parsed, out)
    except (CorruptArchive, UnsupportedSchema) as e:
        logger.error("Archive integrity error: %s", e)
        print(out.error(str(e)), file=sys.stderr)
        return 2
    except (SuccessError, argparse.ArgumentTypeError) as e:
        logger.info("Command '%s' failed: %s", parsed.command, e)
        print(out.error(str(e)), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
