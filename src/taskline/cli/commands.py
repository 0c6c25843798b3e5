# src/taskline/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, tzinfo
from typing import cast

from ..core.state import AppState
from ..tasks import task_api, timetrack
from ..tasks.errors import TasklineError
from ..tasks.task_models import Task, TaskStatus
from ..tasks.task_store import TaskFilter

CommandHandler2 = Callable[[AppState, list[str]], str]
# Handlers taking a third parameter also get the raw text after the command
# name, with the user's spacing intact.
CommandHandler3 = Callable[[AppState, list[str], str], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry (/add, /list, /start, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def dispatch(self, state: AppState, line: str) -> str | None:
        """
        Run a string like "/command args".
        Returns a reply string or None if not a command. TasklineError propagates.
        """
        if not line.startswith("/"):
            return None

        body = line[1:].strip()
        parts = body.split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]
        text = body[len(parts[0]) :].strip()

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 2

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, text)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def handle(self, state: AppState, line: str) -> str | None:
        """Like dispatch(), but task errors become a user-facing message."""
        try:
            return self.dispatch(state, line)
        except TasklineError as e:
            logger.info("Command failed: %s (%s)", line, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def _fmt_ts(ts: datetime | None) -> str:
    if ts is None:
        return "-"
    return ts.astimezone().strftime("%Y-%m-%d %H:%M")


def _short(task_id: str) -> str:
    return task_id[:8]


def _task_line(task: Task, score: float | None = None) -> str:
    parts = [_short(task.id)]
    if score is not None:
        parts.append(f"{score:10.2f}")
    parts.append(f"{task.priority.value:<6}")
    parts.append(f"{_fmt_ts(task.due):<16}")
    parts.append(f"{(task.project or '-'):<12}")
    parts.append(task.description or "(no description)")
    if task.tags:
        parts.append("[" + ", ".join(task.tags) + "]")
    if task.is_running:
        parts.append("(running)")
    return "  ".join(parts)


def _task_details(state: AppState, task: Task) -> str:
    now = state.now()
    lines = [
        f"ID:          {task.id}",
        f"Description: {task.description}",
        f"Project:     {task.project or '-'}",
        f"Due:         {_fmt_ts(task.due)}",
        f"Priority:    {task.priority.value}",
        f"Status:      {task.status.value}",
        f"Tags:        {', '.join(task.tags) or '-'}",
        f"Tracking:    {timetrack.tracking_state(task).value}",
        f"Tracked:     {timetrack.format_duration(timetrack.current_elapsed(task, now))}",
        f"Created:     {_fmt_ts(task.created_at)}",
        f"Modified:    {_fmt_ts(task.modified_at)}",
    ]
    if task.completed_at is not None:
        lines.append(f"Completed:   {_fmt_ts(task.completed_at)}")
    for key, value in task.meta.items():
        lines.append(f"Meta:        {key}={value}")
    return "\n".join(lines)


def _require_id(args: list[str], usage: str) -> str:
    if not args:
        raise TasklineError(f"Usage: {usage}")
    return args[0]


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    p = state.policy
    return (
        "Status:\n"
        f"  Namespace: {getattr(s, 'namespace', '-')}\n"
        f"  Task dir: {state.task_store.root}\n"
        f"  Tasks on disk: {state.task_store.count_tasks()}\n"
        f"  Lock timeout: {getattr(s, 'lock_timeout', '-')}s, backups kept: {getattr(s, 'rotate', '-')}\n"
        f"  autorelease={p.autorelease} starttag={p.starttag} "
        f"stopondone={p.stopondone} clearspecialtags={p.clearspecialtags}"
    )


def cmd_add(state: AppState, args: list[str], text: str) -> str:
    if not text:
        return "Usage: /add <descriptor>, e.g. /add Ship release prj:Core prio:high tag:infra"
    task = task_api.create_task(state, text)
    suffix = " (time tracking started)" if task.is_running else ""
    return f"Task {task.id} created{suffix}."


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                -> pending tasks by urgency
    /list all|done|deleted
    /list prj:X tag:Y word -> filter by project, tag, description text
    """
    statuses = frozenset({TaskStatus.PENDING})
    project = tag = None
    words: list[str] = []
    for arg in args:
        low = arg.lower()
        if low == "all":
            statuses = frozenset({TaskStatus.PENDING, TaskStatus.DONE})
        elif low == "done":
            statuses = frozenset({TaskStatus.DONE})
        elif low == "deleted":
            statuses = frozenset({TaskStatus.DELETED})
        elif low.startswith("prj:") and len(arg) > 4:
            project = arg[4:]
        elif low.startswith("tag:") and len(arg) > 4:
            tag = arg[4:]
        else:
            words.append(arg)

    flt = TaskFilter(statuses=statuses, project=project, tag=tag, text=" ".join(words) or None)
    ranked = task_api.list_tasks(state, flt)

    lines = [_task_line(t, s) for t, s in ranked.entries]
    for err in ranked.errors:
        lines.append(f"! skipped corrupt record {err.path}: {err.reason}")
    return "\n".join(lines) if lines else "No tasks."


def cmd_show(state: AppState, args: list[str]) -> str:
    task_id = state.task_store.resolve_id(_require_id(args, "/show <id>"))
    return _task_details(state, state.task_store.load(task_id))


def cmd_set(state: AppState, args: list[str], text: str) -> str:
    task_id = state.task_store.resolve_id(_require_id(args, "/set <id> <descriptor>"))
    if len(args) < 2:
        return "Usage: /set <id> <descriptor>"
    descriptor = text[len(args[0]) :].strip()
    task = task_api.set_attributes(state, task_id, descriptor)
    return _task_line(task)


def cmd_start(state: AppState, args: list[str], text: str) -> str:
    task_id = state.task_store.resolve_id(_require_id(args, "/start <id> [annotation]"))
    annotation = text[len(args[0]) :].strip()
    task_api.start_task(state, task_id, annotation or None)
    return f"Started time tracking for task {task_id}."


def cmd_stop(state: AppState, args: list[str]) -> str:
    task_id = state.task_store.resolve_id(_require_id(args, "/stop <id>"))
    task = task_api.stop_task(state, task_id)
    total = timetrack.format_duration(timetrack.elapsed(task))
    return f"Stopped time tracking for task {task_id} (total {total})."


def cmd_done(state: AppState, args: list[str]) -> str:
    task_id = state.task_store.resolve_id(_require_id(args, "/done <id>"))
    task_api.complete_task(state, task_id)
    return f"Task {task_id} marked done."


def cmd_reopen(state: AppState, args: list[str]) -> str:
    task_id = state.task_store.resolve_id(_require_id(args, "/reopen <id>"))
    task_api.reopen_task(state, task_id)
    return f"Task {task_id} is pending again."


def cmd_delete(state: AppState, args: list[str]) -> str:
    """
    /del <id>         -> soft delete (status=deleted)
    /del <id> --hard  -> remove the record file
    """
    task_id = state.task_store.resolve_id(_require_id(args, "/del <id> [--hard]"))
    hard = "--hard" in args[1:]
    task_api.delete_task(state, task_id, hard=hard)
    return f"Task {task_id} {'removed' if hard else 'deleted'}."


def _parse_day(raw: str, tz: tzinfo) -> datetime:
    """YYYY-MM-DD (midnight) or a full ISO date-time; naive values use `tz`."""
    try:
        if "t" in raw.lower():
            value = datetime.fromisoformat(raw)
        else:
            value = datetime.combine(date.fromisoformat(raw), time())
    except ValueError:
        raise TasklineError(
            f"invalid date {raw!r}: expected YYYY-MM-DD or an ISO date-time"
        ) from None
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz)
    return value


def cmd_report(state: AppState, args: list[str]) -> str:
    """
    /report <start> [end] [all]  -> tracked time per day and task
    (end defaults to now; "all" includes done tasks)
    """
    include_done = any(a.lower() == "all" for a in args)
    dates = [a for a in args if a.lower() != "all"]
    if not dates or len(dates) > 2:
        raise TasklineError("Usage: /report <start-date> [end-date] [all]")

    start = _parse_day(dates[0], state.local_tz)
    end = _parse_day(dates[1], state.local_tz) if len(dates) > 1 else None
    summary = task_api.time_report(state, start, end, include_done=include_done)
    if not summary:
        return "Nothing tracked in that period."

    lines: list[str] = []
    for day, per_task in summary.items():
        total = sum(per_task.values(), timedelta())
        lines.append(f"{day.isoformat()}  total {timetrack.format_duration(total)}")
        for task_id, spent in sorted(per_task.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"  {_short(task_id)}  {timetrack.format_duration(spent)}")
    return "\n".join(lines)


def _fmt_counts(title: str, counts: dict[str, int]) -> str:
    if not counts:
        return f"No {title.lower()} in use."
    lines = [f"{title}:"]
    for name, n in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])):
        lines.append(f"  {name} ({n})")
    return "\n".join(lines)


def cmd_tags(state: AppState, args: list[str]) -> str:
    return _fmt_counts("Tags", task_api.scan_tags(state))


def cmd_projects(state: AppState, args: list[str]) -> str:
    return _fmt_counts("Projects", task_api.scan_projects(state))


def cmd_namespaces(state: AppState, args: list[str]) -> str:
    spaces = task_api.list_namespaces(state.settings)
    if not spaces:
        return "No namespaces."
    return "\n".join(f"{'*' if ns.is_current else ' '} {ns.name}" for ns in spaces)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage location and behaviour settings.")
registry.register("add", cmd_add, help_text="Create a task: /add <descriptor>.", aliases=["new"])
registry.register(
    "list", cmd_list, help_text="List tasks by urgency: /list [all|done|deleted] [prj:X] [tag:Y] [text].",
    aliases=["ls"],
)
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("set", cmd_set, help_text="Update attributes: /set <id> <descriptor>.")
registry.register("start", cmd_start, help_text="Start time tracking: /start <id> [annotation].")
registry.register("stop", cmd_stop, help_text="Stop time tracking: /stop <id>.")
registry.register("done", cmd_done, help_text="Mark a task done: /done <id>.")
registry.register("reopen", cmd_reopen, help_text="Move a done/deleted task back to pending.")
registry.register("del", cmd_delete, help_text="Delete a task: /del <id> [--hard].", aliases=["rm"])
registry.register("tags", cmd_tags, help_text="Tag usage counts.")
registry.register("projects", cmd_projects, help_text="Project usage counts.")
registry.register(
    "report", cmd_report, help_text="Tracked time per day: /report <start-date> [end-date] [all]."
)
registry.register("namespaces", cmd_namespaces, help_text="List namespaces in the data directory.")
