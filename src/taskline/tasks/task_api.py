# src/taskline/tasks/task_api.py

"""
High-level task operations used by the command layer.

Every mutation goes through TaskStore.update(), so time tracking and status
changes on one task are serialized by the per-record lock.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from ..core.state import AppState
from ..parser.descriptor import parse
from . import timetrack
from .errors import CorruptRecord, ValidationError
from .scoring import order_tasks
from .task_models import HOLD_TAG, NEXT_TAG, START_TAG, Task, TaskStatus
from .task_store import TaskFilter

logger = logging.getLogger(__name__)

_DRAFT_ID = "draft"


@dataclass(slots=True)
class RankedTasks:
    entries: list[tuple[Task, float]] = field(default_factory=list)
    errors: list[CorruptRecord] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Namespace:
    name: str
    is_current: bool


def create_task(state: AppState, text: str) -> Task:
    """
    Parse a descriptor, store the new task and honour the "start" directive.
    """
    parsed = parse(text, default_tz=state.local_tz)
    draft = Task.from_descriptor(parsed, task_id=_DRAFT_ID, now=state.now())
    if parsed.wants_start and not state.policy.starttag:
        # Directive disabled: "start" is kept as an ordinary tag.
        draft.add_tags([START_TAG])

    task = state.task_store.create(draft)
    logger.info("Task created id=%s", task.id)

    if parsed.wants_start and state.policy.starttag:
        task = start_task(state, task.id)
    return task


def start_task(state: AppState, task_id: str, annotation: str | None = None) -> Task:
    autorelease = state.policy.autorelease

    def mutate(task: Task) -> None:
        if task.status is not TaskStatus.PENDING:
            raise ValidationError(f"task {task.id} is {task.status}; only pending tasks can be started")
        timetrack.start(task, state.now(), annotation)
        if autorelease:
            task.remove_tags([HOLD_TAG])

    task = state.task_store.update(task_id, mutate)
    logger.info("Time tracking started id=%s", task_id)
    return task


def stop_task(state: AppState, task_id: str) -> Task:
    task = state.task_store.update(task_id, lambda t: timetrack.stop(t, state.now()))
    logger.info("Time tracking stopped id=%s", task_id)
    return task


def complete_task(state: AppState, task_id: str) -> Task:
    policy = state.policy

    def mutate(task: Task) -> None:
        now = state.now()
        if policy.stopondone and task.is_running:
            timetrack.stop(task, now)
        if policy.clearspecialtags:
            task.remove_tags([HOLD_TAG, NEXT_TAG])
        task.set_status(TaskStatus.DONE, now=now)

    return state.task_store.update(task_id, mutate)


def reopen_task(state: AppState, task_id: str) -> Task:
    """Move a done or soft-deleted task back to pending."""
    return state.task_store.update(
        task_id, lambda t: t.set_status(TaskStatus.PENDING, now=state.now())
    )


def delete_task(state: AppState, task_id: str, *, hard: bool = False) -> Task | None:
    result = state.task_store.delete(task_id, hard=hard)
    logger.info("Task deleted id=%s hard=%s", task_id, hard)
    return result


def set_attributes(state: AppState, task_id: str, text: str) -> Task:
    """
    Apply a descriptor to an existing task.

    project/due/priority are overwritten when given, tags and metadata are
    merged, and non-empty description text replaces the old description.
    """
    parsed = parse(text, default_tz=state.local_tz)
    attrs = parsed.attributes

    def mutate(task: Task) -> None:
        if parsed.description:
            task.description = parsed.description
        if attrs.project is not None:
            task.project = attrs.project
        if attrs.due is not None:
            task.due = attrs.due
        if attrs.priority is not None:
            task.priority = attrs.priority
        task.add_tags(t for t in attrs.tags if t != START_TAG)
        task.meta.update(attrs.meta)

    return state.task_store.update(task_id, mutate)


def list_tasks(
    state: AppState,
    task_filter: TaskFilter | None = None,
    now: datetime | None = None,
) -> RankedTasks:
    """
    Load matching tasks and order them by urgency at `now`.

    Deleted tasks only show up when the filter asks for them explicitly.
    """
    task_filter = task_filter or TaskFilter()
    listing = state.task_store.list(task_filter)
    ranked = order_tasks(
        listing.tasks,
        now or state.now(),
        include_deleted=TaskStatus.DELETED in task_filter.statuses,
    )
    return RankedTasks(entries=ranked, errors=list(listing.errors))


def _scan(state: AppState) -> list[Task]:
    flt = TaskFilter(statuses=frozenset({TaskStatus.PENDING, TaskStatus.DONE}))
    return state.task_store.list(flt).tasks


def scan_tags(state: AppState) -> dict[str, int]:
    """Tag usage counts across pending and done tasks."""
    counts: Counter[str] = Counter()
    for task in _scan(state):
        counts.update(task.tags)
    return dict(counts)


def scan_projects(state: AppState) -> dict[str, int]:
    """Project usage counts across pending and done tasks."""
    counts: Counter[str] = Counter(t.project for t in _scan(state) if t.project)
    return dict(counts)


def list_namespaces(settings: Any) -> list[Namespace]:
    data_dir = Path(settings.data_dir)
    if not data_dir.is_dir():
        return []
    current = str(getattr(settings, "namespace", ""))
    return [
        Namespace(name=p.name, is_current=p.name == current)
        for p in sorted(data_dir.iterdir())
        if p.is_dir()
    ]


def time_report(
    state: AppState,
    start: datetime,
    end: datetime | None = None,
    *,
    include_done: bool = False,
) -> dict[date, dict[str, timedelta]]:
    """
    Daily tracked-time summary for pending (and optionally done) tasks.

    `end` defaults to now; days are cut at midnight in the local zone.
    """
    statuses = {TaskStatus.PENDING}
    if include_done:
        statuses.add(TaskStatus.DONE)
    tasks = state.task_store.list(TaskFilter(statuses=frozenset(statuses))).tasks
    return timetrack.daily_summary(tasks, start, end or state.now(), tz=state.local_tz)
