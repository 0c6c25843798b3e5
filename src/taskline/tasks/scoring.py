# src/taskline/tasks/scoring.py

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from .task_models import HOLD_TAG, NEXT_TAG, Priority, Task, TaskStatus

PRIORITY_WEIGHT: dict[Priority, float] = {
    Priority.LOW: 1.0,
    Priority.MEDIUM: 4.0,
    Priority.HIGH: 8.0,
}

# Due term. The future term climbs towards DUE_SOON_WEIGHT as the due date
# approaches; once overdue it starts at OVERDUE_BASE and keeps growing
# (logarithmically) with lateness.
DUE_SOON_WEIGHT = 12.0
DUE_SOON_SCALE_HOURS = 24.0
OVERDUE_BASE = 12.0
OVERDUE_LOG_WEIGHT = 2.0

# Must dwarf every other term combined.
NEXT_BONUS = 1_000_000.0
HOLD_PENALTY = 1_000_000.0


def _priority_term(priority: Priority) -> float:
    try:
        return PRIORITY_WEIGHT[priority]
    except KeyError:
        raise ValueError(f"unknown priority {priority!r}") from None


def _due_term(due: datetime | None, now: datetime) -> float:
    if due is None:
        return 0.0
    hours = (due - now).total_seconds() / 3600.0
    if hours < 0:
        return OVERDUE_BASE + OVERDUE_LOG_WEIGHT * math.log1p(-hours)
    return DUE_SOON_WEIGHT / (1.0 + hours / DUE_SOON_SCALE_HOURS)


def _tag_term(tags: Iterable[str]) -> float:
    tagset = set(tags)
    if NEXT_TAG in tagset:
        return NEXT_BONUS
    if HOLD_TAG in tagset:
        return -HOLD_PENALTY
    return 0.0


def score(task: Task, now: datetime) -> float:
    """
    Urgency score for ordering (higher = more urgent).

    Always computed against `now`; never stored.
    """
    return _priority_term(task.priority) + _due_term(task.due, now) + _tag_term(task.tags)


def sort_key(task: Task, now: datetime) -> tuple:
    """
    Sort key for ascending sort = most urgent first.

    Equal scores: tasks with a due date first (earliest due first),
    then earlier-created first, then id for full determinism.
    """
    has_no_due = task.due is None
    due_ts = task.due.timestamp() if task.due is not None else 0.0
    return (-score(task, now), has_no_due, due_ts, task.created_at.timestamp(), task.id)


def order_tasks(
    tasks: Iterable[Task], now: datetime, *, include_deleted: bool = False
) -> list[tuple[Task, float]]:
    """Return (task, score) pairs, most urgent first."""
    keep = [t for t in tasks if include_deleted or t.status is not TaskStatus.DELETED]
    keep.sort(key=lambda t: sort_key(t, now))
    return [(t, score(t, now)) for t in keep]
