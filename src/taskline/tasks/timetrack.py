# src/taskline/tasks/timetrack.py

"""
Time tracking attached to a Task.

Two states: IDLE (no open interval) and RUNNING (exactly one open interval).
Closed intervals live in `task.time_log`; the running one in `task.open_interval`.
Functions here mutate the Task in place; persisting is the store's job.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import StrEnum

from .errors import AlreadyRunning, NotRunning, ValidationError
from .task_models import Task, TimeInterval


class TrackingState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"


def tracking_state(task: Task) -> TrackingState:
    return TrackingState.RUNNING if task.open_interval is not None else TrackingState.IDLE


def start(task: Task, now: datetime, annotation: str | None = None) -> TimeInterval:
    if task.open_interval is not None:
        raise AlreadyRunning(task.id)
    interval = TimeInterval(start=now, annotation=annotation or None)
    task.open_interval = interval
    return interval


def stop(task: Task, now: datetime) -> TimeInterval:
    interval = task.open_interval
    if interval is None:
        raise NotRunning(task.id)
    if now < interval.start:
        raise ValidationError(f"task {task.id}: stop time {now} precedes start {interval.start}")
    closed = TimeInterval(start=interval.start, stop=now, annotation=interval.annotation)
    task.time_log.append(closed)
    task.open_interval = None
    return closed


def elapsed(task: Task) -> timedelta:
    """Total of closed intervals; a running session is never included."""
    total = timedelta()
    for iv in task.time_log:
        if iv.stop is not None:
            total += iv.stop - iv.start
    return total


def current_elapsed(task: Task, now: datetime) -> timedelta:
    """Closed total plus the running session measured up to `now`."""
    total = elapsed(task)
    if task.open_interval is not None:
        total += max(timedelta(), now - task.open_interval.start)
    return total


def format_duration(delta: timedelta) -> str:
    """hh:mm:ss, hours not capped at 24."""
    seconds = int(delta.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def _day_start(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time(), tzinfo=tz)


def _add(
    summary: dict[date, dict[str, timedelta]], day: date, task_id: str, amount: timedelta
) -> None:
    per_task = summary.setdefault(day, {})
    per_task[task_id] = per_task.get(task_id, timedelta()) + amount


def daily_summary(
    tasks: Iterable[Task],
    start: datetime,
    end: datetime,
    *,
    tz: tzinfo = timezone.utc,
) -> dict[date, dict[str, timedelta]]:
    """
    Tracked time per day and task inside [start, end).

    - closed intervals only; a session crossing midnight (in `tz`) is split
      between the days it touches, and clipped to the window
    - a task created or completed inside the window shows up on that day
      even with zero tracked time
    - days without any activity are left out; keys come back in date order
    """
    if end <= start:
        raise ValidationError(f"report window ends ({end}) before it starts ({start})")

    summary: dict[date, dict[str, timedelta]] = {}
    for task in tasks:
        for marker in (task.created_at, task.completed_at):
            if marker is not None and start <= marker < end:
                _add(summary, marker.astimezone(tz).date(), task.id, timedelta())

        for iv in task.time_log:
            if iv.stop is None:
                continue
            cursor = max(iv.start, start)
            stop = min(iv.stop, end)
            while cursor < stop:
                day = cursor.astimezone(tz).date()
                chunk_end = min(stop, _day_start(day + timedelta(days=1), tz))
                _add(summary, day, task.id, chunk_end - cursor)
                cursor = chunk_end

    return {day: summary[day] for day in sorted(summary)}
