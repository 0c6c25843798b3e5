# tests/test_timetrack.py

from __future__ import annotations

from datetime import date, timedelta, timezone

import pytest

from taskline.tasks import timetrack
from taskline.tasks.errors import AlreadyRunning, NotRunning, ValidationError
from taskline.tasks.task_models import Task

from .fakes import T0


def _task() -> Task:
    return Task(id="t1", description="write docs", created_at=T0, modified_at=T0)


def test_start_stop_cycle() -> None:
    task = _task()
    assert timetrack.tracking_state(task) is timetrack.TrackingState.IDLE

    timetrack.start(task, T0, "first pass")
    assert timetrack.tracking_state(task) is timetrack.TrackingState.RUNNING
    assert task.time_log == []

    closed = timetrack.stop(task, T0 + timedelta(minutes=25))
    assert closed.annotation == "first pass"
    assert task.open_interval is None
    assert len(task.time_log) == 1
    assert timetrack.elapsed(task) == timedelta(minutes=25)


def test_start_twice_raises() -> None:
    task = _task()
    timetrack.start(task, T0)
    with pytest.raises(AlreadyRunning):
        timetrack.start(task, T0 + timedelta(minutes=1))
    assert task.open_interval.start == T0


def test_stop_when_idle_raises() -> None:
    with pytest.raises(NotRunning):
        timetrack.stop(_task(), T0)


def test_stop_before_start_is_rejected() -> None:
    task = _task()
    timetrack.start(task, T0)
    with pytest.raises(ValidationError):
        timetrack.stop(task, T0 - timedelta(seconds=1))
    assert task.is_running


def test_elapsed_ignores_running_session() -> None:
    task = _task()
    timetrack.start(task, T0)
    timetrack.stop(task, T0 + timedelta(hours=1))
    timetrack.start(task, T0 + timedelta(hours=2))

    assert timetrack.elapsed(task) == timedelta(hours=1)
    assert timetrack.current_elapsed(task, T0 + timedelta(hours=2, minutes=30)) == timedelta(
        hours=1, minutes=30
    )


def test_intervals_accumulate() -> None:
    task = _task()
    for i in range(3):
        start = T0 + timedelta(hours=i)
        timetrack.start(task, start)
        timetrack.stop(task, start + timedelta(minutes=10))

    assert len(task.time_log) == 3
    assert timetrack.elapsed(task) == timedelta(minutes=30)
    task.validate()


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(), "00:00:00"),
        (timedelta(minutes=5, seconds=3), "00:05:03"),
        (timedelta(hours=27, minutes=1), "27:01:00"),
    ],
)
def test_format_duration(delta: timedelta, expected: str) -> None:
    assert timetrack.format_duration(delta) == expected


def _tracked(task: Task, start, minutes: int) -> None:
    timetrack.start(task, start)
    timetrack.stop(task, start + timedelta(minutes=minutes))


def test_daily_summary_buckets_per_day_and_task() -> None:
    # T0 is 2024-11-20 12:00 UTC
    a = _task()
    b = Task(id="t2", description="review", created_at=T0, modified_at=T0)
    _tracked(a, T0, 30)
    _tracked(a, T0 + timedelta(hours=2), 15)
    _tracked(b, T0 + timedelta(days=1), 60)

    summary = timetrack.daily_summary([a, b], T0 - timedelta(hours=12), T0 + timedelta(days=2))

    assert list(summary) == [date(2024, 11, 20), date(2024, 11, 21)]
    assert summary[date(2024, 11, 20)] == {"t1": timedelta(minutes=45), "t2": timedelta()}
    assert summary[date(2024, 11, 21)] == {"t2": timedelta(minutes=60)}


def test_daily_summary_splits_sessions_at_midnight() -> None:
    task = _task()
    _tracked(task, T0 + timedelta(hours=11), 120)  # 23:00 -> 01:00

    summary = timetrack.daily_summary([task], T0 + timedelta(hours=1), T0 + timedelta(days=1))

    assert summary == {
        date(2024, 11, 20): {"t1": timedelta(hours=1)},
        date(2024, 11, 21): {"t1": timedelta(hours=1)},
    }


def test_daily_summary_uses_given_zone_and_clips_window() -> None:
    task = _task()
    _tracked(task, T0 + timedelta(hours=11), 120)
    plus3 = timezone(timedelta(hours=3))

    # 23:00-01:00 UTC is 02:00-04:00 on the 21st at +03:00; window cuts at 00:30 UTC.
    summary = timetrack.daily_summary(
        [task], T0 + timedelta(hours=1), T0 + timedelta(hours=12, minutes=30), tz=plus3
    )

    assert summary == {date(2024, 11, 21): {"t1": timedelta(minutes=90)}}


def test_daily_summary_ignores_running_session() -> None:
    task = _task()
    timetrack.start(task, T0 + timedelta(hours=1))

    assert timetrack.daily_summary([task], T0 + timedelta(minutes=1), T0 + timedelta(days=1)) == {}


def test_daily_summary_rejects_empty_window() -> None:
    with pytest.raises(ValidationError):
        timetrack.daily_summary([], T0, T0)
