# tests/test_task_api.py

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from taskline.tasks import task_api, timetrack
from taskline.tasks.errors import AlreadyRunning, InvalidPriority, NotFound, ValidationError
from taskline.tasks.task_models import Priority, TaskStatus
from taskline.tasks.task_store import TaskFilter

from .fakes import T0


def test_create_task_from_descriptor(state) -> None:
    task = task_api.create_task(
        state, "Ship release prj:Core due:2024-12-01T09:00:00Z prio:high tag:infra"
    )

    stored = state.task_store.load(task.id)
    assert stored.description == "Ship release"
    assert stored.project == "Core"
    assert stored.due == datetime(2024, 12, 1, 9, 0, tzinfo=timezone.utc)
    assert stored.priority is Priority.HIGH
    assert stored.tags == ["infra"]
    assert stored.status is TaskStatus.PENDING
    assert not stored.is_running


def test_create_task_parse_error_writes_nothing(state) -> None:
    with pytest.raises(InvalidPriority):
        task_api.create_task(state, "Ship prio:urgent")
    assert state.task_store.count_tasks() == 0


def test_start_directive_starts_tracking(state) -> None:
    task = task_api.create_task(state, "Write report tag:start")

    stored = state.task_store.load(task.id)
    assert stored.is_running
    assert stored.open_interval.start == T0
    assert stored.time_log == []
    assert "start" not in stored.tags


def test_start_directive_disabled_keeps_plain_tag(state) -> None:
    state.policy = replace(state.policy, starttag=False)

    task = task_api.create_task(state, "Write report tag:start")

    stored = state.task_store.load(task.id)
    assert not stored.is_running
    assert stored.tags == ["start"]


def test_start_and_stop_tracking(state, clock) -> None:
    task = task_api.create_task(state, "Write report")

    task_api.start_task(state, task.id, "draft")
    with pytest.raises(AlreadyRunning):
        task_api.start_task(state, task.id)

    clock.advance(minutes=45)
    stopped = task_api.stop_task(state, task.id)

    assert not stopped.is_running
    assert timetrack.elapsed(stopped) == timedelta(minutes=45)
    assert stopped.time_log[0].annotation == "draft"
    assert state.task_store.load(task.id) == stopped


def test_autorelease_removes_hold(state) -> None:
    task = task_api.create_task(state, "Blocked thing tag:hold tag:ops")
    started = task_api.start_task(state, task.id)
    assert started.tags == ["ops"]


def test_autorelease_off_keeps_hold(state) -> None:
    state.policy = replace(state.policy, autorelease=False)
    task = task_api.create_task(state, "Blocked thing tag:hold")
    started = task_api.start_task(state, task.id)
    assert started.tags == ["hold"]


def test_complete_stops_tracking_and_clears_special_tags(state, clock) -> None:
    task = task_api.create_task(state, "Finish it tag:next tag:hold tag:work tag:start")
    clock.advance(minutes=10)

    done = task_api.complete_task(state, task.id)

    assert done.status is TaskStatus.DONE
    assert done.completed_at == T0 + timedelta(minutes=10)
    assert not done.is_running
    assert timetrack.elapsed(done) == timedelta(minutes=10)
    assert done.tags == ["work"]


def test_complete_with_policies_off(state) -> None:
    state.policy = replace(state.policy, stopondone=False, clearspecialtags=False)
    task = task_api.create_task(state, "Finish it tag:next tag:start")

    done = task_api.complete_task(state, task.id)

    assert done.status is TaskStatus.DONE
    assert done.is_running
    assert done.tags == ["next"]


def test_only_pending_tasks_can_start(state) -> None:
    task = task_api.create_task(state, "Finish it")
    task_api.complete_task(state, task.id)

    with pytest.raises(ValidationError):
        task_api.start_task(state, task.id)


def test_reopen_and_delete_cycle(state) -> None:
    task = task_api.create_task(state, "Finish it")
    task_api.complete_task(state, task.id)

    reopened = task_api.reopen_task(state, task.id)
    assert reopened.status is TaskStatus.PENDING
    assert reopened.completed_at is None

    deleted = task_api.delete_task(state, task.id)
    assert deleted.status is TaskStatus.DELETED
    assert task_api.reopen_task(state, task.id).status is TaskStatus.PENDING

    assert task_api.delete_task(state, task.id, hard=True) is None
    with pytest.raises(NotFound):
        state.task_store.load(task.id)


def test_set_attributes_overwrites_and_merges(state) -> None:
    task = task_api.create_task(state, "Old text prj:a tag:x meta:owner=alice")

    updated = task_api.set_attributes(
        state, task.id, "New text prj:b prio:medium tag:y tag:start meta:owner=bob meta:ticket=T-1"
    )

    assert updated.description == "New text"
    assert updated.project == "b"
    assert updated.priority is Priority.MEDIUM
    assert updated.tags == ["x", "y"]
    assert updated.meta == {"owner": "bob", "ticket": "T-1"}
    assert not updated.is_running


def test_set_attributes_without_text_keeps_description(state) -> None:
    task = task_api.create_task(state, "Keep me")
    updated = task_api.set_attributes(state, task.id, "prio:high")
    assert updated.description == "Keep me"
    assert updated.priority is Priority.HIGH


def test_list_tasks_orders_by_urgency(state) -> None:
    low = task_api.create_task(state, "Someday")
    urgent = task_api.create_task(state, "Now prio:high due:2024-11-20T11:00:00Z")
    held = task_api.create_task(state, "Waiting prio:high tag:hold")
    nxt = task_api.create_task(state, "First tag:next")

    ranked = task_api.list_tasks(state)

    assert [t.id for t, _ in ranked.entries] == [nxt.id, urgent.id, low.id, held.id]
    assert ranked.errors == []


def test_list_tasks_hides_deleted_unless_requested(state) -> None:
    keep = task_api.create_task(state, "Keep")
    gone = task_api.create_task(state, "Gone")
    task_api.delete_task(state, gone.id)

    assert [t.id for t, _ in task_api.list_tasks(state).entries] == [keep.id]

    flt = TaskFilter(statuses=frozenset({TaskStatus.DELETED}))
    assert [t.id for t, _ in task_api.list_tasks(state, flt).entries] == [gone.id]


def test_list_tasks_reports_corrupt_records(state) -> None:
    task_api.create_task(state, "Fine")
    (state.task_store.root / "junk.yaml").write_text("id: [unclosed\n", "utf-8")

    ranked = task_api.list_tasks(state)

    assert len(ranked.entries) == 1
    assert len(ranked.errors) == 1


def test_scan_tags_and_projects(state) -> None:
    task_api.create_task(state, "a prj:web tag:bug tag:ui")
    task_api.create_task(state, "b prj:web tag:bug")
    done = task_api.create_task(state, "c prj:docs tag:writing")
    task_api.complete_task(state, done.id)
    gone = task_api.create_task(state, "d prj:trash tag:old")
    task_api.delete_task(state, gone.id)

    assert task_api.scan_tags(state) == {"bug": 2, "ui": 1, "writing": 1}
    assert task_api.scan_projects(state) == {"web": 2, "docs": 1}


def test_list_namespaces(state, settings) -> None:
    (settings.data_dir / "work").mkdir(parents=True)

    spaces = task_api.list_namespaces(settings)

    assert [(ns.name, ns.is_current) for ns in spaces] == [("default", True), ("work", False)]


def test_list_namespaces_without_data_dir(tmp_path) -> None:
    class _Settings:
        data_dir = tmp_path / "missing"
        namespace = "default"

    assert task_api.list_namespaces(_Settings()) == []


def test_create_task_with_only_default_priority(state) -> None:
    task = task_api.create_task(state, "prio:low")

    stored = state.task_store.load(task.id)
    assert stored.description == ""
    assert stored.priority is Priority.LOW


def test_create_task_needs_text_or_attributes(state) -> None:
    with pytest.raises(ValidationError):
        task_api.create_task(state, "   ")
    assert state.task_store.count_tasks() == 0
