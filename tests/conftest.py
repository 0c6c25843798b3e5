# tests/conftest.py

from __future__ import annotations

from datetime import timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskline.core.state import AppState, TaskPolicy
from taskline.tasks.task_store import TaskStore

from .fakes import FakeClock, SequentialIds


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the command layer.

    We intentionally use a SimpleNamespace rather than reading the environment,
    to keep unit tests isolated and deterministic.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        data_dir=data_dir,
        namespace="default",
        tasks_dir=data_dir / "default" / "tasks",
        create_dir=True,
        lock_timeout=2.0,
        rotate=3,
        autorelease=True,
        starttag=True,
        stopondone=True,
        clearspecialtags=True,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture()
def store(settings: SimpleNamespace, clock: FakeClock, ids: SequentialIds) -> TaskStore:
    """Real directory-backed store under tmp_path; its correctness is what we test."""
    return TaskStore(
        settings.tasks_dir,
        lock_timeout=settings.lock_timeout,
        poll_interval=0.005,
        rotate=settings.rotate,
        clock=clock,
        id_factory=ids,
    )


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, clock: FakeClock) -> AppState:
    return AppState(
        settings=settings,
        task_store=store,
        policy=TaskPolicy.from_settings(settings),
        clock=clock,
        local_tz=timezone.utc,
    )
