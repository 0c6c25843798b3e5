# src/taskline/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the namespace directory exists (unless create_dir is off),
- wires the file-backed TaskStore, clock and behaviour policy into AppState.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ..config import get_settings
from ..core.ports import Clock
from ..core.state import AppState, TaskPolicy
from ..tasks.errors import PersistError
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_local_dirs(settings) -> None:
    if getattr(settings, "create_dir", True):
        settings.tasks_dir.mkdir(parents=True, exist_ok=True)
    elif not settings.tasks_dir.is_dir():
        raise PersistError(
            f"data directory {settings.tasks_dir} does not exist and create_dir is off"
        )


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    clock = clock or _utc_now

    _ensure_local_dirs(settings)

    store = TaskStore(
        settings.tasks_dir,
        lock_timeout=settings.lock_timeout,
        rotate=settings.rotate,
        create_dir=settings.create_dir,
        clock=clock,
    )
    local_tz = datetime.now().astimezone().tzinfo or timezone.utc

    logger.debug("State ready namespace=%s dir=%s", settings.namespace, settings.tasks_dir)
    return AppState(
        settings=settings,
        task_store=store,
        policy=TaskPolicy.from_settings(settings),
        clock=clock,
        local_tz=local_tz,
    )
