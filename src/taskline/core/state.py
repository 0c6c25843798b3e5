# src/taskline/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any

from .ports import Clock, TaskRepo


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class TaskPolicy:
    """
    Behaviour switches around special tags and time tracking.

    - autorelease: starting time tracking removes the "hold" tag
    - starttag: a "start" tag in a new task's descriptor starts tracking at once
    - stopondone: marking a task done stops running time tracking
    - clearspecialtags: marking a task done removes "hold"/"next"
    """

    autorelease: bool = True
    starttag: bool = True
    stopondone: bool = True
    clearspecialtags: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> TaskPolicy:
        return cls(
            autorelease=bool(getattr(settings, "autorelease", True)),
            starttag=bool(getattr(settings, "starttag", True)),
            stopondone=bool(getattr(settings, "stopondone", True)),
            clearspecialtags=bool(getattr(settings, "clearspecialtags", True)),
        )


@dataclass(slots=True)
class AppState:
    # Settings object (config.Settings or a test stand-in).
    settings: Any
    task_store: TaskRepo
    policy: TaskPolicy
    clock: Clock = _utc_now
    # Zone for naive due dates typed by the user.
    local_tz: tzinfo = timezone.utc

    def now(self) -> datetime:
        return self.clock()
