# src/taskline/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task core.

The core depends on Protocols instead of concrete implementations.
This keeps the clock, id source and storage swappable and makes testing easier.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

Clock = Callable[[], datetime]
# Returns a timezone-aware "now".

IdFactory = Callable[[], str]
# Returns a fresh, globally unique task id.


class TaskRepo(Protocol):
    """What use-case helpers and commands need from a task store."""

    def create(self, task: Any) -> Any: ...
    def load(self, task_id: str) -> Any: ...
    def update(self, task_id: str, mutator: Callable[[Any], object]) -> Any: ...
    def delete(self, task_id: str, *, hard: bool = False) -> Any | None: ...
    def list(self, predicate: Callable[[Any], bool] | None = None) -> Any: ...
    def resolve_id(self, fragment: str) -> str: ...
    def count_tasks(self) -> int: ...
