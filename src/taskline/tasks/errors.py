# src/taskline/tasks/errors.py

from __future__ import annotations


class TasklineError(Exception):
    """Base class for every error the task core raises on purpose."""

    retryable: bool = False


# ---- descriptor parsing ----


class ParseError(TasklineError):
    """A task descriptor could not be turned into attributes."""


class InvalidDueDate(ParseError):
    def __init__(self, position: int, raw_value: str) -> None:
        self.position = position
        self.raw_value = raw_value
        super().__init__(
            f"invalid due date {raw_value!r} at offset {position}: "
            "expected a full date-time such as 2024-12-01T09:00:00Z"
        )


class InvalidPriority(ParseError):
    def __init__(self, raw_value: str) -> None:
        self.raw_value = raw_value
        super().__init__(f"invalid priority {raw_value!r}: expected low, medium or high")


class MalformedMetaToken(ParseError):
    def __init__(self, position: int, raw_value: str) -> None:
        self.position = position
        self.raw_value = raw_value
        super().__init__(
            f"malformed metadata {raw_value!r} at offset {position}: expected key=value"
        )


# ---- entity / store ----


class ValidationError(TasklineError):
    """A task violates the record schema or an allowed state transition."""


class NotFound(TasklineError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"task {task_id!r} not found")


class CorruptRecord(TasklineError):
    def __init__(self, path: object, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"corrupt task record {path}: {reason}")


class LockTimeout(TasklineError):
    retryable = True

    def __init__(self, task_id: str, timeout: float) -> None:
        self.task_id = task_id
        self.timeout = timeout
        super().__init__(
            f"task {task_id!r} is locked by another process "
            f"(waited {timeout:.1f}s); try again"
        )


class PersistError(TasklineError):
    """Writing a record failed; the previous version is still in place."""


# ---- time tracking ----


class TimeTrackingError(TasklineError):
    pass


class AlreadyRunning(TimeTrackingError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"time tracking for task {task_id!r} is already running")


class NotRunning(TimeTrackingError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"time tracking for task {task_id!r} is not running")
