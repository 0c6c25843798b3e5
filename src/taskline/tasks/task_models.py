# src/taskline/tasks/task_models.py

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .errors import ValidationError

if TYPE_CHECKING:
    from ..parser.descriptor import ParsedDescriptor

HOLD_TAG = "hold"
NEXT_TAG = "next"
START_TAG = "start"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: str) -> Priority | None:
        """Case-insensitive lookup; None for unknown names."""
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "deleted" is a soft-delete marker; the record stays on disk until a hard delete.
    """

    PENDING = "pending"
    DONE = "done"
    DELETED = "deleted"


_ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.DONE, TaskStatus.DELETED}),
    TaskStatus.DONE: frozenset({TaskStatus.PENDING, TaskStatus.DELETED}),
    TaskStatus.DELETED: frozenset({TaskStatus.PENDING}),
}


def unique_tags(tags: Iterable[str]) -> list[str]:
    """Drop duplicates, keep first-seen order."""
    out: list[str] = []
    for t in tags:
        if t not in out:
            out.append(t)
    return out


def _ts_to_str(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def _str_to_ts(raw: Any, key: str) -> datetime | None:
    return None if raw is None else _required_ts(raw, key)


def _required_ts(raw: Any, key: str) -> datetime:
    if raw is None:
        raise ValidationError(f"{key}: missing timestamp")
    if isinstance(raw, datetime):
        ts = raw
    elif isinstance(raw, str):
        try:
            ts = datetime.fromisoformat(raw)
        except ValueError as e:
            raise ValidationError(f"{key}: not an ISO-8601 timestamp: {raw!r}") from e
    else:
        raise ValidationError(f"{key}: expected a timestamp string, got {type(raw).__name__}")
    if ts.tzinfo is None:
        raise ValidationError(f"{key}: timestamp has no timezone: {raw!r}")
    return ts


@dataclass(slots=True)
class TimeInterval:
    start: datetime
    stop: datetime | None = None
    annotation: str | None = None

    @property
    def is_open(self) -> bool:
        return self.stop is None

    def to_record(self) -> dict[str, Any]:
        return {
            "start": _ts_to_str(self.start),
            "stop": _ts_to_str(self.stop),
            "annotation": self.annotation,
        }

    @classmethod
    def from_record(cls, raw: Any) -> TimeInterval:
        if not isinstance(raw, Mapping):
            raise ValidationError("time_log entries must be mappings")
        start = _required_ts(raw.get("start"), "time_log.start")
        annotation = raw.get("annotation")
        return cls(
            start=start,
            stop=_str_to_ts(raw.get("stop"), "time_log.stop"),
            annotation=str(annotation) if annotation is not None else None,
        )


@dataclass(slots=True)
class Task:
    id: str
    description: str
    created_at: datetime
    modified_at: datetime

    project: str | None = None
    due: datetime | None = None
    priority: Priority = Priority.LOW
    tags: list[str] = field(default_factory=list)
    meta: dict[str, str] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING

    time_log: list[TimeInterval] = field(default_factory=list)
    open_interval: TimeInterval | None = None
    completed_at: datetime | None = None

    # ---- construction ----

    @classmethod
    def from_descriptor(
        cls, parsed: ParsedDescriptor, *, task_id: str, now: datetime
    ) -> Task:
        """
        Build a fresh pending task from parser output.

        The create-time "start" directive is dropped here; callers check
        `parsed.wants_start` to decide whether tracking begins right away.

        The description may only be empty when at least one attribute token
        was given; an explicit default such as `prio:low` counts.
        """
        attrs = parsed.attributes
        if not parsed.description.strip() and attrs.is_empty():
            raise ValidationError("description may only be empty when attributes are given")
        return cls(
            id=task_id,
            description=parsed.description,
            created_at=now,
            modified_at=now,
            project=attrs.project,
            due=attrs.due,
            priority=attrs.priority or Priority.LOW,
            tags=[t for t in unique_tags(attrs.tags) if t != START_TAG],
            meta=dict(attrs.meta),
        )

    def copy(self) -> Task:
        return copy.deepcopy(self)

    # ---- derived state ----

    @property
    def is_running(self) -> bool:
        return self.open_interval is not None

    def add_tags(self, tags: Iterable[str]) -> None:
        self.tags = unique_tags([*self.tags, *tags])

    def remove_tags(self, tags: Iterable[str]) -> None:
        drop = set(tags)
        self.tags = [t for t in self.tags if t not in drop]

    # ---- status ----

    def set_status(self, new_status: TaskStatus, *, now: datetime) -> None:
        if not isinstance(new_status, TaskStatus):
            raise ValidationError(f"unknown status {new_status!r}")
        if new_status is self.status:
            return
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise ValidationError(
                f"task {self.id}: cannot change status {self.status} -> {new_status}"
            )
        if new_status is TaskStatus.DONE:
            self.completed_at = now
        elif new_status is TaskStatus.PENDING:
            self.completed_at = None
        self.status = new_status

    # ---- validation ----

    def validate(self) -> None:
        """Raise ValidationError if the task breaks any record invariant."""
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValidationError("task id must be a non-empty string")
        if not isinstance(self.description, str):
            raise ValidationError("description must be a string")
        if self.project is not None and (not isinstance(self.project, str) or not self.project):
            raise ValidationError("project must be a non-empty string or None")
        if not isinstance(self.priority, Priority):
            raise ValidationError(f"invalid priority {self.priority!r}")
        if not isinstance(self.status, TaskStatus):
            raise ValidationError(f"invalid status {self.status!r}")

        seen: set[str] = set()
        for tag in self.tags:
            if not isinstance(tag, str) or not tag or any(c.isspace() for c in tag):
                raise ValidationError(f"invalid tag {tag!r}")
            if tag in seen:
                raise ValidationError(f"duplicate tag {tag!r}")
            seen.add(tag)

        for key, value in self.meta.items():
            if not isinstance(key, str) or not key:
                raise ValidationError(f"invalid metadata key {key!r}")
            if not isinstance(value, str):
                raise ValidationError(f"metadata value for {key!r} must be a string")

        for name in ("created_at", "modified_at", "due", "completed_at"):
            ts = getattr(self, name)
            if ts is not None and (not isinstance(ts, datetime) or ts.tzinfo is None):
                raise ValidationError(f"{name} must be a timezone-aware datetime")

        for iv in self.time_log:
            if iv.stop is None:
                raise ValidationError("time_log may only hold closed intervals")
            if iv.start.tzinfo is None or iv.stop.tzinfo is None:
                raise ValidationError("time_log timestamps must be timezone-aware")
            if iv.stop < iv.start:
                raise ValidationError("time_log interval stops before it starts")

        if self.open_interval is not None:
            if self.open_interval.stop is not None:
                raise ValidationError("open interval must not have a stop time")
            if self.open_interval.start.tzinfo is None:
                raise ValidationError("open interval start must be timezone-aware")
            if self.time_log and self.open_interval.start < self.time_log[-1].start:
                raise ValidationError("open interval starts before the last closed interval")

    # ---- persistence mapping ----

    def to_record(self) -> dict[str, Any]:
        entries = [iv.to_record() for iv in self.time_log]
        if self.open_interval is not None:
            entries.append(self.open_interval.to_record())
        return {
            "id": self.id,
            "description": self.description,
            "project": self.project,
            "due": _ts_to_str(self.due),
            "priority": self.priority.value,
            "tags": list(self.tags),
            "meta": dict(self.meta),
            "status": self.status.value,
            "time_log": entries,
            "created_at": _ts_to_str(self.created_at),
            "modified_at": _ts_to_str(self.modified_at),
            "completed_at": _ts_to_str(self.completed_at),
        }

    @classmethod
    def from_record(cls, data: Any) -> Task:
        """Inverse of to_record(); raises ValidationError on any schema problem."""
        if not isinstance(data, Mapping):
            raise ValidationError("record is not a mapping")

        for key in ("id", "created_at", "modified_at"):
            if data.get(key) is None:
                raise ValidationError(f"record is missing {key!r}")

        raw_priority = data.get("priority") or Priority.LOW.value
        priority = Priority.parse(str(raw_priority))
        if priority is None:
            raise ValidationError(f"invalid priority {raw_priority!r}")

        raw_status = data.get("status") or TaskStatus.PENDING.value
        try:
            status = TaskStatus(str(raw_status))
        except ValueError as e:
            raise ValidationError(f"invalid status {raw_status!r}") from e

        raw_tags = data.get("tags") or []
        if not isinstance(raw_tags, list):
            raise ValidationError("tags must be a list")
        raw_meta = data.get("meta") or {}
        if not isinstance(raw_meta, Mapping):
            raise ValidationError("meta must be a mapping")
        raw_log = data.get("time_log") or []
        if not isinstance(raw_log, list):
            raise ValidationError("time_log must be a list")

        intervals = [TimeInterval.from_record(e) for e in raw_log]
        open_ones = [iv for iv in intervals if iv.is_open]
        if len(open_ones) > 1:
            raise ValidationError("more than one running interval in time_log")
        if open_ones and not intervals[-1].is_open:
            raise ValidationError("running interval must be the last time_log entry")

        project = data.get("project")
        created_at = _required_ts(data.get("created_at"), "created_at")
        modified_at = _required_ts(data.get("modified_at"), "modified_at")

        task = cls(
            id=str(data["id"]),
            description=str(data.get("description") or ""),
            created_at=created_at,
            modified_at=modified_at,
            project=str(project) if project is not None else None,
            due=_str_to_ts(data.get("due"), "due"),
            priority=priority,
            tags=[str(t) for t in raw_tags],
            meta={str(k): str(v) for k, v in raw_meta.items()},
            status=status,
            time_log=[iv for iv in intervals if not iv.is_open],
            open_interval=open_ones[0] if open_ones else None,
            completed_at=_str_to_ts(data.get("completed_at"), "completed_at"),
        )
        task.validate()
        return task
