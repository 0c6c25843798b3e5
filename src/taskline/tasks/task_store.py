# src/taskline/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import yaml

from ..core.ports import Clock, IdFactory
from .errors import CorruptRecord, NotFound, PersistError, ValidationError
from .record_lock import record_lock
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".yaml"

TaskMutator = Callable[[Task], object]
TaskPredicate = Callable[[Task], bool]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class TaskFilter:
    """
    Listing predicate.

    - statuses: allowed statuses (default: pending only)
    - project / tag: exact match
    - text: case-insensitive substring of the description
    """

    statuses: frozenset[TaskStatus] = frozenset({TaskStatus.PENDING})
    project: str | None = None
    tag: str | None = None
    text: str | None = None

    def __call__(self, task: Task) -> bool:
        if task.status not in self.statuses:
            return False
        if self.project is not None and task.project != self.project:
            return False
        if self.tag is not None and self.tag not in task.tags:
            return False
        if self.text and self.text.lower() not in task.description.lower():
            return False
        return True


@dataclass(slots=True)
class TaskListing:
    tasks: list[Task] = field(default_factory=list)
    errors: list[CorruptRecord] = field(default_factory=list)


class TaskStore:
    """
    Directory-backed task store: one YAML document per task, `<id>.yaml`.

    Durability:
    - every write goes to a temp file in the same directory, is fsync'ed,
      then os.replace()'d over the record (a crash leaves the old version)
    - the previous version is kept in `<id>.yaml.1 .. .N` (N = rotate)

    Concurrency:
    - update/delete hold an exclusive per-record lock (`.<id>.lock`)
    - listing takes no lock; it sees each record either before or after a write
    """

    def __init__(
        self,
        root: str | Path,
        *,
        lock_timeout: float = 10.0,
        poll_interval: float = 0.05,
        rotate: int = 3,
        create_dir: bool = True,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self._root = Path(root)
        if create_dir:
            self._root.mkdir(parents=True, exist_ok=True)
        elif not self._root.is_dir():
            raise PersistError(f"task directory does not exist: {self._root}")

        self._lock_timeout = float(lock_timeout)
        self._poll_interval = float(poll_interval)
        self._rotate = max(0, int(rotate))
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_id

        logger.info("TaskStore ready dir=%s total=%s", self._root, self.count_tasks())

    @property
    def root(self) -> Path:
        return self._root

    def close(self) -> None:
        """Compatibility hook for shutdown (no open handles between calls)."""
        return

    # ---- low-level helpers ----

    def _record_path(self, task_id: str) -> Path:
        if not task_id or "/" in task_id or os.sep in task_id or task_id.startswith("."):
            raise NotFound(task_id)
        return self._root / f"{task_id}{RECORD_SUFFIX}"

    def _lock_path(self, task_id: str) -> Path:
        return self._root / f".{task_id}.lock"

    def _backup_path(self, task_id: str, n: int) -> Path:
        return self._root / f"{task_id}{RECORD_SUFFIX}.{n}"

    def _read(self, path: Path, task_id: str) -> Task:
        try:
            raw = path.read_text("utf-8")
        except FileNotFoundError:
            raise NotFound(task_id) from None
        except OSError as e:
            raise CorruptRecord(path, f"unreadable: {e}") from e
        except UnicodeDecodeError as e:
            raise CorruptRecord(path, "not valid UTF-8") from e

        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise CorruptRecord(path, f"invalid YAML: {e}") from e

        try:
            task = Task.from_record(data)
        except ValidationError as e:
            raise CorruptRecord(path, str(e)) from e

        if task.id != task_id:
            raise CorruptRecord(path, f"record id {task.id!r} does not match file name")
        return task

    def _write_atomic(self, path: Path, task: Task) -> None:
        text = yaml.safe_dump(task.to_record(), sort_keys=False, allow_unicode=True)
        tmp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._root,
                prefix=f".{task.id}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise PersistError(f"failed to write task {task.id} to {path}: {e}") from e
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
        logger.debug("Task written id=%s status=%s", task.id, task.status.value)

    def _rotate_backups(self, task_id: str, path: Path) -> None:
        if self._rotate <= 0 or not path.exists():
            return
        try:
            for n in range(self._rotate - 1, 0, -1):
                older = self._backup_path(task_id, n)
                if older.exists():
                    os.replace(older, self._backup_path(task_id, n + 1))
            shutil.copy2(path, self._backup_path(task_id, 1))
        except OSError as e:
            raise PersistError(f"failed to rotate backups for task {task_id}: {e}") from e

    # ---- public API ----

    def count_tasks(self) -> int:
        return sum(1 for _ in self._root.glob(f"*{RECORD_SUFFIX}"))

    def task_ids(self) -> list[str]:
        return sorted(p.stem for p in self._root.glob(f"*{RECORD_SUFFIX}"))

    def create(self, task: Task) -> Task:
        """
        Persist a new task under a freshly generated id.

        The passed task is not modified; the stored copy is returned.
        """
        now = self._clock()
        new = task.copy()
        new.id = self._id_factory()
        new.created_at = now
        new.modified_at = now
        new.validate()

        self._write_atomic(self._record_path(new.id), new)
        logger.debug("Task created id=%s project=%s", new.id, new.project)
        return new

    def load(self, task_id: str) -> Task:
        return self._read(self._record_path(task_id), task_id)

    def update(self, task_id: str, mutator: TaskMutator) -> Task:
        """
        Locked read-modify-write of one record.

        `mutator` receives a working copy and edits it in place. If it raises,
        or the result fails validation, or the write fails, the stored record
        stays exactly as it was.
        """
        path = self._record_path(task_id)
        if not path.exists():
            raise NotFound(task_id)

        with record_lock(
            self._lock_path(task_id),
            task_id=task_id,
            timeout=self._lock_timeout,
            poll_interval=self._poll_interval,
        ):
            current = self._read(path, task_id)
            working = current.copy()
            mutator(working)

            if working.id != current.id:
                raise ValidationError(f"task id is immutable ({current.id} -> {working.id})")
            working.created_at = current.created_at
            working.modified_at = self._clock()
            working.validate()

            self._rotate_backups(task_id, path)
            self._write_atomic(path, working)
            return working

    def delete(self, task_id: str, *, hard: bool = False) -> Task | None:
        """
        Soft delete flips status to deleted (returns the updated task).
        Hard delete removes the record and its backups (returns None).
        The sidecar lock file stays: a waiter may already hold it open.
        """
        if not hard:
            now = self._clock()
            return self.update(task_id, lambda t: t.set_status(TaskStatus.DELETED, now=now))

        path = self._record_path(task_id)
        if not path.exists():
            raise NotFound(task_id)

        lock_path = self._lock_path(task_id)
        with record_lock(
            lock_path,
            task_id=task_id,
            timeout=self._lock_timeout,
            poll_interval=self._poll_interval,
        ):
            try:
                path.unlink()
            except FileNotFoundError:
                raise NotFound(task_id) from None
            except OSError as e:
                raise PersistError(f"failed to delete task {task_id}: {e}") from e

            for n in range(1, self._rotate + 1):
                with contextlib.suppress(FileNotFoundError):
                    self._backup_path(task_id, n).unlink()

        logger.info("Task hard-deleted id=%s", task_id)
        return None

    def list(self, predicate: TaskPredicate | None = None) -> TaskListing:
        """
        Best-effort snapshot of all records.

        Corrupt records are reported in `listing.errors` and logged; records
        removed while scanning are skipped.
        """
        listing = TaskListing()
        for path in sorted(self._root.glob(f"*{RECORD_SUFFIX}")):
            task_id = path.stem
            try:
                task = self._read(path, task_id)
            except NotFound:
                logger.debug("Task vanished during listing id=%s", task_id)
                continue
            except CorruptRecord as e:
                logger.warning("Skipping corrupt task record %s: %s", path, e.reason)
                listing.errors.append(e)
                continue

            if predicate is None or predicate(task):
                listing.tasks.append(task)
        return listing

    def resolve_id(self, fragment: str) -> str:
        """
        Map a full id or a unique id fragment to a full id.

        Raises NotFound if nothing matches, ValidationError if ambiguous.
        """
        fragment = (fragment or "").strip()
        if not fragment:
            raise NotFound(fragment)
        if self._root.joinpath(f"{fragment}{RECORD_SUFFIX}").is_file():
            return fragment

        matches = [tid for tid in self.task_ids() if fragment in tid]
        if not matches:
            raise NotFound(fragment)
        if len(matches) > 1:
            raise ValidationError(
                f"id fragment {fragment!r} is ambiguous ({len(matches)} matches)"
            )
        return matches[0]

