# src/taskline/tasks/record_lock.py

from __future__ import annotations

import fcntl
import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .errors import LockTimeout

logger = logging.getLogger(__name__)


@contextmanager
def record_lock(
    lock_path: str | Path,
    *,
    task_id: str,
    timeout: float,
    poll_interval: float = 0.05,
) -> Iterator[None]:
    """
    Exclusive advisory lock on a per-record sidecar file.

    - flock() on a dedicated lock file, so atomic renames of the record itself
      never swap the locked inode away
    - non-blocking attempts polled until `timeout`, then LockTimeout
    - always unlocked and closed on exit, whatever happened inside the block

    Locks belong to the open file description: two record_lock() calls in the
    same process exclude each other just like two processes do.
    """
    path = Path(lock_path)
    fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o600)
    try:
        deadline = time.monotonic() + max(0.0, float(timeout))
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    logger.warning("Lock timeout task=%s after %.2fs", task_id, timeout)
                    raise LockTimeout(task_id, timeout) from None
                time.sleep(poll_interval)

        logger.debug("Lock acquired task=%s", task_id)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Lock released task=%s", task_id)
    finally:
        os.close(fd)
