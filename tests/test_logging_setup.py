# tests/test_logging_setup.py

from __future__ import annotations

import logging

import pytest

from taskline.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("taskline.tasks.task_store", logging.DEBUG, True),
        ("taskline.tasks.record_lock", logging.DEBUG, False),
        ("taskline.tasks.record_lock", logging.WARNING, True),
        ("py.warnings", logging.WARNING, False),
        ("yaml", logging.WARNING, False),
        ("yaml", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_setup_logging_writes_file(tmp_path) -> None:
    root = logging.getLogger()
    saved, saved_level = list(root.handlers), root.level
    try:
        setup_logging(log_dir=tmp_path)
        logging.getLogger("taskline.test").info("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in (tmp_path / "taskline.log").read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
