# src/taskline/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- runs one command given on the command line (`taskline add Buy milk prio:high`), or
- starts a small console loop reading "/command args" lines.
"""

from __future__ import annotations

import logging
import sys

from ..config import get_settings
from ..logging_setup import setup_logging
from ..tasks.errors import TasklineError
from .bootstrap import create_initial_state
from .commands import registry

logger = logging.getLogger(__name__)


def run_console_loop(state) -> None:
    logger.info("Console started namespace=%s", getattr(state.settings, "namespace", "-"))
    print("Type /help for commands, /exit to quit.")

    while True:
        try:
            line = input("taskline> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue
        if line.lower() in ("/exit", "/quit"):
            break
        if not line.startswith("/"):
            line = "/" + line

        reply = registry.handle(state, line)
        if reply is not None:
            print(reply)

    logger.info("Console finished.")


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    try:
        state = create_initial_state(settings=settings)
    except TasklineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    args = sys.argv[1:] if argv is None else argv
    if not args:
        run_console_loop(state)
        return 0

    try:
        reply = registry.dispatch(state, "/" + " ".join(args))
    except TasklineError as e:
        logger.info("Command failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if reply is not None:
        print(reply)
    return 0


if __name__ == "__main__":
    sys.exit(main())
