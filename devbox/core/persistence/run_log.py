"""
Run log — the per-run error log.

Each bootstrap run truncates the log, stamps it with the current
date, and routes ERROR records into it for the duration of the run.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from devbox.core.observability.logging_config import add_file_handler, remove_file_handler

logger = logging.getLogger(__name__)


def stamp_run_log(path: Path, now: datetime | None = None) -> None:
    """Replace the log contents with a single date line."""
    stamp = (now or datetime.now().astimezone()).strftime("%a %b %d %H:%M:%S %Z %Y")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(stamp + "\n", encoding="utf-8")


@contextmanager
def run_log(path: Path, level: str = "ERROR") -> Iterator[Path]:
    """Stamp ``path`` and capture log records at ``level`` into it.

    The root logger is left as it was found once the run ends.
    """
    stamp_run_log(path)
    root_level = logging.getLogger().level
    handler = add_file_handler(path, level)
    logger.debug("Run log at %s", path)
    try:
        yield path
    finally:
        remove_file_handler(handler, root_level)
