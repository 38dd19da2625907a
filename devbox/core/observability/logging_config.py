"""
Logging setup for devbox.

Two sinks matter during a bootstrap:

- the console, where progress already goes through ``click.echo`` so
  log records stay terse unless asked for;
- the run log (``logs/error.log``), which collects ERROR records from
  one run. It is attached and detached by ``persistence.run_log``.

Console level precedence:
    --debug  >  --verbose  >  --quiet  >  DEVBOX_LOG_LEVEL  >  WARNING

``DEVBOX_LOG_FILE`` / ``DEVBOX_LOG_FILE_LEVEL`` add a persistent file
sink on top, for debugging a machine after the fact.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

LEVEL_ENV_VAR = "DEVBOX_LOG_LEVEL"
FILE_ENV_VAR = "DEVBOX_LOG_FILE"
FILE_LEVEL_ENV_VAR = "DEVBOX_LOG_FILE_LEVEL"

# Console: plain at WARNING, logger name at INFO, source line at DEBUG
_CONSOLE_FORMATS = {
    logging.DEBUG: "%(levelname)s %(name)s:%(lineno)d %(message)s",
    logging.INFO: "[%(name)s] %(message)s",
    logging.WARNING: "devbox: %(message)s",
}

# Files follow the date line the run log starts with
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    environ = os.environ if environ is None else environ
    return environ.get(LEVEL_ENV_VAR, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root handlers with a stderr console (and optional file).

    Args:
        level: Console level name.
        log_file: Extra file sink (``DEVBOX_LOG_FILE``).
        log_file_level: Level for ``log_file``; defaults to ``level``.
    """
    numeric_level = _parse_level(level)
    fmt = _console_format(numeric_level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(numeric_level)

    if log_file:
        add_file_handler(log_file, log_file_level or level)

    # A broken stderr must not abort provisioning
    logging.raiseExceptions = False


def add_file_handler(log_file: str | Path, level: str = "ERROR") -> logging.Handler:
    """Append records at ``level`` and above to ``log_file``.

    The root level is lowered if it would filter those records out;
    ``remove_file_handler`` puts it back.
    """
    file_level = _parse_level(level)

    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setLevel(file_level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(min(root.level or logging.WARNING, file_level))
    return handler


def remove_file_handler(handler: logging.Handler, root_level: int) -> None:
    """Detach ``handler``, close it, and restore the root level."""
    root = logging.getLogger()
    root.removeHandler(handler)
    handler.close()
    root.setLevel(root_level)


def _console_format(level: int) -> str:
    if level <= logging.DEBUG:
        return _CONSOLE_FORMATS[logging.DEBUG]
    if level <= logging.INFO:
        return _CONSOLE_FORMATS[logging.INFO]
    return _CONSOLE_FORMATS[logging.WARNING]


def _parse_level(level: str | None) -> int:
    """Level name to number; unknown names mean WARNING."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
