"""Host detection — devbox only provisions macOS."""

from __future__ import annotations

import platform
import re

_DARWIN = re.compile(r"^[Dd]arwin")

SKIP_MESSAGE = "Skipping this does not look to be OSX variant..."


def current_system() -> str:
    """Kernel name as ``uname`` reports it (``Darwin``, ``Linux``, ...)."""
    return platform.system()


def is_supported_os(system: str | None = None) -> bool:
    return bool(_DARWIN.match(current_system() if system is None else system))
