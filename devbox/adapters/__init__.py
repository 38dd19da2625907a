"""Adapters — command runners for external tools.

Public re-exports for convenient access.
"""

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.adapters.mock import MockAdapter
from devbox.adapters.shell.command import ShellCommandAdapter

__all__ = [
    "Adapter",
    "ExecutionContext",
    "MockAdapter",
    "ShellCommandAdapter",
]
