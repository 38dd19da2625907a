"""
Mock adapter — fake package manager for tests and ``--mock`` runs.

Records every command it is asked to run and returns success unless
told otherwise. Program presence (``which``) is configurable so the
"already installed" path can be exercised.
"""

from __future__ import annotations

from collections.abc import Iterable

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.core.models.action import Action, Receipt


class MockAdapter(Adapter):
    """Universal mock adapter.

    By default every command succeeds. Failures can be configured per
    action ID or per command prefix (e.g. ``["brew", "install", "ruby"]``).
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        installed: Iterable[str] = (),
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._installed = set(installed)
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._failing_prefixes: list[tuple[list[str], str]] = []
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    @property
    def commands(self) -> list[str]:
        """Executed commands as display strings, in order."""
        return [ctx.action.display for ctx in self._call_log]

    def which(self, program: str) -> str | None:
        if program in self._installed:
            return f"/usr/local/bin/{program}"
        return None

    def mark_installed(self, program: str) -> None:
        self._installed.add(program)

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            metadata={"return_code": 1},
        )

    def fail_command(self, prefix: list[str], error: str = "Mock failure") -> None:
        """Configure every command starting with ``prefix`` to fail."""
        self._failing_prefixes.append((prefix, error))

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)
        action = context.action

        if action.id in self._responses:
            return self._responses[action.id]

        error = self._prefix_failure(action)
        if error is not None:
            return Receipt.failure(
                adapter=self._name,
                action_id=action.id,
                error=error,
                metadata={"mock": True, "command": action.display, "return_code": 1},
            )

        return Receipt.success(
            adapter=self._name,
            action_id=action.id,
            output=self._default_output,
            metadata={"mock": True, "command": action.display, "return_code": 0},
        )

    def _prefix_failure(self, action: Action) -> str | None:
        if isinstance(action.command, str):
            return None
        for prefix, error in self._failing_prefixes:
            if action.command[: len(prefix)] == prefix:
                return error
        return None

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
        self._failing_prefixes.clear()
