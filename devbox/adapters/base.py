"""
Adapter base — the command-runner contract.

The provisioner and the profile flow only talk to external tools
through this protocol: run a command with arguments, get back a
Receipt carrying the exit status and captured output. Swapping the
adapter (see MockAdapter) is how tests run against a fake package
manager.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from devbox.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action."""

    action: Action
    timeout: int | None = None
    env: dict[str, str] = Field(default_factory=dict)


class Adapter(ABC):
    """Abstract base class for command runners.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """
        if not context.action.command:
            return False, f"Action '{context.action.id}' has no command"
        return True, ""

    def which(self, program: str) -> str | None:
        """Path of ``program`` on the search path, or None if absent."""
        return shutil.which(program)

    def run(self, action: Action, timeout: int | None = None) -> Receipt:
        """Validate then execute a single action."""
        context = ExecutionContext(action=action, timeout=timeout, env=action.env)
        valid, error = self.validate(context)
        if not valid:
            return Receipt.failure(adapter=self.name, action_id=action.id, error=error)
        return self.execute(context)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
