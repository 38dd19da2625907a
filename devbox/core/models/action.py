"""
Action and Receipt models — the execution contract.

Actions represent requested commands. Receipts represent results.
The provisioner sends Actions to an adapter and gets Receipts back.
Adapters never raise; the provisioner decides what a failure means.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested external command.

    ``command`` is either an argv list (run directly) or a string
    (run through the shell, needed for ``$(curl ...)`` style installers).
    """

    id: str                         # unique action identifier
    name: str = ""                  # human-readable name
    command: list[str] | str = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)   # extra environment for the command

    @property
    def display(self) -> str:
        """The command as a user would type it."""
        if isinstance(self.command, str):
            return self.command
        return " ".join(self.command)


class Receipt(BaseModel):
    """Result of an adapter execution.

    Receipts capture the full outcome of an action, including the
    exit status (``metadata["return_code"]``) and captured output.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the action failed."""
        return self.status == "failed"

    @property
    def return_code(self) -> int | None:
        return self.metadata.get("return_code")

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            output=reason,
            **kwargs,
        )
