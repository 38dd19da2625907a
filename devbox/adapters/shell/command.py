"""
Shell command adapter — run external commands for real.

List commands are executed directly; string commands go through
``/bin/sh`` so installer one-liners like ``$(curl ...)`` expand.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time

from devbox.adapters.base import Adapter, ExecutionContext
from devbox.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Captured output kept on a receipt
_OUTPUT_TAIL = 2000


class ShellCommandAdapter(Adapter):
    """Execute commands and capture output.

    No timeout is applied unless the context carries one: a hung
    command hangs the run.
    """

    @property
    def name(self) -> str:
        return "shell"

    def execute(self, context: ExecutionContext) -> Receipt:
        action = context.action
        command = action.command
        use_shell = isinstance(command, str)

        env = None
        if context.env:
            env = os.environ.copy()
            env.update(context.env)

        logger.debug("Executing: %s", action.display)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                shell=use_shell,
                env=env,
                capture_output=True,
                text=True,
                timeout=context.timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command timed out after {context.timeout}s",
                metadata={"command": action.display, "timeout": context.timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command execution error: {e}",
                metadata={"command": action.display},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout.strip()[-_OUTPUT_TAIL:]
        stderr = result.stderr.strip()[-_OUTPUT_TAIL:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={
                    "command": action.display,
                    "return_code": result.returncode,
                    "stderr": stderr,
                },
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": action.display,
                "return_code": result.returncode,
                "stdout": output,
            },
        )
