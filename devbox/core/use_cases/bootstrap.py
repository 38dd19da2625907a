"""
Bootstrap use case — provision the machine, then patch the profile.

This is the top-level flow behind ``devbox`` / ``devbox run``:

    OS guard → run log → Provisioner → profile blocks → chmod → reload

Any failed command stops the flow where it is; the failure is
recorded on the result together with the partial report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from devbox.adapters.base import Adapter
from devbox.core.config.loader import profile_path
from devbox.core.engine.provisioner import (
    Announce,
    ProvisionError,
    ProvisionReport,
    Provisioner,
    StepResult,
)
from devbox.core.models.action import Action
from devbox.core.models.setup import SetupConfig
from devbox.core.persistence.run_log import run_log
from devbox.core.services.environments import (
    chmod_action,
    environments_for,
    reload_action,
)
from devbox.core.services.host import SKIP_MESSAGE, current_system, is_supported_os
from devbox.core.services.profile_editor import ProfileEditor, ProfileError

logger = logging.getLogger(__name__)


@dataclass
class BootstrapResult:
    """Result of a bootstrap run."""

    system: str = ""
    skipped: bool = False
    message: str = ""
    profile: Path | None = None
    report: ProvisionReport = field(default_factory=ProvisionReport)
    blocks_applied: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {
            "system": self.system,
            "skipped": self.skipped,
            "message": self.message,
        }
        if self.error:
            result["error"] = self.error
        if self.skipped:
            return result

        result["profile"] = str(self.profile) if self.profile else None
        result["blocks_applied"] = self.blocks_applied
        result["report"] = self.report.to_dict()
        return result


def _run_checked(
    adapter: Adapter,
    action: Action,
    step: StepResult,
    report: ProvisionReport,
    config: SetupConfig,
    announce: Announce,
) -> None:
    announce(f"  -> {action.display}")
    receipt = adapter.run(action, timeout=config.command_timeout)
    step.receipts.append(receipt)
    if receipt.failed:
        step.status = "failed"
        logger.error("%s failed: %s", action.id, receipt.error)
        raise ProvisionError(step.step, receipt, report)


def configure_profile(
    adapter: Adapter,
    config: SetupConfig,
    report: ProvisionReport,
    *,
    profile: Path | None = None,
    include_pyspark: bool | None = None,
    announce: Announce | None = None,
) -> list[str]:
    """Apply every environment block, run their side commands, reload.

    Commands that precede a block run before the editing session opens;
    chmod runs after it closes, so the profile is fully written first.

    Returns:
        Names of the blocks applied, in order.

    Raises:
        ProvisionError: A side command failed.
        ProfileError: The profile could not be read or written.
    """
    announce = announce or (lambda message: None)
    path = profile or profile_path(config)
    envs = environments_for(config, include_pyspark)

    # ── Commands that must precede the edits ─────────────────────
    for env in envs:
        if env.commands:
            step = StepResult(step=f"profile:{env.name}")
            report.steps.append(step)
            announce(f"-> Preparing {env.name}")
            for action in env.commands:
                _run_checked(adapter, action, step, report, config, announce)

    # ── Profile edits (one session, saved on exit) ───────────────
    applied = []
    with ProfileEditor.open(path) as editor:
        for env in envs:
            announce(f"-> Configuring {env.name} in {path}")
            editor.apply(env.block)
            applied.append(env.name)

    # ── Side effects after the text edit ─────────────────────────
    for env in envs:
        if env.executable_dir is None:
            continue
        action = chmod_action(env.executable_dir)
        if action is None:
            continue
        step = StepResult(step=f"chmod:{env.name}")
        report.steps.append(step)
        _run_checked(adapter, action, step, report, config, announce)

    # ── Reload ───────────────────────────────────────────────────
    step = StepResult(step="reload-profile")
    report.steps.append(step)
    announce(f"-> Reloading {path}")
    _run_checked(adapter, reload_action(config, path), step, report, config, announce)

    return applied


def check_host(system: str | None = None) -> BootstrapResult | None:
    """Skipped result for a non-macOS host, or None when the host is supported.

    Needs no configuration, so callers can run it before loading one.
    """
    system = system if system is not None else current_system()
    if is_supported_os(system):
        return None
    logger.info("Host system %r is not macOS, nothing to do", system)
    return BootstrapResult(system=system, skipped=True, message=SKIP_MESSAGE)


def run_bootstrap(
    config: SetupConfig,
    adapter: Adapter,
    *,
    system: str | None = None,
    profile: Path | None = None,
    include_pyspark: bool | None = None,
    provision: bool = True,
    announce: Announce | None = None,
) -> BootstrapResult:
    """Run the whole bootstrap.

    Args:
        config: Setup configuration.
        adapter: Command runner (ShellCommandAdapter, or MockAdapter).
        system: OS identifier override (default: the running kernel).
        profile: Profile path override (default: ``config.profile``).
        include_pyspark: Force the PySpark block on/off (default: config).
        provision: If False, only the profile stage runs.
        announce: Callback for progress lines.

    Returns:
        BootstrapResult. On a non-macOS host nothing is touched and the
        result is marked skipped.
    """
    system = system if system is not None else current_system()

    # ── OS guard ─────────────────────────────────────────────────
    skipped = check_host(system)
    if skipped is not None:
        return skipped

    result = BootstrapResult(system=system)
    result.profile = profile or profile_path(config)

    with run_log(Path(config.log_file)):
        try:
            if provision:
                result.report = Provisioner(adapter, config, announce).run()
            result.blocks_applied = configure_profile(
                adapter,
                config,
                result.report,
                profile=result.profile,
                include_pyspark=include_pyspark,
                announce=announce,
            )
        except ProvisionError as e:
            result.report = e.report
            result.error = str(e)
        except ProfileError as e:
            logger.error("%s", e)
            result.error = str(e)

    if result.ok:
        result.message = f"Bootstrap complete — restart your shell or run: source {result.profile}"
    return result
