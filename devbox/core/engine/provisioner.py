"""
Provisioner — ordered package-manager setup.

Flow:
    config → build plan (ordered steps of actions) → execute → report

The plan is pure data; nothing runs until ``Provisioner.run``. Execution
is fail-fast: the first failed receipt raises ``ProvisionError`` and no
later action is attempted. There is no rollback. Every step is safe to
repeat, so recovering means fixing the cause and running again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from devbox.adapters.base import Adapter
from devbox.core.models.action import Action, Receipt
from devbox.core.models.setup import PackageSpec, SetupConfig

logger = logging.getLogger(__name__)

Announce = Callable[[str], None]


@dataclass
class Step:
    """One named provisioning step."""

    name: str
    title: str
    actions: list[Action] = field(default_factory=list)
    unless_present: str | None = None   # skip when this program is on PATH


@dataclass
class StepResult:
    """Outcome of one step."""

    step: str
    status: str = "ok"              # ok, skipped, failed
    receipts: list[Receipt] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "status": self.status,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class ProvisionReport:
    """Result of running a plan (possibly cut short by a failure)."""

    steps: list[StepResult] = field(default_factory=list)

    @property
    def receipts(self) -> list[Receipt]:
        return [r for s in self.steps for r in s.receipts]

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "steps": [s.to_dict() for s in self.steps],
        }


class ProvisionError(Exception):
    """A provisioning command failed; the remaining steps were not run."""

    def __init__(self, step: str, receipt: Receipt, report: ProvisionReport):
        self.step = step
        self.receipt = receipt
        self.report = report
        command = receipt.metadata.get("command", receipt.action_id)
        super().__init__(f"Step '{step}' failed running `{command}`: {receipt.error}")


# ── Planning ─────────────────────────────────────────────────────


def _brew(config: SetupConfig, *args: str) -> list[str]:
    return [config.brew, *args]


def _package_actions(config: SetupConfig, package: PackageSpec) -> list[Action]:
    """install → upgrade → unlink → link for one package."""
    cask = ["--cask"] if package.is_cask else []
    verbs: list[tuple[str, list[str]]] = [
        ("install", _brew(config, "install", package.name, *cask)),
        ("upgrade", _brew(config, "upgrade", package.name, *cask)),
    ]
    if package.relink:
        verbs.append(("unlink", _brew(config, "unlink", package.name)))
        verbs.append(("link", _brew(config, "link", package.name)))

    return [
        Action(id=f"package:{package.name}:{verb}", name=f"{verb} {package.name}", command=cmd)
        for verb, cmd in verbs
    ]


def build_plan(config: SetupConfig) -> list[Step]:
    """Build the ordered provisioning steps for ``config``."""
    steps = [
        Step(
            name="ensure-safe-directory",
            title="Adding Homebrew core to the trusted config",
            actions=[
                Action(
                    id="ensure-safe-directory",
                    name="git safe.directory",
                    # --replace-all with a fixed value keeps one entry across reruns
                    command=[
                        "git", "config", "--global", "--replace-all", "--fixed-value",
                        "safe.directory", config.trusted_directory, config.trusted_directory,
                    ],
                ),
            ],
        ),
        Step(
            name="install-package-manager",
            title="Checking if Homebrew is installed, installing if not",
            unless_present=config.brew,
            actions=[
                Action(
                    id="install-package-manager",
                    name="Homebrew installer",
                    command=f'/bin/bash -c "$(curl -fsSL {config.install_script_url})"',
                    # install.sh waits for RETURN on a TTY unless NONINTERACTIVE is set
                    env={"NONINTERACTIVE": "1"},
                ),
            ],
        ),
        Step(
            name="disable-analytics",
            title="Disabling brew analytics",
            actions=[
                Action(
                    id="disable-analytics",
                    name="analytics off",
                    command=_brew(config, "analytics", "off"),
                ),
            ],
        ),
        Step(
            name="add-taps",
            title="Adding package taps",
            actions=[
                Action(id=f"tap:{tap}", name=f"tap {tap}", command=_brew(config, "tap", tap))
                for tap in config.taps
            ],
        ),
        Step(
            name="update",
            title="Updating Homebrew",
            actions=[
                Action(id="update", name="update", command=_brew(config, "update", "--auto-update")),
            ],
        ),
    ]

    # Formulae first, then casks, each in declared order
    for package in [*config.formulae, *config.casks]:
        steps.append(
            Step(
                name=f"package:{package.name}",
                title=f"Installing {package.name}" + (" (cask)" if package.is_cask else ""),
                actions=_package_actions(config, package),
            )
        )

    steps.append(
        Step(
            name="cleanup",
            title="Cleaning up Homebrew",
            actions=[
                Action(id="cleanup", name="cleanup", command=_brew(config, "cleanup", "--prune-prefix")),
            ],
        )
    )
    return steps


# ── Execution ────────────────────────────────────────────────────


class Provisioner:
    """Runs the provisioning plan through a command-runner adapter."""

    def __init__(
        self,
        adapter: Adapter,
        config: SetupConfig,
        announce: Announce | None = None,
    ):
        self.adapter = adapter
        self.config = config
        self._announce = announce or (lambda message: None)

    def plan(self) -> list[Step]:
        return build_plan(self.config)

    def run(self) -> ProvisionReport:
        """Execute every step in order.

        Raises:
            ProvisionError: On the first failed command.
        """
        report = ProvisionReport()

        for step in self.plan():
            result = StepResult(step=step.name)
            report.steps.append(result)
            self._announce(f"-> {step.title}")

            if step.unless_present and self.adapter.which(step.unless_present):
                logger.info("%s already present, skipping %s", step.unless_present, step.name)
                result.status = "skipped"
                result.receipts.append(
                    Receipt.skip(
                        adapter=self.adapter.name,
                        action_id=step.name,
                        reason=f"{step.unless_present} already installed",
                    )
                )
                continue

            for action in step.actions:
                self._announce(f"  -> {action.display}")
                receipt = self.adapter.run(action, timeout=self.config.command_timeout)
                result.receipts.append(receipt)

                if receipt.failed:
                    result.status = "failed"
                    logger.error(
                        "Provisioning stopped at %s: %s (exit %s)",
                        action.id, receipt.error, receipt.return_code,
                    )
                    raise ProvisionError(step.name, receipt, report)

        logger.info("Provisioning finished: %d/%d commands ok", report.succeeded, report.total)
        return report
