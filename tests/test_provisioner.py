"""
Tests for the provisioner — plan order, install detection, fail-fast.
"""

import pytest

from devbox.adapters.mock import MockAdapter
from devbox.core.engine.provisioner import (
    ProvisionError,
    Provisioner,
    build_plan,
)
from devbox.core.models.action import Receipt
from devbox.core.models.setup import DEFAULT_TRUSTED_DIRECTORY, PackageSpec, SetupConfig


def _small_config(**overrides) -> SetupConfig:
    data = {
        "taps": ["homebrew/cask-versions", "homebrew/cask"],
        "packages": ["ruby", {"name": "temurin11", "flavor": "cask"}],
    }
    data.update(overrides)
    return SetupConfig.model_validate(data)


# ── Planning ─────────────────────────────────────────────────────────


class TestBuildPlan:
    def test_step_order(self):
        steps = build_plan(SetupConfig())
        names = [s.name for s in steps]
        assert names[:5] == [
            "ensure-safe-directory",
            "install-package-manager",
            "disable-analytics",
            "add-taps",
            "update",
        ]
        assert names[-1] == "cleanup"
        assert names[5:-1] == [
            "package:docker",
            "package:ruby",
            "package:perl",
            "package:python",
            "package:lampepfl/brew/dotty",
            "package:sbt",
            "package:apache-spark",
            "package:git",
            "package:curl",
            "package:temurin11",
        ]

    def test_casks_after_formulae(self):
        config = SetupConfig.model_validate(
            {"packages": [{"name": "temurin11", "flavor": "cask"}, "git"]}
        )
        names = [s.name for s in build_plan(config)]
        assert names.index("package:git") < names.index("package:temurin11")

    def test_formula_install_upgrade_relink(self):
        step = next(s for s in build_plan(_small_config()) if s.name == "package:ruby")
        assert [a.display for a in step.actions] == [
            "brew install ruby",
            "brew upgrade ruby",
            "brew unlink ruby",
            "brew link ruby",
        ]

    def test_cask_uses_cask_variant(self):
        step = next(s for s in build_plan(_small_config()) if s.name == "package:temurin11")
        assert [a.display for a in step.actions] == [
            "brew install temurin11 --cask",
            "brew upgrade temurin11 --cask",
            "brew unlink temurin11",
            "brew link temurin11",
        ]

    def test_relink_can_be_disabled(self):
        config = SetupConfig(packages=[PackageSpec(name="git", relink=False)])
        step = next(s for s in build_plan(config) if s.name == "package:git")
        assert [a.display for a in step.actions] == ["brew install git", "brew upgrade git"]

    def test_installer_guarded_by_presence(self):
        step = next(s for s in build_plan(SetupConfig()) if s.name == "install-package-manager")
        assert step.unless_present == "brew"
        assert isinstance(step.actions[0].command, str)
        assert "install.sh" in step.actions[0].command
        assert step.actions[0].env == {"NONINTERACTIVE": "1"}

    def test_safe_directory_is_idempotent_git_call(self):
        step = build_plan(SetupConfig())[0]
        command = step.actions[0].command
        assert command[:3] == ["git", "config", "--global"]
        assert "--replace-all" in command
        assert command[-2:] == [DEFAULT_TRUSTED_DIRECTORY, DEFAULT_TRUSTED_DIRECTORY]

    def test_plan_is_pure(self):
        adapter = MockAdapter()
        Provisioner(adapter, SetupConfig()).plan()
        assert adapter.call_count == 0


# ── Execution ────────────────────────────────────────────────────────


class TestProvisionerRun:
    def test_runs_every_command_in_order(self, brew: MockAdapter):
        report = Provisioner(brew, _small_config()).run()
        assert report.status == "ok"
        assert brew.commands == [
            " ".join(["git", "config", "--global", "--replace-all", "--fixed-value",
                      "safe.directory", DEFAULT_TRUSTED_DIRECTORY, DEFAULT_TRUSTED_DIRECTORY]),
            "brew analytics off",
            "brew tap homebrew/cask-versions",
            "brew tap homebrew/cask",
            "brew update --auto-update",
            "brew install ruby",
            "brew upgrade ruby",
            "brew unlink ruby",
            "brew link ruby",
            "brew install temurin11 --cask",
            "brew upgrade temurin11 --cask",
            "brew unlink temurin11",
            "brew link temurin11",
            "brew cleanup --prune-prefix",
        ]

    def test_brew_present_skips_installer(self, brew: MockAdapter):
        report = Provisioner(brew, _small_config()).run()
        step = next(s for s in report.steps if s.step == "install-package-manager")
        assert step.status == "skipped"
        assert report.skipped == 1
        assert not any("install.sh" in c for c in brew.commands)

    def test_brew_absent_runs_installer(self):
        adapter = MockAdapter(installed=[])
        Provisioner(adapter, _small_config()).run()
        assert "install.sh" in adapter.commands[1]
        assert adapter.commands[1].startswith("/bin/bash -c")
        assert adapter.call_log[1].env == {"NONINTERACTIVE": "1"}

    def test_already_installed_package_still_upgraded_and_relinked(self, brew: MockAdapter):
        # Homebrew answers "already installed" with exit 0
        brew.set_response(
            "package:ruby:install",
            Receipt.success(
                adapter="mock",
                action_id="package:ruby:install",
                output="Warning: ruby 3.3.0 is already installed and up-to-date.",
                metadata={"return_code": 0},
            ),
        )
        report = Provisioner(brew, _small_config()).run()
        ruby = next(s for s in report.steps if s.step == "package:ruby")
        assert ruby.status == "ok"
        assert [r.action_id for r in ruby.receipts] == [
            "package:ruby:install",
            "package:ruby:upgrade",
            "package:ruby:unlink",
            "package:ruby:link",
        ]

    def test_failure_stops_remaining_steps(self, brew: MockAdapter):
        brew.fail_command(["brew", "upgrade", "ruby"], error="Error: upgrade blew up")
        with pytest.raises(ProvisionError) as exc_info:
            Provisioner(brew, _small_config()).run()

        err = exc_info.value
        assert err.step == "package:ruby"
        assert "upgrade blew up" in str(err)
        assert brew.commands[-1] == "brew upgrade ruby"
        assert "brew unlink ruby" not in brew.commands
        assert "brew cleanup --prune-prefix" not in brew.commands
        assert err.report.status == "partial"
        assert err.report.failed == 1

    def test_failed_installer_is_not_swallowed(self):
        adapter = MockAdapter(installed=[])
        adapter.set_failure("install-package-manager", error="curl: (6) Could not resolve host")
        with pytest.raises(ProvisionError) as exc_info:
            Provisioner(adapter, _small_config()).run()
        assert exc_info.value.step == "install-package-manager"
        assert "brew analytics off" not in adapter.commands

    def test_rerun_is_identical(self, brew: MockAdapter):
        Provisioner(brew, _small_config()).run()
        first = list(brew.commands)
        brew.reset()
        Provisioner(brew, _small_config()).run()
        assert brew.commands == first

    def test_announces_progress(self, brew: MockAdapter):
        lines: list[str] = []
        Provisioner(brew, _small_config(), announce=lines.append).run()
        assert lines[0] == "-> Adding Homebrew core to the trusted config"
        assert "  -> brew install ruby" in lines

    def test_timeout_passed_to_adapter(self, brew: MockAdapter):
        Provisioner(brew, _small_config(command_timeout=30)).run()
        assert {ctx.timeout for ctx in brew.call_log} == {30}

    def test_report_to_dict(self, brew: MockAdapter):
        data = Provisioner(brew, _small_config()).run().to_dict()
        assert data["status"] == "ok"
        assert data["total"] == data["succeeded"] + data["skipped"]
        assert data["steps"][0]["step"] == "ensure-safe-directory"
