"""
Tests for CLI commands — run, plan, profile apply, config check.
"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from devbox import __version__
from devbox.core.services.host import SKIP_MESSAGE
from devbox.main import cli


@pytest.fixture
def darwin(monkeypatch):
    """Pretend the host is macOS."""
    monkeypatch.setattr("devbox.core.use_cases.bootstrap.current_system", lambda: "Darwin")


@pytest.fixture
def linux(monkeypatch):
    monkeypatch.setattr("devbox.core.use_cases.bootstrap.current_system", lambda: "Linux")


@pytest.fixture
def devbox_yml(tmp_path: Path) -> Path:
    content = textwrap.dedent(f"""\
        profile: {tmp_path / '.zshrc'}
        log_file: {tmp_path / 'logs' / 'error.log'}
        prefix: {tmp_path / 'usr' / 'local'}
        taps: [homebrew/cask]
        packages:
          - ruby
          - name: temurin11
            flavor: cask
    """)
    path = tmp_path / "devbox.yml"
    path.write_text(content)
    return path


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "bootstrap a macOS developer machine" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestRunCommand:
    def test_no_arguments_on_linux_skips(self, tmp_path: Path, monkeypatch, linux):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, [])
        assert result.exit_code == 0
        assert SKIP_MESSAGE in result.output
        assert not (tmp_path / "logs").exists()

    def test_run_json_on_linux(self, tmp_path: Path, monkeypatch, linux):
        monkeypatch.chdir(tmp_path)
        result = CliRunner().invoke(cli, ["run", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["skipped"] is True

    @pytest.mark.parametrize("args", [["run"], ["profile", "apply"]])
    def test_bad_config_ignored_on_linux(self, tmp_path: Path, linux, args):
        bad = tmp_path / "devbox.yml"
        bad.write_text("packages: [unclosed\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), *args])
        assert result.exit_code == 0
        assert SKIP_MESSAGE in result.output

    def test_mock_run(self, devbox_yml: Path, tmp_path: Path, darwin):
        result = CliRunner().invoke(cli, ["--config", str(devbox_yml), "run", "--mock"])
        assert result.exit_code == 0, result.output
        assert "-> Installing ruby" in result.output
        assert "  -> brew install ruby" in result.output
        assert "✅" in result.output
        assert "# Python Aliases" in (tmp_path / ".zshrc").read_text()

    def test_default_invocation_runs_bootstrap(self, devbox_yml: Path, tmp_path: Path, monkeypatch, darwin):
        # `devbox` alone runs for real; keep it on the mock runner
        from devbox.adapters.mock import MockAdapter

        monkeypatch.setattr("devbox.main._adapter", lambda mock: MockAdapter(installed=["brew"]))
        result = CliRunner().invoke(cli, ["--config", str(devbox_yml)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / ".zshrc").exists()

    def test_failure_exits_1(self, devbox_yml: Path, monkeypatch, darwin):
        from devbox.adapters.mock import MockAdapter

        failing = MockAdapter(installed=["brew"])
        failing.fail_command(["brew", "update"], error="network down")
        monkeypatch.setattr("devbox.main._adapter", lambda mock: failing)

        result = CliRunner().invoke(cli, ["--config", str(devbox_yml), "run"])
        assert result.exit_code == 1
        assert "network down" in result.output
        assert "brew install ruby" not in failing.commands

    def test_profile_override(self, devbox_yml: Path, tmp_path: Path, darwin):
        other = tmp_path / "other_profile"
        result = CliRunner().invoke(
            cli, ["--config", str(devbox_yml), "run", "--mock", "--profile", str(other), "--pyspark"]
        )
        assert result.exit_code == 0, result.output
        assert "PYSPARK_DRIVER_PYTHON" in other.read_text()
        assert not (tmp_path / ".zshrc").exists()

    def test_bad_config_exits_1(self, tmp_path: Path, darwin):
        bad = tmp_path / "devbox.yml"
        bad.write_text("packages: [unclosed\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), "run"])
        assert result.exit_code == 1
        assert "Invalid YAML" in result.output


class TestPlanCommand:
    def test_plan_text(self, devbox_yml: Path):
        result = CliRunner().invoke(cli, ["--config", str(devbox_yml), "plan"])
        assert result.exit_code == 0
        assert "brew install temurin11 --cask" in result.output
        assert "skipped if `brew` is installed" in result.output
        assert "# Spark Path variables" in result.output

    def test_plan_json(self, devbox_yml: Path):
        result = CliRunner().invoke(cli, ["--config", str(devbox_yml), "plan", "--json", "--pyspark"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["steps"][0]["name"] == "ensure-safe-directory"
        assert [b["name"] for b in data["blocks"]] == ["ruby", "python", "spark", "pyspark"]


class TestProfileApply:
    def test_profile_only(self, devbox_yml: Path, tmp_path: Path, darwin):
        result = CliRunner().invoke(
            cli, ["-q", "--config", str(devbox_yml), "profile", "apply", "--mock", "--json"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["blocks_applied"] == ["ruby", "python", "spark"]
        steps = [s["step"] for s in data["report"]["steps"]]
        assert "update" not in steps
        assert steps[-1] == "reload-profile"


class TestConfigCheck:
    def test_valid(self, devbox_yml: Path):
        result = CliRunner().invoke(cli, ["--config", str(devbox_yml), "config", "check"])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "devbox.yml"
        path.write_text("packages: [git, git]\n")
        result = CliRunner().invoke(cli, ["--config", str(path), "config", "check", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["valid"] is False
