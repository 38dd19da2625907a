"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from devbox.adapters.mock import MockAdapter
from devbox.core.models.setup import SetupConfig


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch):
    """Keep the developer's own profile and log settings out of tests."""
    for var in ("DEVBOX_PROFILE", "DEVBOX_LOG_LEVEL", "DEVBOX_LOG_FILE", "DEVBOX_LOG_FILE_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if not type(handler).__module__.startswith("_pytest"):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def profile_file(tmp_path: Path) -> Path:
    """Path of an (initially absent) shell profile."""
    return tmp_path / ".zshrc"


@pytest.fixture
def setup_config(tmp_path: Path, profile_file: Path) -> SetupConfig:
    """Default config pointed at temp profile, log, and Spark paths."""
    return SetupConfig(
        profile=str(profile_file),
        log_file=str(tmp_path / "logs" / "error.log"),
        prefix=str(tmp_path / "usr" / "local"),
    )


@pytest.fixture
def brew() -> MockAdapter:
    """Fake package manager with Homebrew already installed."""
    return MockAdapter(installed=["brew"])
