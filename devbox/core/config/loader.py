"""
Configuration loader — reads devbox.yml into a SetupConfig.

The file is optional: when none is found by walking up from the
working directory, the built-in defaults are used. An explicitly
requested file that is missing or malformed is an error.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from devbox.core.models.setup import SetupConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "devbox.yml"

# Environment override for the profile path
PROFILE_ENV_VAR = "DEVBOX_PROFILE"


class ConfigError(Exception):
    """Raised when devbox configuration is invalid or missing."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for devbox.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to devbox.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_config(path: Path | None = None) -> SetupConfig:
    """Load and validate the setup configuration.

    Args:
        path: Explicit path to devbox.yml. If None, searches upward and
            falls back to defaults when nothing is found.

    Returns:
        Validated SetupConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found, using defaults", CONFIG_FILE)
            return _apply_env(SetupConfig())
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading setup config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "devbox" key or be flat
    setup_data = data.get("devbox", data)

    try:
        config = SetupConfig.model_validate(setup_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid devbox configuration: {e}") from e

    logger.info("Loaded config from %s with %d packages", path, len(config.packages))
    return _apply_env(config)


def _apply_env(config: SetupConfig) -> SetupConfig:
    profile = os.environ.get(PROFILE_ENV_VAR)
    if profile:
        config = config.model_copy(update={"profile": profile})
    return config


def profile_path(config: SetupConfig) -> Path:
    """The shell profile the config points at, with ``~`` expanded."""
    return Path(config.profile).expanduser()
