"""
Config check use case — validate devbox.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.config.loader import ConfigError, find_config_file, load_config, profile_path
from devbox.core.models.setup import SetupConfig
from devbox.core.services.environments import environments_for, find_collisions


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: SetupConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "package_count": len(self.config.packages) if self.config else 0,
            "tap_count": len(self.config.taps) if self.config else 0,
            "profile": self.config.profile if self.config else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the setup configuration and report issues.

    Args:
        config_path: Optional explicit path to devbox.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    result.config_path = config_path

    try:
        config = load_config(config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    if config_path is None:
        result.warnings.append("No devbox.yml found — using built-in defaults.")

    # Duplicate package names
    names = [p.name for p in config.packages]
    dupes = {n for n in names if names.count(n) > 1}
    if dupes:
        result.errors.append(f"Duplicate packages: {', '.join(sorted(dupes))}")

    # Duplicate taps
    tap_dupes = {t for t in config.taps if config.taps.count(t) > 1}
    if tap_dupes:
        result.warnings.append(f"Duplicate taps: {', '.join(sorted(tap_dupes))}")

    if not config.packages:
        result.warnings.append("No packages defined. Only Homebrew itself will be set up.")

    # Profile blocks must not delete each other's lines
    blocks = [env.block for env in environments_for(config, include_pyspark=True)]
    for remover, owner, line in find_collisions(blocks):
        result.errors.append(f"Block '{remover}' would remove a line of block '{owner}': {line}")

    path = profile_path(config)
    if not path.exists():
        result.warnings.append(f"Profile {path} does not exist yet; it will be created.")

    result.valid = len(result.errors) == 0
    return result
