"""
Setup models — what gets installed and what goes into the profile.

``SetupConfig`` is loaded from devbox.yml (or built from defaults).
Its defaults are the stock Intel-mac Homebrew layout under
``/usr/local``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_TRUSTED_DIRECTORY = "/usr/local/Homebrew/Library/Taps/homebrew/homebrew-core"
DEFAULT_INSTALL_SCRIPT_URL = (
    "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
)


class PackageSpec(BaseModel):
    """A package to install through the package manager."""

    name: str
    flavor: Literal["formula", "cask"] = "formula"
    relink: bool = True

    @property
    def is_cask(self) -> bool:
        return self.flavor == "cask"


class ProfileBlock(BaseModel):
    """A named region of the shell profile.

    The block is located by its ``marker`` comment. ``stale_patterns``
    are regular expressions for content lines left over from earlier
    runs; they must be narrow enough not to hit other blocks.
    """

    name: str
    marker: str
    stale_patterns: list[str] = Field(default_factory=list)
    lines: list[str] = Field(default_factory=list)

    @field_validator("marker")
    @classmethod
    def _marker_is_comment(cls, v: str) -> str:
        if not v.startswith("#"):
            raise ValueError(f"marker must be a comment line, got {v!r}")
        return v

    @property
    def rendered(self) -> list[str]:
        """Marker followed by content, as written to the profile."""
        return [self.marker, *self.lines]


def _default_packages() -> list[PackageSpec]:
    formulae = [
        "docker",
        "ruby",
        "perl",
        "python",
        "lampepfl/brew/dotty",
        "sbt",
        "apache-spark",
        "git",
        "curl",
    ]
    return [PackageSpec(name=n) for n in formulae] + [
        PackageSpec(name="temurin11", flavor="cask"),
    ]


class SetupConfig(BaseModel):
    """Provisioning configuration — loaded from devbox.yml."""

    brew: str = "brew"
    trusted_directory: str = DEFAULT_TRUSTED_DIRECTORY
    install_script_url: str = DEFAULT_INSTALL_SCRIPT_URL
    taps: list[str] = Field(
        default_factory=lambda: ["homebrew/cask-versions", "homebrew/cask"]
    )
    packages: list[PackageSpec] = Field(default_factory=_default_packages)

    # ── Profile ──────────────────────────────────────────────────
    profile: str = "~/.zshrc"
    shell: str = "zsh"
    prefix: str = "/usr/local"
    spark_version: str = "3.3.0"
    pyspark: bool = False

    # ── Run ──────────────────────────────────────────────────────
    log_file: str = "logs/error.log"
    command_timeout: int | None = None

    @field_validator("packages", mode="before")
    @classmethod
    def _coerce_packages(cls, v: Any) -> Any:
        """Allow bare names in YAML as shorthand for formulae."""
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    @property
    def formulae(self) -> list[PackageSpec]:
        return [p for p in self.packages if not p.is_cask]

    @property
    def casks(self) -> list[PackageSpec]:
        return [p for p in self.packages if p.is_cask]

    @property
    def spark_home(self) -> str:
        return f"{self.prefix}/Cellar/apache-spark/{self.spark_version}/libexec"
