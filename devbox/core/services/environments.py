"""
Environment blocks — what each toolchain writes into the profile.

Each environment is a ProfileBlock plus the commands that go with it:
Python upgrades pip before its aliases land, Spark marks its scripts
executable after its paths land.

Stale patterns are anchored to the exact variables and aliases each
block owns. Blocks must never match each other's lines; use
``find_collisions`` to check a set of blocks.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.models.action import Action
from devbox.core.models.setup import ProfileBlock, SetupConfig
from devbox.core.services.profile_editor import block_predicates

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentSetup:
    """A profile block and its side commands."""

    name: str
    block: ProfileBlock
    commands: list[Action] = field(default_factory=list)   # run before the block is written
    executable_dir: Path | None = None                     # chmod +x its files afterwards


def export_line(name: str, value: str) -> str:
    return f'export {name}="{value}"'


def path_line(entry: str) -> str:
    return f'export PATH="{entry}:$PATH"'


# ── Blocks ───────────────────────────────────────────────────────


def ruby_environment(config: SetupConfig) -> EnvironmentSetup:
    ruby = f"{config.prefix}/opt/ruby"
    return EnvironmentSetup(
        name="ruby",
        block=ProfileBlock(
            name="ruby",
            marker="# Ruby Path variables",
            stale_patterns=[r"/opt/ruby/"],
            lines=[
                path_line(f"{ruby}/bin"),
                export_line("LDFLAGS", f"-L{ruby}/lib"),
                export_line("CPPFLAGS", f"-I{ruby}/include"),
            ],
        ),
    )


def python_environment(config: SetupConfig) -> EnvironmentSetup:
    return EnvironmentSetup(
        name="python",
        block=ProfileBlock(
            name="python",
            marker="# Python Aliases",
            stale_patterns=[r"^\s*alias python=", r"^\s*alias pip="],
            lines=['alias python="python3"', 'alias pip="pip3"'],
        ),
        commands=[
            Action(
                id="python:upgrade-pip",
                name="upgrade pip",
                command=["python3", "-m", "pip", "install", "--upgrade", "pip"],
            ),
            Action(
                id="python:pip-tools",
                name="install pip-tools",
                command=["python3", "-m", "pip", "install", "pip-tools"],
            ),
        ],
    )


def spark_environment(config: SetupConfig) -> EnvironmentSetup:
    return EnvironmentSetup(
        name="spark",
        block=ProfileBlock(
            name="spark",
            marker="# Spark Path variables",
            stale_patterns=[r"^\s*export SPARK_HOME=", r'^\s*export PATH="\$SPARK_HOME'],
            lines=[
                export_line("SPARK_HOME", config.spark_home),
                path_line("$SPARK_HOME/bin/"),
            ],
        ),
        executable_dir=Path(config.spark_home) / "bin",
    )


def pyspark_environment(config: SetupConfig) -> EnvironmentSetup:
    return EnvironmentSetup(
        name="pyspark",
        block=ProfileBlock(
            name="pyspark",
            marker="# PYSPARK Path variables",
            stale_patterns=[r"^\s*export PYSPARK_DRIVER_PYTHON(_OPTS)?="],
            lines=[
                export_line("PYSPARK_DRIVER_PYTHON", "jupyter"),
                export_line("PYSPARK_DRIVER_PYTHON_OPTS", "notebook"),
            ],
        ),
    )


def environments_for(config: SetupConfig, include_pyspark: bool | None = None) -> list[EnvironmentSetup]:
    """Environments in the order they are applied."""
    envs = [ruby_environment(config), python_environment(config), spark_environment(config)]
    if config.pyspark if include_pyspark is None else include_pyspark:
        envs.append(pyspark_environment(config))
    return envs


# ── Side commands ────────────────────────────────────────────────


def chmod_action(directory: Path) -> Action | None:
    """``chmod +x`` every file in ``directory``; None if there is nothing to mark."""
    if not directory.is_dir():
        logger.warning("Executable directory %s does not exist, nothing to chmod", directory)
        return None
    files = sorted(str(p) for p in directory.iterdir() if p.is_file())
    if not files:
        return None
    return Action(id=f"chmod:{directory}", name="mark executable", command=["chmod", "+x", *files])


def reload_action(config: SetupConfig, profile: Path) -> Action:
    """Source the profile in a fresh shell so broken edits surface now."""
    return Action(
        id="reload-profile",
        name="reload profile",
        command=[config.shell, "-c", f'source "{profile}"'],
    )


# ── Isolation check ──────────────────────────────────────────────


def find_collisions(blocks: list[ProfileBlock]) -> list[tuple[str, str, str]]:
    """Lines of one block that another block's removal rules would delete.

    Returns ``(remover, owner, line)`` triples; empty means isolated.
    """
    collisions = []
    for remover, owner in itertools.permutations(blocks, 2):
        predicates = block_predicates(remover)
        for line in owner.rendered:
            if any(pred(line) for pred in predicates):
                collisions.append((remover.name, owner.name, line))
    return collisions
