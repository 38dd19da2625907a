"""
devbox — CLI entrypoint.

Usage:
    devbox                  # full bootstrap (same as `devbox run`)
    devbox plan
    devbox profile apply
    devbox config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from devbox import __version__
from devbox.core.config.loader import ConfigError, load_config, profile_path
from devbox.core.models.setup import SetupConfig
from devbox.core.observability.logging_config import (
    FILE_ENV_VAR,
    FILE_LEVEL_ENV_VAR,
    resolve_level,
    setup_logging,
)


def _load(ctx: click.Context) -> SetupConfig:
    """Load config for a command, exiting 1 on errors."""
    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _adapter(mock: bool):
    if mock:
        from devbox.adapters.mock import MockAdapter

        return MockAdapter(adapter_name="mock", installed=["brew"])

    from devbox.adapters.shell.command import ShellCommandAdapter

    return ShellCommandAdapter()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="devbox")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to devbox.yml (default: auto-detect, else built-in defaults).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devbox — bootstrap a macOS developer machine.

    Without a sub-command, runs the full bootstrap.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet),
        log_file=os.environ.get(FILE_ENV_VAR),
        log_file_level=os.environ.get(FILE_LEVEL_ENV_VAR),
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


def _report_result(ctx: click.Context, result, as_json: bool) -> None:
    """Shared output for run / profile apply."""
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.skipped:
        click.echo(result.message)
        return

    if result.error:
        click.echo()
        click.secho(f"❌ {result.error}", fg="red", bold=True)
        click.echo(f"   Completed {result.report.succeeded}/{result.report.total} commands before stopping.")
        sys.exit(1)

    report = result.report
    click.echo()
    if result.blocks_applied:
        click.secho(f"   Profile blocks: {', '.join(result.blocks_applied)}", fg="cyan")
    click.secho(
        f"✅ {report.succeeded}/{report.total} commands succeeded"
        + (f", {report.skipped} skipped" if report.skipped else ""),
        fg="green",
        bold=True,
    )
    if not ctx.obj.get("quiet"):
        click.echo(f"   {result.message}")
    click.echo()


@cli.command()
@click.option("--pyspark/--no-pyspark", default=None, help="Also write the PySpark block.")
@click.option("--profile", "profile_file", type=click.Path(dir_okay=False), default=None,
              help="Shell profile to patch (default: from config).")
@click.option("--mock", is_flag=True, help="Use mock command runner (no external commands run).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def run(
    ctx: click.Context,
    pyspark: bool | None = None,
    profile_file: str | None = None,
    mock: bool = False,
    as_json: bool = False,
) -> None:
    """Install Homebrew and packages, then patch the shell profile."""
    from devbox.core.use_cases.bootstrap import check_host, run_bootstrap

    skipped = check_host()
    if skipped is not None:
        _report_result(ctx, skipped, as_json)
        return

    config = _load(ctx)
    announce = None if (as_json or ctx.obj.get("quiet")) else click.echo

    result = run_bootstrap(
        config,
        _adapter(mock),
        profile=Path(profile_file).expanduser() if profile_file else None,
        include_pyspark=pyspark,
        announce=announce,
    )
    _report_result(ctx, result, as_json)


@cli.command()
@click.option("--pyspark/--no-pyspark", default=None, help="Include the PySpark block.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, pyspark: bool | None, as_json: bool) -> None:
    """Show every command and profile block without running anything."""
    from devbox.core.engine.provisioner import build_plan
    from devbox.core.services.environments import environments_for

    config = _load(ctx)
    steps = build_plan(config)
    envs = environments_for(config, pyspark)

    if as_json:
        click.echo(json.dumps({
            "steps": [
                {
                    "name": s.name,
                    "unless_present": s.unless_present,
                    "commands": [a.display for a in s.actions],
                }
                for s in steps
            ],
            "profile": str(profile_path(config)),
            "blocks": [env.block.model_dump() for env in envs],
        }, indent=2))
        return

    click.secho("\n📋 Provisioning plan", fg="cyan", bold=True)
    for s in steps:
        click.secho(f"   • {s.name}", fg="white", bold=True, nl=False)
        if s.unless_present:
            click.echo(f"  (skipped if `{s.unless_present}` is installed)")
        else:
            click.echo()
        for action in s.actions:
            click.echo(f"       {action.display}")

    click.secho(f"\n📝 Profile blocks → {profile_path(config)}", fg="cyan", bold=True)
    for env in envs:
        for action in env.commands:
            click.echo(f"       $ {action.display}")
        for line in env.block.rendered:
            click.echo(f"       {line}")
    click.echo()


@cli.group()
def profile() -> None:
    """Shell profile commands."""


@profile.command("apply")
@click.option("--pyspark/--no-pyspark", default=None, help="Also write the PySpark block.")
@click.option("--profile", "profile_file", type=click.Path(dir_okay=False), default=None,
              help="Shell profile to patch (default: from config).")
@click.option("--mock", is_flag=True, help="Use mock command runner (no external commands run).")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def profile_apply(
    ctx: click.Context,
    pyspark: bool | None,
    profile_file: str | None,
    mock: bool,
    as_json: bool,
) -> None:
    """Patch the shell profile only (skip package installation)."""
    from devbox.core.use_cases.bootstrap import check_host, run_bootstrap

    skipped = check_host()
    if skipped is not None:
        _report_result(ctx, skipped, as_json)
        return

    config = _load(ctx)
    announce = None if (as_json or ctx.obj.get("quiet")) else click.echo

    result = run_bootstrap(
        config,
        _adapter(mock),
        profile=Path(profile_file).expanduser() if profile_file else None,
        include_pyspark=pyspark,
        provision=False,
        announce=announce,
    )
    _report_result(ctx, result, as_json)


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate devbox.yml configuration."""
    from devbox.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Packages: {len(result.config.packages)}")
        click.echo(f"   Taps: {len(result.config.taps)}")
        click.echo(f"   Profile: {result.config.profile}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
