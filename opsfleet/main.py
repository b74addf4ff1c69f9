"""
opsfleet — CLI entrypoint.

Usage:
    opsfleet --help
    opsfleet stacks -f region:us-west-*
    opsfleet deploy wordpress -f stack:wordpress-* -u
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from opsfleet import __version__
from opsfleet.core.config.loader import ConfigError, load_config
from opsfleet.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="opsfleet")
@click.option("--verbose", "-v", is_flag=True, help="Show progress (INFO logging).")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to opsfleet.yml (default: auto-detect).",
)
@click.option("--region", "api_region", default=None, help="Region of the OpsWorks API endpoint.")
@click.option("--profile", default=None, help="AWS credentials profile.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    api_region: str | None,
    profile: str | None,
) -> None:
    """opsfleet — list and operate OpsWorks stacks as one fleet."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_third_party=not debug,
    )

    # ── Configuration (flags override the file) ─────────────────
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    overrides = {
        key: value
        for key, value in (("api_region", api_region), ("profile", profile))
        if value is not None
    }
    ctx.obj["config"] = config.model_copy(update=overrides) if overrides else config


# ── Register commands from opsfleet/ui/cli/ ───────────────────────

from opsfleet.ui.cli.fleet import configure, deploy, recipes, setup, update  # noqa: E402
from opsfleet.ui.cli.listing import apps, deployments, elbs, instances, stacks  # noqa: E402

cli.add_command(stacks)
cli.add_command(instances)
cli.add_command(elbs)
cli.add_command(apps)
cli.add_command(deployments)
cli.add_command(update)
cli.add_command(configure)
cli.add_command(setup)
cli.add_command(deploy)
cli.add_command(recipes)


if __name__ == "__main__":
    cli()
