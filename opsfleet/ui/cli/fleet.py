"""
CLI commands that run lifecycle commands on the fleet.

Thin wrappers over ``opsfleet.core.use_cases.run``. Every command asks
for confirmation unless ``-y`` is given, and ``-u`` updates the custom
cookbooks first.
"""

from __future__ import annotations

import json

import click

from opsfleet.core.models import CommandName
from opsfleet.ui.cli.common import (
    filter_option,
    get_client,
    get_filters,
    get_monitor,
    json_option,
    run_async,
)
from opsfleet.ui.cli.render import confirm_targets, echo_run

yes_option = click.option(
    "--yes", "-y", is_flag=True, help="Do not ask for confirmation."
)
update_option = click.option(
    "--update-cookbooks",
    "-u",
    is_flag=True,
    help="Run update_custom_cookbooks first and wait for it.",
)


def _run(
    ctx: click.Context,
    command: CommandName,
    filters: tuple[str, ...],
    args=None,
    yes: bool = False,
    update_cookbooks: bool = False,
    as_json: bool = False,
) -> None:
    from opsfleet.core.use_cases.run import run_command

    client = get_client(ctx)
    monitor = get_monitor(ctx, client)

    result = run_async(
        lambda cancel: run_command(
            client,
            command,
            filters=get_filters(filters),
            args=args,
            update_cookbooks=update_cookbooks,
            confirm=None if yes else confirm_targets,
            monitor=monitor,
            cancel=cancel,
        )
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    echo_run(result)


@click.command()
@filter_option
@yes_option
@json_option
@click.pass_context
def update(ctx: click.Context, filters: tuple[str, ...], yes: bool, as_json: bool) -> None:
    """Update the custom cookbooks of the matching stacks."""
    _run(ctx, CommandName.UPDATE_CUSTOM_COOKBOOKS, filters, yes=yes, as_json=as_json)


@click.command()
@filter_option
@yes_option
@update_option
@json_option
@click.pass_context
def configure(
    ctx: click.Context,
    filters: tuple[str, ...],
    yes: bool,
    update_cookbooks: bool,
    as_json: bool,
) -> None:
    """Run the configure lifecycle event on the matching layers."""
    _run(
        ctx,
        CommandName.CONFIGURE,
        filters,
        yes=yes,
        update_cookbooks=update_cookbooks,
        as_json=as_json,
    )


@click.command()
@filter_option
@yes_option
@update_option
@json_option
@click.pass_context
def setup(
    ctx: click.Context,
    filters: tuple[str, ...],
    yes: bool,
    update_cookbooks: bool,
    as_json: bool,
) -> None:
    """Run the setup lifecycle event on the matching layers."""
    _run(
        ctx,
        CommandName.SETUP,
        filters,
        yes=yes,
        update_cookbooks=update_cookbooks,
        as_json=as_json,
    )


@click.command()
@click.argument("app")
@filter_option
@yes_option
@update_option
@json_option
@click.pass_context
def deploy(
    ctx: click.Context,
    app: str,
    filters: tuple[str, ...],
    yes: bool,
    update_cookbooks: bool,
    as_json: bool,
) -> None:
    """Deploy APP (its short name) on the matching stacks.

    Examples:

        opsfleet deploy wordpress -f stack:wordpress-* -y
    """
    _run(
        ctx,
        CommandName.DEPLOY,
        filters,
        args=app,
        yes=yes,
        update_cookbooks=update_cookbooks,
        as_json=as_json,
    )


@click.command()
@click.argument("recipes")
@filter_option
@yes_option
@update_option
@json_option
@click.pass_context
def recipes(
    ctx: click.Context,
    recipes: str,
    filters: tuple[str, ...],
    yes: bool,
    update_cookbooks: bool,
    as_json: bool,
) -> None:
    """Execute RECIPES (comma separated) on the matching layers.

    Examples:

        opsfleet recipes nginx::restart,php::reload -f layer:web -u
    """
    recipe_list = [r.strip() for r in recipes.split(",") if r.strip()]
    _run(
        ctx,
        CommandName.EXECUTE_RECIPES,
        filters,
        args=recipe_list,
        yes=yes,
        update_cookbooks=update_cookbooks,
        as_json=as_json,
    )
