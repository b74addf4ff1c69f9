"""
CLI commands for the read-only fleet views.

Thin wrappers over ``opsfleet.core.use_cases.listing``.
"""

from __future__ import annotations

import json

import click

from opsfleet.ui.cli.common import (
    filter_option,
    get_client,
    get_config,
    get_filters,
    json_option,
    run_async,
)
from opsfleet.ui.cli.render import echo_csv, echo_tree


def _show(result, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    echo_tree(result)


@click.command()
@filter_option
@json_option
@click.pass_context
def stacks(ctx: click.Context, filters: tuple[str, ...], as_json: bool) -> None:
    """List stacks and their layers."""
    from opsfleet.core.use_cases.listing import list_stacks

    client = get_client(ctx)
    result = run_async(lambda _: list_stacks(client, get_filters(filters)))
    _show(result, as_json)


@click.command()
@filter_option
@click.option("--csv", "as_csv", is_flag=True, help="One CSV line per instance.")
@json_option
@click.pass_context
def instances(
    ctx: click.Context, filters: tuple[str, ...], as_csv: bool, as_json: bool
) -> None:
    """List instances per layer."""
    from opsfleet.core.use_cases.listing import list_instances

    client = get_client(ctx)
    result = run_async(lambda _: list_instances(client, get_filters(filters)))
    if as_csv and not as_json:
        echo_csv(result)
        return
    _show(result, as_json)


@click.command()
@filter_option
@json_option
@click.pass_context
def elbs(ctx: click.Context, filters: tuple[str, ...], as_json: bool) -> None:
    """List load balancers per layer with instance health."""
    from opsfleet.core.use_cases.listing import list_load_balancers

    client = get_client(ctx)
    result = run_async(lambda _: list_load_balancers(client, get_filters(filters)))
    _show(result, as_json)


@click.command()
@filter_option
@json_option
@click.pass_context
def apps(ctx: click.Context, filters: tuple[str, ...], as_json: bool) -> None:
    """List apps per stack with their source."""
    from opsfleet.core.use_cases.listing import list_apps

    client = get_client(ctx)
    result = run_async(lambda _: list_apps(client, get_filters(filters)))
    _show(result, as_json)


@click.command()
@filter_option
@click.option(
    "--number",
    "-n",
    "limit",
    type=click.IntRange(min=1),
    default=None,
    help="Deployments to show per stack (default: from config).",
)
@json_option
@click.pass_context
def deployments(
    ctx: click.Context, filters: tuple[str, ...], limit: int | None, as_json: bool
) -> None:
    """List the latest deployments of each stack.

    Examples:

        opsfleet deployments -f stack:wordpress-* -n 3
    """
    from opsfleet.core.use_cases.listing import list_deployments

    client = get_client(ctx)
    limit = limit or get_config(ctx).history
    result = run_async(
        lambda _: list_deployments(client, get_filters(filters), limit=limit)
    )
    _show(result, as_json)
