"""
Shared plumbing for the fleet CLI commands.

The control plane lives in ``ctx.obj["client"]``; tests inject a mock
there, otherwise an OpsWorks client is created on first use from the
loaded configuration.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
from typing import Any, Awaitable, Callable

import click

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.config.loader import FleetConfig
from opsfleet.core.engine.filters import filters_from_option
from opsfleet.core.engine.monitor import DeploymentMonitor
from opsfleet.core.errors import FleetError, MonitorCancelled

filter_option = click.option(
    "--filter",
    "-f",
    "filters",
    multiple=True,
    help="field:pattern, repeatable or comma separated (e.g. -f region:us-*,layer:web).",
)
json_option = click.option(
    "--json-output", "--json", "as_json", is_flag=True, help="Output as JSON."
)


def get_config(ctx: click.Context) -> FleetConfig:
    return ctx.obj.get("config") or FleetConfig()


def get_client(ctx: click.Context) -> ControlPlane:
    """The control plane for this invocation, created lazily."""
    client = ctx.obj.get("client")
    if client is None:
        from opsfleet.adapters.opsworks import OpsWorksControlPlane

        config = get_config(ctx)
        client = OpsWorksControlPlane(api_region=config.api_region, profile=config.profile)
        ctx.obj["client"] = client
    return client


def get_monitor(ctx: click.Context, client: ControlPlane) -> DeploymentMonitor:
    config = get_config(ctx)
    return DeploymentMonitor(
        client,
        poll_interval=config.poll_interval,
        max_polls=config.max_polls,
        deadline=config.deadline,
    )


def get_filters(values: tuple[str, ...]) -> list[str]:
    return filters_from_option(values)


async def _with_interrupt(factory: Callable[[asyncio.Event], Awaitable[Any]]) -> Any:
    """Run ``factory(cancel)`` with Ctrl-C wired to the cancel event."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    handled = True
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError, ValueError):
        # no signal support here (Windows, or not the main thread)
        handled = False
    try:
        return await factory(cancel)
    finally:
        if handled:
            with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
                loop.remove_signal_handler(signal.SIGINT)


def run_async(factory: Callable[[asyncio.Event], Awaitable[Any]]) -> Any:
    """Run a use case to completion, reporting FleetErrors and exiting 1."""
    try:
        return asyncio.run(_with_interrupt(factory))
    except MonitorCancelled as e:
        click.secho(f"⚠️  {e}", fg="yellow")
        for deployment_id in e.pending:
            click.echo(f"   • {deployment_id}")
        sys.exit(1)
    except FleetError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
