"""
Run use case — execute a command across the filtered fleet.

This is the top-level orchestrator: it validates input, builds and
filters the inventory, asks for confirmation, dispatches one deployment
per stack, waits for them, and reports the outcome.

Errors before and during dispatch are raised; a batch that finishes
with failed deployments is reported in the result instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.engine.aggregator import FleetReport, report_outcome, translate_error
from opsfleet.core.engine.dispatcher import build_request, dispatch
from opsfleet.core.engine.monitor import DeploymentMonitor
from opsfleet.core.errors import (
    DeploymentsFailed,
    FleetError,
    MonitorCancelled,
    ValidationError,
)
from opsfleet.core.models import CommandName, Stack
from opsfleet.core.services.inventory import with_apps
from opsfleet.core.use_cases.listing import filtered_stacks

logger = logging.getLogger(__name__)

# (targets, command names about to run) → proceed?
ConfirmCallback = Callable[[list[Stack], list[str]], bool]


@dataclass
class RunResult:
    """Result of running a command on the fleet."""

    command: str = ""
    targets: list[Stack] = field(default_factory=list)
    reports: list[FleetReport] = field(default_factory=list)

    @property
    def report(self) -> FleetReport | None:
        """The report of the requested command (not the cookbook update)."""
        for report in self.reports:
            if report.command == self.command:
                return report
        return None

    @property
    def status(self) -> str:
        if not self.reports:
            return "skipped"
        if self.report is None:
            # the cookbook update failed, the command never ran
            return "failed"
        return self.report.status

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "status": self.status,
            "targets": [
                {"stack": s.name, "region": s.region, "layers": s.layer_names}
                for s in self.targets
            ],
            "reports": [r.to_dict() for r in self.reports],
        }


def _check_args(command: str, args: Any) -> None:
    if command not in set(CommandName):
        raise ValidationError(f"Unknown command '{command}'")
    if command == CommandName.DEPLOY and not args:
        raise ValidationError("deploy needs the short name of the app to deploy")
    if command == CommandName.EXECUTE_RECIPES and not args:
        raise ValidationError("execute_recipes needs at least one recipe")


async def run_batch(
    client: ControlPlane,
    targets: list[Stack],
    command: str,
    args: Any = None,
    monitor: DeploymentMonitor | None = None,
    cancel: asyncio.Event | None = None,
) -> FleetReport:
    """Dispatch one command, wait for it, and report.

    Raises:
        NoRunningInstanceError: the control plane found no instance to
            run on.
        FleetError: any other validation or transport failure, unchanged.
        MonitorCancelled: ``cancel`` was already set; nothing is sent.
    """
    if cancel is not None and cancel.is_set():
        logger.warning("Cancelled before running %s, nothing was sent", command)
        raise MonitorCancelled([])

    try:
        result = await dispatch(client, targets, command, args)
    except FleetError as e:
        translated = translate_error(e)
        if translated is e:
            raise
        raise translated from e

    monitor = monitor or DeploymentMonitor(client)
    try:
        deployments = await monitor.wait(result.deployment_ids, cancel=cancel)
    except DeploymentsFailed as e:
        return report_outcome(result, e.deployments, failed=True)
    return report_outcome(result, deployments, failed=False)


async def run_command(
    client: ControlPlane,
    command: str,
    filters: Iterable[str] = (),
    args: Any = None,
    update_cookbooks: bool = False,
    confirm: ConfirmCallback | None = None,
    monitor: DeploymentMonitor | None = None,
    cancel: asyncio.Event | None = None,
) -> RunResult:
    """Run ``command`` on every stack (and layer) matching ``filters``.

    Args:
        client: Control plane to talk to.
        command: A CommandName value.
        filters: ``field:pattern`` expressions.
        args: App short name for deploy, recipe list for execute_recipes.
        update_cookbooks: Run update_custom_cookbooks first and wait for it.
        confirm: Called with the targets before anything is dispatched;
            returning False aborts. None skips confirmation.
        monitor: Monitor to wait with (defaults to a 10s poller).
        cancel: Event that stops the run. Checked before the prompt and
            before each dispatch, then watched while monitoring.

    Returns:
        RunResult with one report per dispatched command.
    """
    _check_args(command, args)
    filters = list(filters)

    stacks = await filtered_stacks(client, filters)
    if command == CommandName.DEPLOY:
        stacks = await with_apps(client, stacks)
    # an unknown app must fail before the cookbook update touches anything
    for stack in stacks:
        build_request(stack, command, args)

    result = RunResult(command=str(command), targets=stacks)

    if cancel is not None and cancel.is_set():
        raise MonitorCancelled([])
    if stacks and confirm is not None:
        commands = [str(CommandName.UPDATE_CUSTOM_COOKBOOKS)] if update_cookbooks else []
        commands.append(str(command))
        if not confirm(stacks, commands):
            raise FleetError("Command aborted")

    monitor = monitor or DeploymentMonitor(client)

    if update_cookbooks:
        update = await run_batch(
            client,
            stacks,
            CommandName.UPDATE_CUSTOM_COOKBOOKS,
            monitor=monitor,
            cancel=cancel,
        )
        result.reports.append(update)
        if not update.all_ok:
            logger.error("Cookbook update failed, not running %s", command)
            return result

    report = await run_batch(
        client, stacks, command, args, monitor=monitor, cancel=cancel
    )
    result.reports.append(report)
    logger.info("Done")
    return result
