"""
Command dispatcher — one deployment per target stack, issued at once.

Flow:
    targets → build one request per stack → create all concurrently → join

Every request is built (and validated) before the first remote call,
so a bad app name never leaves half the fleet deploying. Once calls are
in flight there is no rollback: if one create fails, the deployments
already created for other stacks keep running un-monitored and are
logged as such.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.errors import ValidationError
from opsfleet.core.models import (
    CommandName,
    DeploymentCommand,
    DeploymentRequest,
    Stack,
)

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Deployments created by one dispatch call."""

    command: str = ""
    deployment_ids: list[str] = field(default_factory=list)
    stacks_by_deployment: dict[str, Stack] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.deployment_ids)

    def stack_for(self, deployment_id: str) -> Stack | None:
        return self.stacks_by_deployment.get(deployment_id)


def build_request(stack: Stack, command: str, args: Any = None) -> DeploymentRequest:
    """Build the create-deployment request for one stack.

    Only the stack's currently attached layers are targeted, so layers
    removed by filters are left alone.

    Args:
        stack: Target stack, with its filtered layers (and its apps for
            a deploy).
        command: A CommandName value.
        args: App short name for ``deploy``; recipe list for
            ``execute_recipes``; ignored otherwise.

    Raises:
        ValidationError: if a deploy names an app the stack doesn't have.
    """
    logger.debug(
        "Running command %s on %s, layers: %s",
        command,
        stack.name,
        ",".join(stack.layer_names),
    )

    command_args = None
    app_id = None
    if command == CommandName.EXECUTE_RECIPES:
        command_args = {"recipes": list(args or [])}
    elif command == CommandName.DEPLOY:
        app = stack.find_app(args) if args else None
        if app is None:
            raise ValidationError(f"Could not find app {args} on stack {stack.name}")
        app_id = app.id

    return DeploymentRequest(
        stack_id=stack.id,
        layer_ids=stack.layer_ids,
        command=DeploymentCommand(name=str(command), args=command_args),
        app_id=app_id,
    )


async def dispatch(
    client: ControlPlane,
    targets: list[Stack],
    command: str,
    args: Any = None,
) -> DispatchResult:
    """Create one deployment per target stack, concurrently.

    Waits for every create call to finish before returning.

    Raises:
        ValidationError: if ``targets`` is empty or a request is invalid;
            nothing has been sent in that case.
        TransportError: the first create call that failed, after all
            calls have settled.
    """
    if not targets:
        raise ValidationError("No stacks matching your filters")

    requests = [build_request(stack, command, args) for stack in targets]
    logger.info("Running command %s on %d stacks", command, len(targets))

    outcomes = await asyncio.gather(
        *(client.create_deployment(request) for request in requests),
        return_exceptions=True,
    )

    result = DispatchResult(command=str(command))
    errors: list[BaseException] = []
    for stack, outcome in zip(targets, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Could not run %s on stack %s: %s", command, stack.name, outcome)
            errors.append(outcome)
            continue
        result.deployment_ids.append(outcome)
        result.stacks_by_deployment[outcome] = stack

    if errors:
        if result.deployment_ids:
            logger.warning(
                "Deployments already started are left running un-monitored: %s",
                ", ".join(
                    f"{result.stacks_by_deployment[d].name} ({d})"
                    for d in result.deployment_ids
                ),
            )
        raise errors[0]

    return result
