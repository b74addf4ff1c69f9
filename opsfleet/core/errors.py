"""
Error taxonomy — every user-facing failure is a FleetError.

Validation errors are raised before any remote call. Transport errors
wrap control-plane failures and are never retried. DeploymentsFailed is
the monitor's rejection and is turned into diagnostics by the run use
case rather than surfacing to the CLI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opsfleet.core.models.deployment import Deployment


class FleetError(Exception):
    """Base class for errors the CLI reports to the user."""


class ValidationError(FleetError):
    """Bad input detected before anything was sent to the control plane."""


class TransportError(FleetError):
    """A control-plane call failed."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation


class NoRunningInstanceError(FleetError):
    """The control plane refused a command because no instance was targeted."""


class DeploymentsFailed(FleetError):
    """Every deployment finished and at least one did not succeed.

    The message counts deployments whose status is ``failed``.
    """

    def __init__(self, deployments: list[Deployment]):
        failed = sum(1 for d in deployments if d.failed)
        super().__init__(f"{failed} of {len(deployments)} operations failed")
        self.deployments = deployments


class MonitorTimeout(FleetError):
    """The monitor gave up before every deployment finished."""

    def __init__(self, message: str, pending: list[str]):
        super().__init__(message)
        self.pending = pending


class MonitorCancelled(FleetError):
    """The caller cancelled monitoring; remote deployments keep running."""

    def __init__(self, pending: list[str]):
        super().__init__(
            f"Monitoring cancelled, {len(pending)} deployment(s) still running"
        )
        self.pending = pending
