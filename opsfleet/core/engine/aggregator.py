"""
Result aggregator — turn monitor outcomes into diagnostics.

A failed batch is a reported outcome, not an exception: each failed
deployment is logged with its stack and console log URL, followed by a
"N of M operations failed" summary.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from opsfleet.core.engine.dispatcher import DispatchResult
from opsfleet.core.errors import NoRunningInstanceError, TransportError
from opsfleet.core.models import Deployment, Stack

logger = logging.getLogger(__name__)

CONSOLE_URL = (
    "https://console.aws.amazon.com/opsworks/home"
    "?region={region}#/stack/{stack_id}/deployments/{deployment_id}"
)

# Control-plane wording when a command ends up targeting no instance
_NO_INSTANCE_PATTERN = re.compile(r"at least an instance ID")


def console_url(region: str, stack_id: str, deployment_id: str) -> str:
    """Console page holding a deployment's logs."""
    return CONSOLE_URL.format(
        region=region, stack_id=stack_id, deployment_id=deployment_id
    )


@dataclass
class FailureDiagnostic:
    """Where to look for one failed deployment."""

    stack_name: str
    stack_id: str
    deployment_id: str
    log_url: str

    def to_dict(self) -> dict:
        return {
            "stack": self.stack_name,
            "stack_id": self.stack_id,
            "deployment_id": self.deployment_id,
            "log_url": self.log_url,
        }


@dataclass
class FleetReport:
    """Final outcome of one dispatched command."""

    command: str = ""
    deployments: list[Deployment] = field(default_factory=list)
    stacks_by_deployment: dict[str, Stack] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.deployments)

    @property
    def succeeded(self) -> int:
        return sum(1 for d in self.deployments if d.successful)

    @property
    def failed(self) -> int:
        return sum(1 for d in self.deployments if d.failed)

    @property
    def unrecognised(self) -> list[Deployment]:
        """Finished with a status that is neither successful nor failed."""
        return [d for d in self.deployments if not (d.successful or d.failed or d.running)]

    @property
    def all_ok(self) -> bool:
        return self.total == self.succeeded

    @property
    def status(self) -> str:
        if self.all_ok:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    @property
    def summary(self) -> str:
        return f"{self.failed} of {self.total} operations failed"

    @property
    def failures(self) -> list[FailureDiagnostic]:
        diagnostics = []
        for deployment in self.deployments:
            if not deployment.failed:
                continue
            stack = self.stacks_by_deployment.get(deployment.id)
            stack_id = stack.id if stack else deployment.stack_id
            region = stack.region if stack else ""
            diagnostics.append(
                FailureDiagnostic(
                    stack_name=stack.name if stack else stack_id,
                    stack_id=stack_id,
                    deployment_id=deployment.id,
                    log_url=console_url(region, stack_id, deployment.id),
                )
            )
        return diagnostics

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "unrecognised": [d.id for d in self.unrecognised],
            "failures": [f.to_dict() for f in self.failures],
            "deployments": [
                {
                    "id": d.id,
                    "stack": self.stacks_by_deployment[d.id].name
                    if d.id in self.stacks_by_deployment
                    else d.stack_id,
                    "status": d.status,
                }
                for d in self.deployments
            ],
        }


def report_outcome(
    result: DispatchResult,
    deployments: list[Deployment],
    failed: bool,
) -> FleetReport:
    """Build the report for a finished batch and log it.

    Never raises: a failed batch is logged per deployment plus a
    summary, and the caller carries on.
    """
    report = FleetReport(
        command=result.command,
        deployments=deployments,
        stacks_by_deployment=dict(result.stacks_by_deployment),
    )
    if not failed:
        logger.info("Command %s finished on %d stacks", report.command, report.total)
        return report

    for diagnostic in report.failures:
        logger.error(
            "Deployment failed on stack %s, logs: %s",
            diagnostic.stack_name,
            diagnostic.log_url,
        )
    for deployment in report.unrecognised:
        stack = report.stacks_by_deployment.get(deployment.id)
        logger.warning(
            "Deployment %s on stack %s ended with unexpected status %r",
            deployment.id,
            stack.name if stack else deployment.stack_id,
            deployment.status,
        )
    logger.error(report.summary)
    return report


def translate_error(exc: Exception) -> Exception:
    """Map a known control-plane refusal onto a clearer error.

    Returns the exception to raise: a NoRunningInstanceError for the
    "no instance to target" refusal, ``exc`` itself otherwise.
    """
    if isinstance(exc, TransportError) and _NO_INSTANCE_PATTERN.search(str(exc)):
        return NoRunningInstanceError("No running instance matches your filters")
    return exc
