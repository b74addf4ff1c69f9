"""
Deployment monitor — poll a batch of deployments until all finish.

States (one per batch, not per deployment):
    POLLING   → one describe call for every id.
    SUCCEEDED → every deployment is successful; return the records.
    FAILED    → nothing is running any more but something did not
                succeed; raise DeploymentsFailed with every record.

Polls are sequential: the next one starts ``poll_interval`` seconds
after the previous response was processed. The loop is bounded by
``max_polls`` and an optional ``deadline``, and stops early when the
caller sets the cancellation event.
"""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.errors import DeploymentsFailed, MonitorCancelled, MonitorTimeout
from opsfleet.core.models import Deployment

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0
DEFAULT_MAX_POLLS = 360


class MonitorState(StrEnum):
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def classify(deployments: list[Deployment]) -> MonitorState:
    """Next state for a batch, given its latest status records."""
    if all(d.successful for d in deployments):
        return MonitorState.SUCCEEDED
    if not any(d.running for d in deployments):
        return MonitorState.FAILED
    return MonitorState.POLLING


class DeploymentMonitor:
    """Waits for a fixed set of deployments to reach a terminal state.

    Args:
        client: Control plane to poll.
        poll_interval: Seconds between the end of one poll and the next.
        max_polls: Status queries allowed before giving up (None = no limit).
        deadline: Seconds allowed in total before giving up (None = no limit).
    """

    def __init__(
        self,
        client: ControlPlane,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_polls: int | None = DEFAULT_MAX_POLLS,
        deadline: float | None = None,
    ):
        self.client = client
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.deadline = deadline
        self.polls = 0
        self.state = MonitorState.POLLING

    async def wait(
        self,
        deployment_ids: list[str],
        cancel: asyncio.Event | None = None,
    ) -> list[Deployment]:
        """Poll until every deployment is terminal.

        Returns:
            The final records, when all deployments succeeded.

        Raises:
            DeploymentsFailed: all finished, at least one not successful.
            MonitorTimeout: ``max_polls`` or ``deadline`` reached first.
            MonitorCancelled: ``cancel`` was set while waiting.
            TransportError: a status query failed.
        """
        if not deployment_ids:
            self.state = MonitorState.SUCCEEDED
            return []

        logger.info("Monitoring %d deployments, please be patient...", len(deployment_ids))
        loop = asyncio.get_running_loop()
        started = loop.time()
        self.polls = 0
        self.state = MonitorState.POLLING

        while True:
            deployments = await self.client.describe_deployments(
                deployment_ids=deployment_ids
            )
            self.polls += 1
            self.state = classify(deployments)
            logger.debug(
                "Poll %d: %s",
                self.polls,
                ", ".join(f"{d.id}={d.status}" for d in deployments),
            )

            if self.state == MonitorState.SUCCEEDED:
                return deployments
            if self.state == MonitorState.FAILED:
                raise DeploymentsFailed(deployments)

            pending = [d.id for d in deployments if d.running]
            if self.max_polls is not None and self.polls >= self.max_polls:
                raise MonitorTimeout(
                    f"Gave up after {self.polls} status checks, "
                    f"{len(pending)} deployment(s) still running",
                    pending,
                )
            if self.deadline is not None:
                remaining = self.deadline - (loop.time() - started)
                if remaining < self.poll_interval:
                    raise MonitorTimeout(
                        f"Deadline of {self.deadline:g}s reached, "
                        f"{len(pending)} deployment(s) still running",
                        pending,
                    )

            await self._pause(cancel, pending)

    async def _pause(self, cancel: asyncio.Event | None, pending: list[str]) -> None:
        if cancel is None:
            await asyncio.sleep(self.poll_interval)
            return
        if cancel.is_set():
            raise MonitorCancelled(pending)
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self.poll_interval)
        except TimeoutError:
            return
        raise MonitorCancelled(pending)
