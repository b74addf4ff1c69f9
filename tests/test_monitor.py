"""
Tests for the deployment monitor — polling cadence, outcomes and bounds.
"""

import asyncio

import pytest

from opsfleet.adapters.mock import MockControlPlane
from opsfleet.core.engine.monitor import DeploymentMonitor, MonitorState, classify
from opsfleet.core.errors import (
    DeploymentsFailed,
    MonitorCancelled,
    MonitorTimeout,
    TransportError,
)
from opsfleet.core.models import Deployment

RUNNING, SUCCESSFUL, FAILED = "running", "successful", "failed"


def _client(latency: float = 0.0, **timelines: list[str]) -> MockControlPlane:
    client = MockControlPlane(latency=latency)
    for deployment_id, statuses in timelines.items():
        client.add_deployment(deployment_id, f"stack-{deployment_id}", statuses)
    return client


# ── State classification ─────────────────────────────────────────────


class TestClassify:
    def test_all_successful(self):
        batch = [Deployment(id="a", status=SUCCESSFUL), Deployment(id="b", status=SUCCESSFUL)]
        assert classify(batch) == MonitorState.SUCCEEDED

    def test_running_keeps_polling(self):
        batch = [Deployment(id="a", status=FAILED), Deployment(id="b", status=RUNNING)]
        assert classify(batch) == MonitorState.POLLING

    def test_terminal_with_failure(self):
        batch = [Deployment(id="a", status=FAILED), Deployment(id="b", status=SUCCESSFUL)]
        assert classify(batch) == MonitorState.FAILED

    def test_unknown_status_is_terminal(self):
        batch = [Deployment(id="a", status="skipped")]
        assert classify(batch) == MonitorState.FAILED


# ── Waiting ──────────────────────────────────────────────────────────


class TestWait:
    @pytest.mark.asyncio
    async def test_resolves_after_sixth_poll(self):
        """Three operations; #2 finishes at poll 2, the others at poll 6."""
        slow = [RUNNING] * 5 + [SUCCESSFUL]
        client = _client(op1=slow, op2=[RUNNING, SUCCESSFUL], op3=slow)
        monitor = DeploymentMonitor(client, poll_interval=0.01)

        deployments = await monitor.wait(["op1", "op2", "op3"])

        assert [d.id for d in deployments] == ["op1", "op2", "op3"]
        assert all(d.successful for d in deployments)
        assert client.call_count("describe_deployments") == 6
        assert monitor.polls == 6
        assert monitor.state == MonitorState.SUCCEEDED

    @pytest.mark.asyncio
    async def test_one_query_covers_the_batch(self):
        client = _client(a=[SUCCESSFUL], b=[SUCCESSFUL])
        await DeploymentMonitor(client, poll_interval=0.01).wait(["a", "b"])
        assert client.call_log == [("describe_deployments", {"deployment_ids": ["a", "b"]})]

    @pytest.mark.asyncio
    async def test_polls_spaced_and_sequential(self):
        client = _client(latency=0.01, a=[RUNNING, RUNNING, RUNNING, SUCCESSFUL])
        await DeploymentMonitor(client, poll_interval=0.05).wait(["a"])

        gaps = [b - a for a, b in zip(client.poll_times, client.poll_times[1:])]
        assert len(gaps) == 3
        # interval plus the previous call's latency, never less than the interval
        assert all(gap >= 0.045 for gap in gaps)
        assert client.max_in_flight == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        client = _client()
        assert await DeploymentMonitor(client).wait([]) == []
        assert client.call_log == []

    @pytest.mark.asyncio
    async def test_failure_reports_every_record(self):
        client = _client(a=[SUCCESSFUL], b=[FAILED], c=[SUCCESSFUL])
        with pytest.raises(DeploymentsFailed, match="1 of 3 operations failed") as exc:
            await DeploymentMonitor(client, poll_interval=0.01).wait(["a", "b", "c"])
        assert [d.status for d in exc.value.deployments] == [SUCCESSFUL, FAILED, SUCCESSFUL]

    @pytest.mark.asyncio
    async def test_failure_waits_for_the_rest(self):
        client = _client(a=[FAILED], b=[RUNNING, RUNNING, SUCCESSFUL])
        monitor = DeploymentMonitor(client, poll_interval=0.01)
        with pytest.raises(DeploymentsFailed):
            await monitor.wait(["a", "b"])
        assert monitor.polls == 3
        assert monitor.state == MonitorState.FAILED

    @pytest.mark.asyncio
    async def test_query_error_propagates(self):
        client = _client(a=[RUNNING])
        client.set_failure("describe_deployments", "Rate exceeded")
        with pytest.raises(TransportError, match="Rate exceeded"):
            await DeploymentMonitor(client, poll_interval=0.01).wait(["a"])


# ── Bounds and cancellation ──────────────────────────────────────────


class TestBounds:
    @pytest.mark.asyncio
    async def test_max_polls(self):
        client = _client(a=[RUNNING], b=[SUCCESSFUL])
        monitor = DeploymentMonitor(client, poll_interval=0.01, max_polls=3)
        with pytest.raises(MonitorTimeout) as exc:
            await monitor.wait(["a", "b"])
        assert exc.value.pending == ["a"]
        assert client.call_count("describe_deployments") == 3

    @pytest.mark.asyncio
    async def test_deadline(self):
        client = _client(a=[RUNNING])
        monitor = DeploymentMonitor(client, poll_interval=0.02, max_polls=None, deadline=0.1)
        with pytest.raises(MonitorTimeout, match="Deadline"):
            await monitor.wait(["a"])
        assert 1 <= monitor.polls <= 5

    @pytest.mark.asyncio
    async def test_cancel_while_waiting(self):
        client = _client(a=[RUNNING])
        cancel = asyncio.Event()
        monitor = DeploymentMonitor(client, poll_interval=10)

        loop = asyncio.get_running_loop()
        loop.call_later(0.05, cancel.set)
        with pytest.raises(MonitorCancelled) as exc:
            await asyncio.wait_for(monitor.wait(["a"], cancel=cancel), timeout=5)
        assert exc.value.pending == ["a"]
        assert monitor.polls == 1

    @pytest.mark.asyncio
    async def test_cancel_already_set(self):
        client = _client(a=[RUNNING])
        cancel = asyncio.Event()
        cancel.set()
        with pytest.raises(MonitorCancelled):
            await DeploymentMonitor(client, poll_interval=10).wait(["a"], cancel=cancel)
        assert client.call_count("describe_deployments") == 1

    @pytest.mark.asyncio
    async def test_cancel_not_needed(self):
        client = _client(a=[RUNNING, SUCCESSFUL])
        cancel = asyncio.Event()
        result = await DeploymentMonitor(client, poll_interval=0.01).wait(["a"], cancel=cancel)
        assert result[0].successful
