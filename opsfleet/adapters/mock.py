"""
Mock adapter — in-memory control plane for tests and dry runs.

Serves a fixed inventory, records every call, and plays back scripted
status timelines for the deployments it creates: the n-th status query
for a deployment reports the n-th entry of its timeline (the last entry
repeats once the timeline is exhausted).
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.errors import TransportError
from opsfleet.core.models import (
    App,
    Deployment,
    DeploymentRequest,
    DeploymentStatus,
    Instance,
    InstanceHealth,
    Layer,
    LoadBalancer,
    Stack,
)


class MockControlPlane(ControlPlane):
    """Universal control-plane double.

    By default every deployment succeeds on its first status query.
    Timelines can be scripted per stack (``plan_deployment``) or per
    deployment id (``add_deployment``), and any operation can be made to
    fail (``set_failure``).
    """

    def __init__(
        self,
        stacks: list[Stack] | None = None,
        layers: dict[str, list[Layer]] | None = None,
        apps: dict[str, list[App]] | None = None,
        instances: dict[str, list[Instance]] | None = None,
        load_balancers: dict[str, list[LoadBalancer]] | None = None,
        health: dict[str, list[InstanceHealth]] | None = None,
        history: dict[str, list[Deployment]] | None = None,
        latency: float = 0.0,
        adapter_name: str = "mock",
    ):
        self._name = adapter_name
        self._stacks = stacks or []
        self._layers = layers or {}
        self._apps = apps or {}
        self._instances = instances or {}
        self._load_balancers = load_balancers or {}
        self._health = health or {}
        self._history = history or {}
        self._latency = latency

        self._ids = itertools.count(1)
        self._failures: dict[tuple[str, str | None], str] = {}
        self._planned: dict[str, list[str]] = {}
        self._deployments: dict[str, Deployment] = {}
        self._timelines: dict[str, list[str]] = {}
        self._polls: dict[str, int] = {}

        self._call_log: list[tuple[str, dict[str, Any]]] = []
        self._in_flight = 0
        self.max_in_flight = 0
        self.requests: list[DeploymentRequest] = []
        self.poll_times: list[float] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, dict[str, Any]]]:
        """Every (operation, params) pair this mock has received."""
        return self._call_log

    def call_count(self, operation: str) -> int:
        return sum(1 for op, _ in self._call_log if op == operation)

    # ── Scripting ──────────────────────────────────────────────────

    def set_failure(self, operation: str, error: str, key: str | None = None) -> None:
        """Make ``operation`` raise TransportError.

        ``key`` narrows the failure to one stack id (or load balancer
        name for health queries); None fails every call.
        """
        self._failures[(operation, key)] = error

    def plan_deployment(self, stack_id: str, statuses: list[str]) -> None:
        """Status timeline for the next deployment created on ``stack_id``."""
        self._planned[stack_id] = list(statuses)

    def add_deployment(
        self, deployment_id: str, stack_id: str, statuses: list[str]
    ) -> None:
        """Register an existing deployment with a scripted timeline."""
        self._deployments[deployment_id] = Deployment(
            id=deployment_id,
            stack_id=stack_id,
            status=statuses[0],
        )
        self._timelines[deployment_id] = list(statuses)
        self._polls[deployment_id] = 0

    def reset(self) -> None:
        """Clear the call log and failure injections."""
        self._call_log.clear()
        self._failures.clear()
        self.requests.clear()
        self.poll_times.clear()

    # ── Plumbing ───────────────────────────────────────────────────

    async def _enter(self, operation: str, key: str | None = None, **params: Any) -> None:
        self._call_log.append((operation, params))
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self._latency:
                await asyncio.sleep(self._latency)
        finally:
            self._in_flight -= 1
        error = self._failures.get((operation, key)) or self._failures.get(
            (operation, None)
        )
        if error:
            raise TransportError(error, operation=operation)

    # ── ControlPlane ───────────────────────────────────────────────

    async def list_stacks(self) -> list[Stack]:
        await self._enter("list_stacks")
        return list(self._stacks)

    async def describe_layers(self, stack_id: str) -> list[Layer]:
        await self._enter("describe_layers", stack_id, stack_id=stack_id)
        return list(self._layers.get(stack_id, []))

    async def describe_apps(self, stack_id: str) -> list[App]:
        await self._enter("describe_apps", stack_id, stack_id=stack_id)
        return list(self._apps.get(stack_id, []))

    async def describe_instances(self, stack_id: str) -> list[Instance]:
        await self._enter("describe_instances", stack_id, stack_id=stack_id)
        return list(self._instances.get(stack_id, []))

    async def describe_load_balancers(self, stack_id: str) -> list[LoadBalancer]:
        await self._enter("describe_load_balancers", stack_id, stack_id=stack_id)
        return list(self._load_balancers.get(stack_id, []))

    async def describe_instance_health(
        self, load_balancer: LoadBalancer
    ) -> list[InstanceHealth]:
        await self._enter(
            "describe_instance_health", load_balancer.name, name=load_balancer.name
        )
        return list(self._health.get(load_balancer.name, []))

    async def create_deployment(self, request: DeploymentRequest) -> str:
        await self._enter("create_deployment", request.stack_id, stack_id=request.stack_id)
        self.requests.append(request)
        deployment_id = f"deployment-{next(self._ids)}"
        statuses = self._planned.pop(request.stack_id, [DeploymentStatus.SUCCESSFUL])
        self.add_deployment(deployment_id, request.stack_id, statuses)
        self._deployments[deployment_id] = self._deployments[deployment_id].model_copy(
            update={"command": request.command, "app_id": request.app_id}
        )
        return deployment_id

    async def describe_deployments(
        self,
        deployment_ids: list[str] | None = None,
        stack_id: str | None = None,
    ) -> list[Deployment]:
        if deployment_ids is None:
            await self._enter("describe_deployments", stack_id, stack_id=stack_id)
            return list(self._history.get(stack_id or "", []))

        self.poll_times.append(asyncio.get_running_loop().time())
        await self._enter("describe_deployments", None, deployment_ids=deployment_ids)
        return [self._advance(deployment_id) for deployment_id in deployment_ids]

    def _advance(self, deployment_id: str) -> Deployment:
        if deployment_id not in self._deployments:
            raise TransportError(
                f"Deployment {deployment_id} not found", operation="describe_deployments"
            )
        timeline = self._timelines[deployment_id]
        index = min(self._polls[deployment_id], len(timeline) - 1)
        self._polls[deployment_id] += 1
        return self._deployments[deployment_id].model_copy(
            update={"status": timeline[index]}
        )
