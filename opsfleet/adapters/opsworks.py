"""
OpsWorks adapter — the real control plane, through boto3.

boto3 is blocking, so every SDK call runs in a worker thread via
``asyncio.to_thread``; boto3 clients are safe to share across threads.
The OpsWorks API itself lives in one region (us-east-1 by default)
whatever region a stack runs in; load balancer health is queried in
the load balancer's own region.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.errors import TransportError
from opsfleet.core.models import (
    App,
    Deployment,
    DeploymentRequest,
    Instance,
    InstanceHealth,
    Layer,
    LoadBalancer,
    Stack,
)

logger = logging.getLogger(__name__)

DEFAULT_API_REGION = "us-east-1"


class OpsWorksControlPlane(ControlPlane):
    """Control plane backed by the AWS OpsWorks and ELB APIs."""

    def __init__(
        self,
        api_region: str = DEFAULT_API_REGION,
        profile: str | None = None,
        session: boto3.Session | None = None,
    ):
        self._session = session or boto3.Session(profile_name=profile)
        self._api_region = api_region
        self._opsworks = self._session.client("opsworks", region_name=api_region)
        self._elb_clients: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return "opsworks"

    @property
    def opsworks(self) -> Any:
        """The underlying boto3 OpsWorks client."""
        return self._opsworks

    def elb_client(self, region: str) -> Any:
        """The boto3 ELB client for ``region``, created on first use."""
        region = region or self._api_region
        if region not in self._elb_clients:
            self._elb_clients[region] = self._session.client("elb", region_name=region)
        return self._elb_clients[region]

    async def _call(self, client: Any, operation: str, **params: Any) -> dict[str, Any]:
        logger.debug("%s %s", operation, params)
        method = getattr(client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except (ClientError, BotoCoreError) as e:
            logger.debug("%s failed: %s", operation, e)
            raise TransportError(str(e), operation=operation) from e

    async def list_stacks(self) -> list[Stack]:
        data = await self._call(self._opsworks, "describe_stacks")
        return [Stack.model_validate(s) for s in data.get("Stacks", [])]

    async def describe_layers(self, stack_id: str) -> list[Layer]:
        data = await self._call(self._opsworks, "describe_layers", StackId=stack_id)
        return [Layer.model_validate(layer) for layer in data.get("Layers", [])]

    async def describe_apps(self, stack_id: str) -> list[App]:
        data = await self._call(self._opsworks, "describe_apps", StackId=stack_id)
        return [App.model_validate(app) for app in data.get("Apps", [])]

    async def describe_instances(self, stack_id: str) -> list[Instance]:
        data = await self._call(self._opsworks, "describe_instances", StackId=stack_id)
        instances = [Instance.model_validate(i) for i in data.get("Instances", [])]
        logger.debug("Found %d instances for stack %s", len(instances), stack_id)
        return instances

    async def describe_load_balancers(self, stack_id: str) -> list[LoadBalancer]:
        data = await self._call(
            self._opsworks, "describe_elastic_load_balancers", StackId=stack_id
        )
        return [
            LoadBalancer.model_validate(lb)
            for lb in data.get("ElasticLoadBalancers", [])
        ]

    async def describe_instance_health(
        self, load_balancer: LoadBalancer
    ) -> list[InstanceHealth]:
        data = await self._call(
            self.elb_client(load_balancer.region),
            "describe_instance_health",
            LoadBalancerName=load_balancer.name,
        )
        return [InstanceHealth.model_validate(s) for s in data.get("InstanceStates", [])]

    async def create_deployment(self, request: DeploymentRequest) -> str:
        data = await self._call(
            self._opsworks, "create_deployment", **request.to_api_params()
        )
        return data["DeploymentId"]

    async def describe_deployments(
        self,
        deployment_ids: list[str] | None = None,
        stack_id: str | None = None,
    ) -> list[Deployment]:
        params: dict[str, Any] = {}
        if deployment_ids is not None:
            params["DeploymentIds"] = deployment_ids
        if stack_id is not None:
            params["StackId"] = stack_id
        data = await self._call(self._opsworks, "describe_deployments", **params)
        return [Deployment.model_validate(d) for d in data.get("Deployments", [])]
