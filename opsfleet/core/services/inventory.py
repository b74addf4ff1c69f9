"""
Inventory pipeline — fetch stacks and enrich them stage by stage.

Each stage takes a list of stacks plus the client, fans out one request
per stack, joins, and returns *new* stacks; nothing fetched earlier is
mutated. Stages compose in any order the command needs:

    stacks = await load_stacks(client)
    stacks = await with_layers(client, stacks)
    stacks = apply_filters(stacks, filters)
    stacks = await with_instances(client, stacks)

Stages that attach to layers (instances, load balancers) only touch the
layers a stack currently holds, so they respect earlier filtering.
"""

from __future__ import annotations

import asyncio
import logging

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.models import (
    Instance,
    InstanceHealth,
    Layer,
    LoadBalancer,
    LoadBalancerMember,
    Stack,
)

logger = logging.getLogger(__name__)


async def load_stacks(client: ControlPlane) -> list[Stack]:
    """Every stack, bare."""
    stacks = await client.list_stacks()
    logger.debug("Found %d stacks", len(stacks))
    return stacks


async def with_layers(client: ControlPlane, stacks: list[Stack]) -> list[Stack]:
    """Attach layers and compute their effective configuration."""
    results = await asyncio.gather(*(client.describe_layers(s.id) for s in stacks))
    return [stack.attach_layers(layers) for stack, layers in zip(stacks, results)]


async def with_apps(client: ControlPlane, stacks: list[Stack]) -> list[Stack]:
    """Attach each stack's apps."""
    results = await asyncio.gather(*(client.describe_apps(s.id) for s in stacks))
    for stack, apps in zip(stacks, results):
        logger.debug("Found %d apps for %s - %s", len(apps), stack.name, stack.id)
    return [
        stack.model_copy(update={"apps": apps}) for stack, apps in zip(stacks, results)
    ]


async def with_deployments(
    client: ControlPlane,
    stacks: list[Stack],
    limit: int | None = None,
) -> list[Stack]:
    """Attach each stack's deployment history, most recent first."""
    results = await asyncio.gather(
        *(client.describe_deployments(stack_id=s.id) for s in stacks)
    )
    enriched = []
    for stack, deployments in zip(stacks, results):
        history = deployments[:limit] if limit is not None else list(deployments)
        enriched.append(stack.model_copy(update={"deployments": history}))
    return enriched


def _instances_for(layer: Layer, instances: list[Instance]) -> list[Instance]:
    return [i for i in instances if layer.id in i.layer_ids]


async def with_instances(client: ControlPlane, stacks: list[Stack]) -> list[Stack]:
    """Attach instances to every layer they belong to.

    Instances of layers the stack no longer holds are dropped.
    """
    results = await asyncio.gather(*(client.describe_instances(s.id) for s in stacks))
    enriched = []
    for stack, instances in zip(stacks, results):
        layers = [
            layer.model_copy(update={"instances": _instances_for(layer, instances)})
            for layer in stack.layers
        ]
        enriched.append(stack.model_copy(update={"layers": layers}))
    return enriched


def match_members(
    load_balancer: LoadBalancer,
    health: list[InstanceHealth],
    instances: list[Instance],
) -> LoadBalancer:
    """Pair a load balancer's EC2 ids with layer instances and health.

    Members with no known instance or no health record are left out.
    """
    by_ec2_id = {i.ec2_instance_id: i for i in instances if i.ec2_instance_id}
    health_by_id = {h.instance_id: h for h in health}
    members = [
        LoadBalancerMember(instance=by_ec2_id[ec2_id], health=health_by_id[ec2_id])
        for ec2_id in load_balancer.ec2_instance_ids
        if ec2_id in by_ec2_id and ec2_id in health_by_id
    ]
    return load_balancer.model_copy(update={"members": members})


async def _load_balancers_for(
    client: ControlPlane, stack: Stack
) -> list[tuple[LoadBalancer, list[InstanceHealth]]]:
    load_balancers = await client.describe_load_balancers(stack.id)
    health = await asyncio.gather(
        *(client.describe_instance_health(lb) for lb in load_balancers)
    )
    return list(zip(load_balancers, health))


async def with_load_balancers(client: ControlPlane, stacks: list[Stack]) -> list[Stack]:
    """Attach load balancers, with member health, to their layers.

    Needs instances already attached (``with_instances``) to resolve
    members. Layers without any load balancer are dropped; stacks are
    kept even when none of their layers has one.
    """
    results = await asyncio.gather(*(_load_balancers_for(client, s) for s in stacks))
    enriched = []
    for stack, fetched in zip(stacks, results):
        layers = []
        for layer in stack.layers:
            attached = [
                match_members(lb, health, layer.instances)
                for lb, health in fetched
                if lb.layer_id == layer.id
            ]
            if attached:
                layers.append(layer.model_copy(update={"load_balancers": attached}))
        enriched.append(stack.model_copy(update={"layers": layers}))
    return enriched
