"""
Listing use cases — read-only views of the filtered fleet.

Each view validates its filters before the first remote call, builds
the inventory through the enrichment pipeline, and returns the stacks
to render.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from opsfleet.adapters.base import ControlPlane
from opsfleet.core.engine.filters import narrow, parse_filters
from opsfleet.core.models import Stack
from opsfleet.core.services.inventory import (
    load_stacks,
    with_apps,
    with_deployments,
    with_instances,
    with_layers,
    with_load_balancers,
)

logger = logging.getLogger(__name__)


@dataclass
class ListingResult:
    """Stacks to show for one listing command."""

    view: str = ""
    stacks: list[Stack] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "view": self.view,
            "stacks": [s.model_dump(mode="json") for s in self.stacks],
        }


async def filtered_stacks(client: ControlPlane, filters: Iterable[str]) -> list[Stack]:
    """Stacks with their layers, narrowed by ``filters``.

    Raises:
        ValidationError: before any remote call, for bad filters.
    """
    expressions = parse_filters(filters)
    stacks = await load_stacks(client)
    stacks = await with_layers(client, stacks)
    return narrow(stacks, expressions)


async def list_stacks(client: ControlPlane, filters: Iterable[str] = ()) -> ListingResult:
    logger.debug("Getting the list of stacks")
    return ListingResult("stacks", await filtered_stacks(client, filters))


async def list_instances(
    client: ControlPlane, filters: Iterable[str] = ()
) -> ListingResult:
    logger.debug("Getting the list of instances")
    stacks = await filtered_stacks(client, filters)
    return ListingResult("instances", await with_instances(client, stacks))


async def list_load_balancers(
    client: ControlPlane, filters: Iterable[str] = ()
) -> ListingResult:
    """Load balancers per layer, with the health of every member."""
    logger.debug("Getting the list of load balancers")
    stacks = await filtered_stacks(client, filters)
    stacks = await with_instances(client, stacks)
    return ListingResult("elbs", await with_load_balancers(client, stacks))


async def list_apps(client: ControlPlane, filters: Iterable[str] = ()) -> ListingResult:
    logger.debug("Getting the list of apps")
    stacks = await filtered_stacks(client, filters)
    return ListingResult("apps", await with_apps(client, stacks))


async def list_deployments(
    client: ControlPlane,
    filters: Iterable[str] = (),
    limit: int | None = None,
) -> ListingResult:
    """Recent deployments of every matching stack.

    Deployments belong to stacks, so layer filters only select which
    stacks are shown; layers are left out of the result.
    """
    logger.debug("Getting the list of deployments")
    filters = list(filters)
    if any(not expr.stack_level for expr in parse_filters(filters)):
        logger.warning(
            "You specified a layer filter, deployments are per stack and not per "
            "layer. Fetching deployments for stacks that match your filters."
        )
    stacks = await filtered_stacks(client, filters)
    stacks = await with_deployments(client, stacks, limit=limit)
    return ListingResult(
        "deployments", [s.model_copy(update={"layers": []}) for s in stacks]
    )
