"""
Adapter base — the protocol contract between the engine and the cloud.

The engine only talks to the control plane through this interface,
never directly to an SDK. Every method is a coroutine so callers can fan
out many requests at once.

Adapters return parsed inventory models and raise TransportError for
any remote failure. They never retry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

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


class ControlPlane(ABC):
    """Abstract base class for control-plane clients.

    To create a new adapter:
        1. Subclass ControlPlane
        2. Implement every describe/list/create coroutine
        3. Wrap SDK failures in TransportError
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'opsworks', 'mock')."""

    @abstractmethod
    async def list_stacks(self) -> list[Stack]:
        """All stacks visible to the caller, without layers or apps."""

    @abstractmethod
    async def describe_layers(self, stack_id: str) -> list[Layer]:
        """Layers of one stack, as raw records (no effective config yet)."""

    @abstractmethod
    async def describe_apps(self, stack_id: str) -> list[App]:
        """Apps registered on one stack."""

    @abstractmethod
    async def describe_instances(self, stack_id: str) -> list[Instance]:
        """Instances of one stack; each carries its layer ids."""

    @abstractmethod
    async def describe_load_balancers(self, stack_id: str) -> list[LoadBalancer]:
        """Load balancers of one stack; each carries its layer id."""

    @abstractmethod
    async def describe_instance_health(
        self, load_balancer: LoadBalancer
    ) -> list[InstanceHealth]:
        """Per-instance health as seen by one load balancer."""

    @abstractmethod
    async def create_deployment(self, request: DeploymentRequest) -> str:
        """Start a deployment and return its id."""

    @abstractmethod
    async def describe_deployments(
        self,
        deployment_ids: list[str] | None = None,
        stack_id: str | None = None,
    ) -> list[Deployment]:
        """Status records, by deployment ids or for a whole stack."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
