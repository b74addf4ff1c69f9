"""
Domain models — Pydantic types for the fleet inventory and deployments.

All models are re-exported here for convenient access:

    from opsfleet.core.models import Stack, Layer, Deployment, DeploymentRequest
"""

from opsfleet.core.models.deployment import (
    CommandName,
    Deployment,
    DeploymentCommand,
    DeploymentRequest,
    DeploymentStatus,
)
from opsfleet.core.models.inventory import (
    App,
    Instance,
    InstanceHealth,
    Layer,
    LoadBalancer,
    LoadBalancerMember,
    Stack,
)

__all__ = [
    # inventory.py
    "App",
    # deployment.py
    "CommandName",
    "Deployment",
    "DeploymentCommand",
    "DeploymentRequest",
    "DeploymentStatus",
    "Instance",
    "InstanceHealth",
    "Layer",
    "LoadBalancer",
    "LoadBalancerMember",
    "Stack",
]
