"""
Inventory models — stacks, layers, apps, instances and load balancers.

Records validate straight from control-plane API responses (PascalCase
aliases) and are frozen: enrichment stages build new values with
``model_copy(update=...)`` instead of mutating shared records.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from opsfleet.core.errors import ValidationError
from opsfleet.core.models.deployment import Deployment

# App source keys never shown to the user
SECRET_SOURCE_KEYS = frozenset({"SshKey", "Password"})

_RECORD_CONFIG = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


def parse_custom_json(raw: str | None, owner: str) -> dict[str, Any]:
    """Decode a custom JSON document; missing documents decode to ``{}``."""
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid custom JSON on {owner}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(
            f"Custom JSON on {owner} must be an object, got {type(data).__name__}"
        )
    return data


class InstanceHealth(BaseModel):
    """Load balancer view of one member instance."""

    model_config = _RECORD_CONFIG

    instance_id: str = Field(alias="InstanceId")
    state: str = Field(default="Unknown", alias="State")
    reason_code: str = Field(default="", alias="ReasonCode")
    description: str = Field(default="", alias="Description")

    @property
    def in_service(self) -> bool:
        return self.state == "InService"


class Instance(BaseModel):
    """A compute instance managed by a layer."""

    model_config = _RECORD_CONFIG

    id: str = Field(alias="InstanceId")
    ec2_instance_id: str | None = Field(default=None, alias="Ec2InstanceId")
    hostname: str = Field(default="", alias="Hostname")
    status: str = Field(default="", alias="Status")
    instance_type: str | None = Field(default=None, alias="InstanceType")
    public_ip: str | None = Field(default=None, alias="PublicIp")
    private_ip: str | None = Field(default=None, alias="PrivateIp")
    layer_ids: list[str] = Field(default_factory=list, alias="LayerIds")

    @property
    def address(self) -> str | None:
        """Public IP when there is one, private IP otherwise."""
        return self.public_ip or self.private_ip


class LoadBalancerMember(BaseModel):
    """An instance attached to a load balancer, with its health."""

    model_config = _RECORD_CONFIG

    instance: Instance
    health: InstanceHealth


class LoadBalancer(BaseModel):
    """A load balancer attached to a layer."""

    model_config = _RECORD_CONFIG

    name: str = Field(alias="ElasticLoadBalancerName")
    region: str = Field(default="", alias="Region")
    layer_id: str | None = Field(default=None, alias="LayerId")
    stack_id: str | None = Field(default=None, alias="StackId")
    dns_name: str | None = Field(default=None, alias="DnsName")
    ec2_instance_ids: list[str] = Field(default_factory=list, alias="Ec2InstanceIds")
    members: list[LoadBalancerMember] = Field(default_factory=list)

    @property
    def out_of_service(self) -> list[LoadBalancerMember]:
        return [m for m in self.members if not m.health.in_service]


class Layer(BaseModel):
    """Role-based group of instances within a stack.

    ``effective_config`` is the stack's custom JSON overlaid by the
    layer's own document. It is filled in once, by ``attach_layers``.
    """

    model_config = _RECORD_CONFIG

    id: str = Field(alias="LayerId")
    stack_id: str = Field(default="", alias="StackId")
    shortname: str = Field(alias="Shortname")
    name: str = Field(default="", alias="Name")
    custom_json: str | None = Field(default=None, alias="CustomJson")
    effective_config: dict[str, Any] = Field(default_factory=dict)
    instances: list[Instance] = Field(default_factory=list)
    load_balancers: list[LoadBalancer] = Field(default_factory=list)


class App(BaseModel):
    """A deployable application registered on a stack."""

    model_config = _RECORD_CONFIG

    id: str = Field(alias="AppId")
    stack_id: str = Field(default="", alias="StackId")
    shortname: str = Field(alias="Shortname")
    name: str = Field(default="", alias="Name")
    app_source: dict[str, Any] = Field(default_factory=dict, alias="AppSource")

    def display_source(self) -> dict[str, Any]:
        """The app source without credentials."""
        return {
            k: v for k, v in self.app_source.items() if k not in SECRET_SOURCE_KEYS
        }


class Stack(BaseModel):
    """Top-level group of resources in one region."""

    model_config = _RECORD_CONFIG

    id: str = Field(alias="StackId")
    name: str = Field(alias="Name")
    region: str = Field(default="", alias="Region")
    custom_json: str | None = Field(default=None, alias="CustomJson")
    layers: list[Layer] = Field(default_factory=list)
    apps: list[App] = Field(default_factory=list)
    deployments: list[Deployment] = Field(default_factory=list)

    @property
    def layer_ids(self) -> list[str]:
        return [layer.id for layer in self.layers]

    @property
    def layer_names(self) -> list[str]:
        return [layer.shortname for layer in self.layers]

    def find_app(self, shortname: str) -> App | None:
        """Exact short-name lookup among the stack's apps."""
        for app in self.apps:
            if app.shortname == shortname:
                return app
        return None

    def attach_layers(self, layers: list[Layer]) -> Stack:
        """Return a copy of this stack owning ``layers``.

        Each layer's effective configuration is computed here, from this
        stack's document and the layer's own, layer keys winning.
        """
        stack_doc = parse_custom_json(self.custom_json, f"stack {self.name}")
        merged = []
        for layer in layers:
            layer_doc = parse_custom_json(
                layer.custom_json, f"layer {layer.shortname} of stack {self.name}"
            )
            merged.append(
                layer.model_copy(update={"effective_config": {**stack_doc, **layer_doc}})
            )
        return self.model_copy(update={"layers": merged})
