"""
Shared test fixtures and configuration.

The fleet used throughout: three stacks (two in us-west-1, one in
us-east-1), each holding the same two layers ("database" and
"wordpress"), every layer configured with env=production. The first
stack's own document sets env=test and stackjsontest=somevalue.
"""

import json
import logging
from pathlib import Path
from typing import Callable

import pytest

from opsfleet.adapters.mock import MockControlPlane
from opsfleet.core.models import (
    App,
    Deployment,
    Instance,
    InstanceHealth,
    Layer,
    LoadBalancer,
    Stack,
)

FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> dict:
    return json.loads((FIXTURES / name).read_text())


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the root logger changes made by CLI invocations."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return FIXTURES


@pytest.fixture
def stack_records() -> list[Stack]:
    return [Stack.model_validate(s) for s in load_fixture("stacks.json")["Stacks"]]


@pytest.fixture
def layer_records() -> list[Layer]:
    return [Layer.model_validate(l) for l in load_fixture("layers.json")["Layers"]]


@pytest.fixture
def fleet(stack_records, layer_records) -> list[Stack]:
    """Stacks with their layers attached."""
    return [stack.attach_layers(layer_records) for stack in stack_records]


@pytest.fixture
def make_client(stack_records, layer_records) -> Callable[..., MockControlPlane]:
    """Factory for a mock control plane serving the fixture fleet.

    Keyword arguments override the per-stack layer lists or pass
    straight through to MockControlPlane.
    """

    def _make(layers: dict[str, list[Layer]] | None = None, **kwargs) -> MockControlPlane:
        apps = [App.model_validate(a) for a in load_fixture("apps.json")["Apps"]]
        instances = [
            Instance.model_validate(i) for i in load_fixture("instances.json")["Instances"]
        ]
        load_balancers = [
            LoadBalancer.model_validate(lb)
            for lb in load_fixture("elbs.json")["ElasticLoadBalancers"]
        ]
        health = [
            InstanceHealth.model_validate(h)
            for h in load_fixture("health.json")["InstanceStates"]
        ]
        history = [
            Deployment.model_validate(d)
            for d in load_fixture("deployments.json")["Deployments"]
        ]
        ids = [s.id for s in stack_records]

        options = {
            "stacks": stack_records,
            "layers": layers or {sid: list(layer_records) for sid in ids},
            "apps": {sid: apps for sid in ids},
            "instances": {sid: instances for sid in ids},
            # only the production stack has a load balancer
            "load_balancers": {ids[0]: load_balancers},
            "health": {"wordpress-lb": health},
            "history": {sid: history for sid in ids},
        }
        options.update(kwargs)
        return MockControlPlane(**options)

    return _make


@pytest.fixture
def mock_client(make_client) -> MockControlPlane:
    return make_client()
