"""Adapters — control-plane bindings.

Public re-exports for convenient access.
"""

from opsfleet.adapters.base import ControlPlane
from opsfleet.adapters.mock import MockControlPlane

__all__ = [
    "ControlPlane",
    "MockControlPlane",
]
