"""
Minimum system requirements gate.

Settings sized for an undersized node would be unsafe to deploy,
so a node below the floor aborts the run unless forced.
"""

from __future__ import annotations

from infra_tune.core.errors import InsufficientResources
from infra_tune.core.types import NodeResources

MINIMUM_CPU = 4
MINIMUM_RAM_MB = 8192


def meets_minimum(resources: NodeResources, force: bool = False) -> bool:
    """Return True if the node meets the floor, or force is set."""
    if force:
        return True
    return resources.cpu >= MINIMUM_CPU and resources.ram_mb >= MINIMUM_RAM_MB


def require_minimum(host: str, resources: NodeResources, force: bool = False) -> None:
    """Raise InsufficientResources when the node does not meet the floor."""
    if not meets_minimum(resources, force):
        raise InsufficientResources(host)
