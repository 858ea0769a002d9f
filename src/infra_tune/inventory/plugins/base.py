"""
Topology source interfaces.

Goal
Provide pluggable override sources so the tuner does not depend on the
classifier and PuppetDB when an operator already knows the topology.

Each source is normalized into a TopologyDocument: a RoleMap plus an
InventoryStore of node resources.

We keep the interface narrow so it is easy to mock in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from infra_tune.core.types import RoleMap
from infra_tune.inventory.store import InventoryStore


@dataclass(frozen=True)
class TopologyDocument:
    """
    Normalized override topology.

    roles are the declared roles of the document.
    nodes hold the resources of every node the document knows about.
    """

    roles: RoleMap
    nodes: InventoryStore = field(default_factory=InventoryStore)


class TopologySource(Protocol):
    """
    Topology source interface.

    load returns a fully populated TopologyDocument.
    """

    def load(self) -> TopologyDocument:
        """Load the document."""
