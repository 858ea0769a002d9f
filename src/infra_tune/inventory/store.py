"""
Inventory store.

We keep a simple in memory store of node resources as declared by an
inventory source. Values are kept as supplied, such as "16g", and parsed
when a provider answers a resources query.

Why not parse on load
A node that is never classified should not fail the run because of a typo in
its RAM value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional


@dataclass(frozen=True)
class NodeEntry:
    """
    Raw resources for one node.

    cpu is a logical processor count.
    ram is a size string, with gigabytes as the default unit.
    """

    hostname: str
    cpu: Optional[Any] = None
    ram: Optional[Any] = None

    def has_resources(self) -> bool:
        return self.cpu is not None or self.ram is not None


@dataclass
class InventoryStore:
    """
    Simple node registry keyed by hostname.
    """

    _nodes: Dict[str, NodeEntry] = field(default_factory=dict)

    def add(self, entry: NodeEntry) -> None:
        """Add or replace a node entry."""
        self._nodes[entry.hostname] = entry

    def get(self, hostname: str) -> Optional[NodeEntry]:
        """Return node entry if present."""
        return self._nodes.get(hostname)

    def names(self) -> List[str]:
        """Return sorted hostnames. Useful for deterministic outputs."""
        return sorted(self._nodes.keys())

    def __contains__(self, hostname: object) -> bool:
        return hostname in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeEntry]:
        """Allow for loops over InventoryStore."""
        return iter(self._nodes.values())
