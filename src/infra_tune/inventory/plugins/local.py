"""
Local system plugin.

Queries the machine the tool runs on and declares it as a monolithic
primary master. This removes the dependency on PuppetDB entirely.

The probe is an interface so tests do not depend on the host they run on.
"""

from __future__ import annotations

import logging
import os
import socket
from dataclasses import dataclass, field
from typing import Protocol

from infra_tune.core.types import RoleMap
from infra_tune.inventory.plugins.base import TopologyDocument, TopologySource
from infra_tune.inventory.store import InventoryStore, NodeEntry

logger = logging.getLogger(__name__)


class SystemProbe(Protocol):
    """Minimal interface to the facts of the local machine."""

    def hostname(self) -> str:
        """Return the fully qualified hostname."""

    def cpu_count(self) -> int:
        """Return the number of logical processors."""

    def ram_bytes(self) -> int:
        """Return total system memory in bytes."""


@dataclass(frozen=True)
class HostSystemProbe(SystemProbe):
    """Default probe using the standard library."""

    def hostname(self) -> str:
        return socket.getfqdn()

    def cpu_count(self) -> int:
        return os.cpu_count() or 1

    def ram_bytes(self) -> int:
        return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")


@dataclass(frozen=True)
class LocalSystemPlugin(TopologySource):
    """
    Define a single node topology from the local machine.

    The host becomes puppet_master_host and no other role is declared,
    so role expansion places every component on it.
    """

    probe: SystemProbe = field(default_factory=HostSystemProbe)

    def load(self) -> TopologyDocument:
        logger.debug("Querying the local system to define a monolithic infrastructure master node")
        hostname = self.probe.hostname()
        entry = NodeEntry(
            hostname=hostname,
            cpu=self.probe.cpu_count(),
            ram=f"{self.probe.ram_bytes()}b",
        )
        logger.debug("Found resources on the local system: %s", entry)

        store = InventoryStore()
        store.add(entry)
        return TopologyDocument(roles=RoleMap(puppet_master_host=hostname), nodes=store)
