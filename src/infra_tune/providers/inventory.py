"""
Inventory backed provider.

Answers resource queries from an override inventory first, then from a
fallback provider such as the PuppetDB backed one.

The CPU and RAM test overrides from the RuntimeContext are applied last,
so they win over every source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from infra_tune.core.context import RuntimeContext
from infra_tune.core.errors import InvalidInventory
from infra_tune.core.types import Component, NodeResources, Settings
from infra_tune.core.units import parse_bytes
from infra_tune.inventory.store import InventoryStore
from infra_tune.providers.base import ResourceProvider
from infra_tune.topology.classify import ComponentLookup

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass
class InventoryResourceProvider(ResourceProvider):
    """
    Resource provider over an InventoryStore.

    fallback
    Optional provider for nodes missing from the store, and for classifier
    and settings queries. Without one, those queries return empty results.
    """

    store: InventoryStore
    context: RuntimeContext
    fallback: Optional[ResourceProvider] = None

    def _base_resources(self, host: str) -> NodeResources:
        entry = self.store.get(host)
        if entry is not None:
            if not entry.has_resources():
                raise InvalidInventory(f"Cannot read resources for node: {host}")
            resources = NodeResources(
                cpu=int(entry.cpu or 0),
                ram_mb=parse_bytes(entry.ram) // MB,
            )
            logger.debug(
                "Found node in inventory: %s with CPU: %s and RAM: %s",
                host,
                resources.cpu,
                resources.ram_mb,
            )
            return resources

        if self.fallback is not None:
            return self.fallback.resources_for(host)

        raise InvalidInventory(f"Cannot query resources for node: {host}")

    def resources_for(self, host: str) -> NodeResources:
        resources = self._base_resources(host)
        cpu, ram_mb = resources.cpu, resources.ram_mb
        if self.context.test_cpu is not None:
            logger.debug("Using TEST_CPU=%s for %s", self.context.test_cpu, host)
            cpu = self.context.test_cpu
        if self.context.test_ram_mb is not None:
            logger.debug("Using TEST_RAM=%s for %s", self.context.test_ram_mb, host)
            ram_mb = self.context.test_ram_mb
        return NodeResources(cpu=cpu, ram_mb=ram_mb)

    def hosts_with_component(self, component: Component) -> Set[str]:
        if self.fallback is None:
            return set()
        return self.fallback.hosts_with_component(component)

    def settings_for(self, host: str, names: Sequence[str]) -> Tuple[Settings, List[str]]:
        if self.fallback is None:
            return {}, []
        return self.fallback.settings_for(host, names)


@dataclass
class ProviderComponentLookup(ComponentLookup):
    """
    Component lookup backed by a provider's classifier queries.

    Results are cached, so each component is queried once per run.
    """

    provider: ResourceProvider
    _cache: Dict[Component, Set[str]] = field(default_factory=dict)

    def hosts_with(self, component: Component) -> Set[str]:
        if component not in self._cache:
            hosts = set(self.provider.hosts_with_component(component))
            logger.debug("Found class in classifier: %s: %s", component.value, sorted(hosts))
            self._cache[component] = hosts
        return set(self._cache[component])
