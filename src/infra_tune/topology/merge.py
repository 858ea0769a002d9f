"""
Topology source merging.

This module produces one canonical RoleMap from:
- the declared topology, which is authoritative
- an optional override, which is either an inventory file or a local probe

Precedence rules
1. The declared primary master must be the node we run on.
2. An override's puppet_master_host wins when it is set.
3. console_host, puppetdb_host, and database_host come from the override,
   and are back filled from the declared topology only where the override
   left them unset.
4. primary_master_replica and compile_master come from the override only.
5. The local probe models a single node install, so nothing is back filled.

When an override is used, roles are expanded into components here,
so the classifier never needs the classifier service.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from infra_tune.core.context import RuntimeContext
from infra_tune.core.errors import ConflictingOverrides, NoPrimaryMaster
from infra_tune.core.serialization import component_map_to_dict
from infra_tune.core.types import ComponentMap, Role, RoleMap
from infra_tune.inventory.declared import DeclaredTopology
from infra_tune.inventory.plugins.base import TopologySource
from infra_tune.inventory.plugins.local import HostSystemProbe, LocalSystemPlugin, SystemProbe
from infra_tune.inventory.plugins.static import StaticInventoryPlugin
from infra_tune.inventory.store import InventoryStore
from infra_tune.topology.roles import expand

logger = logging.getLogger(__name__)

BACKFILLED_ROLES = (Role.console_host, Role.puppetdb_host, Role.database_host)


@dataclass(frozen=True)
class MergedTopology:
    """
    Result of merging.

    roles
    The canonical role map.

    nodes
    Node resources from the override. Empty without an override.

    components
    Expanded components when an override was used, else None.
    None tells the classifier to ask the classifier service instead.
    """

    roles: RoleMap
    nodes: InventoryStore = field(default_factory=InventoryStore)
    components: Optional[ComponentMap] = None

    @property
    def from_override(self) -> bool:
        return self.components is not None


def select_override_source(
    inventory_path: Optional[Path] = None,
    use_local: bool = False,
    local_probe: Optional[SystemProbe] = None,
) -> Optional[TopologySource]:
    """
    Choose the override source.

    An inventory file and the local probe are mutually exclusive.
    """
    if inventory_path is not None and use_local:
        raise ConflictingOverrides("The --inventory and --local options are mutually exclusive")
    if use_local:
        return LocalSystemPlugin(probe=local_probe or HostSystemProbe())
    if inventory_path is not None:
        return StaticInventoryPlugin(path=Path(inventory_path))
    return None


def apply_override(declared: RoleMap, override: RoleMap, backfill: bool = True) -> RoleMap:
    """
    Merge an override RoleMap over the declared RoleMap.

    Pure function. Neither input is modified.
    """
    primary = override.puppet_master_host or declared.puppet_master_host
    merged = dataclasses.replace(override, puppet_master_host=primary)
    if not backfill:
        return merged

    changes = {}
    for role in BACKFILLED_ROLES:
        if not override.is_set(role) and declared.is_set(role):
            changes[role.value] = declared.get(role)
    return dataclasses.replace(merged, **changes)


class TopologyMerger:
    """
    Merge the declared topology with an optional override.

    Conflicting overrides are rejected here, before any source is read.
    """

    def __init__(
        self,
        context: RuntimeContext,
        declared: DeclaredTopology,
        inventory_path: Optional[Path] = None,
        use_local: bool = False,
        local_probe: Optional[SystemProbe] = None,
    ) -> None:
        self._context = context
        self._declared = declared
        self._use_local = use_local
        self._override = select_override_source(inventory_path, use_local, local_probe)

    def merge(self) -> MergedTopology:
        """
        Produce the canonical topology.

        Raises NoPrimaryMaster when the declared primary master is not this node.
        """
        declared = self._declared.roles()
        if not declared.puppet_master_host or declared.puppet_master_host != self._context.certname:
            raise NoPrimaryMaster(
                "This command must be run on the Primary Master "
                "with a puppet_master_host defined in pe.conf"
            )

        if self._override is None:
            return MergedTopology(roles=declared)

        document = self._override.load()
        roles = apply_override(declared, document.roles, backfill=not self._use_local)
        components = expand(roles)
        logger.debug("Merged roles: %s", roles.to_dict())
        logger.debug("Expanded components: %s", component_map_to_dict(components))
        return MergedTopology(roles=roles, nodes=document.nodes, components=components)
