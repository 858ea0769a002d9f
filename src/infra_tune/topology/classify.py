"""
Node classification.

This module partitions hostnames into disjoint categories by ordered set
subtraction. The order is load bearing:

primary       = the single declared primary master
replica       = hosts with primary_master_replica - primary
compile       = (hosts with master or compile_master) - primary - replica
console       = hosts with console - primary - replica
puppetdb      = hosts with puppetdb - primary - replica - compile
external_db   = hosts with database - primary - replica - compile - puppetdb

A replica also runs master, console, puppetdb, and database,
and a compile master may run puppetdb, so each category subtracts every
category before it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Set

from infra_tune.core.errors import UnknownTopology
from infra_tune.core.types import (
    Component,
    ComponentMap,
    NodeClassification,
    NodeComponents,
    sorted_hosts,
)

logger = logging.getLogger(__name__)


class ComponentLookup(Protocol):
    """Answer which hosts run a component."""

    def hosts_with(self, component: Component) -> Set[str]:
        """Return hosts running the component."""


@dataclass(frozen=True)
class MappingComponentLookup(ComponentLookup):
    """
    Lookup backed by an expanded ComponentMap.

    fallback is consulted for components missing from the map.
    """

    components: ComponentMap
    fallback: Optional[ComponentLookup] = None

    def hosts_with(self, component: Component) -> Set[str]:
        if component in self.components:
            hosts = set(self.components[component])
            logger.debug("Found class in inventory: %s: %s", component.value, sorted(hosts))
            return hosts
        if self.fallback is not None:
            return self.fallback.hosts_with(component)
        return set()


def classify(primary: Optional[str], lookup: ComponentLookup) -> NodeClassification:
    """
    Partition hosts into NodeClassification.

    primary is the canonical puppet_master_host.
    When it is missing, the classification is unknown and every tuple is empty.
    """
    if not primary:
        return NodeClassification()

    primaries = {primary}
    replicas = lookup.hosts_with(Component.primary_master_replica) - primaries
    m_or_cm = lookup.hosts_with(Component.master) | lookup.hosts_with(Component.compile_master)

    compiles = m_or_cm - primaries - replicas
    consoles = lookup.hosts_with(Component.console) - primaries - replicas
    puppetdbs = lookup.hosts_with(Component.puppetdb) - primaries - replicas - compiles
    databases = (
        lookup.hosts_with(Component.database) - primaries - replicas - compiles - puppetdbs
    )

    return NodeClassification(
        primary_masters=(primary,),
        replica_masters=sorted_hosts(replicas),
        compile_masters=sorted_hosts(compiles),
        console_hosts=sorted_hosts(consoles),
        puppetdb_hosts=sorted_hosts(puppetdbs),
        external_database_hosts=sorted_hosts(databases),
    )


def require_known(classification: NodeClassification) -> NodeClassification:
    """Raise UnknownTopology when no primary master was found."""
    if classification.is_unknown:
        raise UnknownTopology(
            "Puppet Infrastructure Summary: Unknown Infrastructure. "
            "Unable to find a Primary Master. "
            "Verify PE Infrastructure node groups in the Console."
        )
    return classification


def components_for(host: str, lookup: ComponentLookup) -> NodeComponents:
    """Return the components of one node, as handed to the settings calculator."""
    return NodeComponents(
        activemq=host in lookup.hosts_with(Component.amq_broker),
        console=host in lookup.hosts_with(Component.console),
        database=host in lookup.hosts_with(Component.database),
        orchestrator=host in lookup.hosts_with(Component.orchestrator),
        puppetdb=host in lookup.hosts_with(Component.puppetdb),
    )
