"""
Role to component expansion.

Why this file exists
A role says which host is responsible for something.
The tuner needs to know which services actually run on each host.

In a monolithic install the primary master runs everything.
As dedicated hosts are declared, services move off the primary master.
A replica always mirrors the full monolithic stack.

Each rule below only adds hosts to component sets.
expand unions every rule's contribution, so the order of the rules
never changes the result, and no rule stops the others from applying.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Set, Tuple

from infra_tune.core.types import Component, ComponentMap, Role, RoleMap, empty_component_map

logger = logging.getLogger(__name__)

ExpansionRule = Callable[[RoleMap], Dict[Component, Set[str]]]

# Components of a full monolithic master, minus the identity component.
MONOLITHIC_STACK: Tuple[Component, ...] = (
    Component.master,
    Component.console,
    Component.puppetdb,
    Component.database,
    Component.amq_broker,
    Component.orchestrator,
)


def _grant(host: str, components: Iterable[Component]) -> Dict[Component, Set[str]]:
    return {c: {host} for c in components}


def database_host_rule(roles: RoleMap) -> Dict[Component, Set[str]]:
    """An external database host runs the database."""
    if not roles.database_host:
        return {}
    logger.debug("Converting database_host role to components for: %s", roles.database_host)
    return _grant(roles.database_host, [Component.database])


def primary_master_rule(roles: RoleMap) -> Dict[Component, Set[str]]:
    """
    The primary master runs the master, broker, and orchestrator.

    It also keeps the console unless a console host is declared,
    keeps PuppetDB unless PuppetDB hosts are declared,
    and keeps the database unless either PuppetDB hosts or a database host is declared.
    """
    host = roles.puppet_master_host
    if not host:
        return {}
    logger.debug("Converting puppet_master_host role to components for: %s", host)

    components = [
        Component.primary_master,
        Component.master,
        Component.amq_broker,
        Component.orchestrator,
    ]
    if not roles.is_set(Role.console_host):
        components.append(Component.console)
    if not roles.is_set(Role.puppetdb_host):
        components.append(Component.puppetdb)
    if not roles.is_set(Role.puppetdb_host) and not roles.is_set(Role.database_host):
        components.append(Component.database)
    return _grant(host, components)


def console_host_rule(roles: RoleMap) -> Dict[Component, Set[str]]:
    """A console host runs the console."""
    if not roles.console_host:
        return {}
    logger.debug("Converting console_host role to components for: %s", roles.console_host)
    return _grant(roles.console_host, [Component.console])


def puppetdb_host_rule(roles: RoleMap) -> Dict[Component, Set[str]]:
    """
    Every PuppetDB host runs PuppetDB.

    Without a database host, only the first listed PuppetDB host runs the database.
    """
    if not roles.puppetdb_host:
        return {}

    out: Dict[Component, Set[str]] = {Component.puppetdb: set()}
    for host in roles.puppetdb_host:
        logger.debug("Converting puppetdb_host role to components for: %s", host)
        out[Component.puppetdb].add(host)
    if not roles.is_set(Role.database_host):
        out[Component.database] = {roles.puppetdb_host[0]}
    return out


def replica_rule(roles: RoleMap) -> Dict[Component, Set[str]]:
    """A replica mirrors the full monolithic stack regardless of other roles."""
    host = roles.primary_master_replica
    if not host:
        return {}
    logger.debug("Converting primary_master_replica role to components for: %s", host)
    return _grant(host, (Component.primary_master_replica,) + MONOLITHIC_STACK)


def compile_master_rule(roles: RoleMap) -> Dict[Component, Set[str]]:
    """Every compile master runs a master."""
    if not roles.compile_master:
        return {}
    out: Dict[Component, Set[str]] = {Component.compile_master: set(), Component.master: set()}
    for host in roles.compile_master:
        logger.debug("Converting compile_master role to components for: %s", host)
        out[Component.compile_master].add(host)
        out[Component.master].add(host)
    return out


EXPANSION_RULES: Tuple[ExpansionRule, ...] = (
    database_host_rule,
    primary_master_rule,
    console_host_rule,
    puppetdb_host_rule,
    replica_rule,
    compile_master_rule,
)


def expand(roles: RoleMap, rules: Iterable[ExpansionRule] = EXPANSION_RULES) -> ComponentMap:
    """
    Expand roles into a fresh component map.

    The returned map always contains every Component key.
    """
    components = empty_component_map()
    for rule in rules:
        for component, hosts in rule(roles).items():
            components[component] |= hosts
    return components


def components_of(host: str, components: ComponentMap) -> Set[Component]:
    """Return the set of components running on a host."""
    return {c for c, hosts in components.items() if host in hosts}
