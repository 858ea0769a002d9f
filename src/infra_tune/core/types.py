"""
Core types.

This file defines the shared data structures used across the tuner.

Important design choice
Roles and components are kept apart.

A role is what the declared topology says a host is responsible for.
A component is a service that actually runs on a host.
Components are always derived from roles, or reported by the classifier service.
They are never authored by hand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple


class Role(str, Enum):
    """
    Topology roles.

    puppet_master_host
      The primary master. Exactly one.

    console_host
      Dedicated console node in a split install.

    puppetdb_host
      Dedicated PuppetDB nodes. May be several.

    database_host
      External PostgreSQL node.

    primary_master_replica
      High availability replica of the primary master.

    compile_master
      Additional masters that only compile catalogs. May be several.
    """

    puppet_master_host = "puppet_master_host"
    console_host = "console_host"
    puppetdb_host = "puppetdb_host"
    database_host = "database_host"
    primary_master_replica = "primary_master_replica"
    compile_master = "compile_master"


MULTI_VALUED_ROLES = frozenset({Role.puppetdb_host, Role.compile_master})


class Component(str, Enum):
    """
    Services that run on a host.

    Values match the class names used by the classifier, in lower case.
    """

    master = "master"
    console = "console"
    puppetdb = "puppetdb"
    database = "database"
    amq_broker = "amq::broker"
    orchestrator = "orchestrator"
    primary_master = "primary_master"
    primary_master_replica = "primary_master_replica"
    compile_master = "compile_master"


ComponentMap = Dict[Component, Set[str]]
Settings = Dict[str, Any]
Totals = Dict[str, Any]


def empty_component_map() -> ComponentMap:
    """Return a component map with every component present and empty."""
    return {c: set() for c in Component}


def _single(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
        if value is None:
            return None
    text = str(value).strip()
    return text or None


def _multi(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = [value]
    return tuple(str(v).strip() for v in items if v is not None and str(v).strip())


@dataclass(frozen=True)
class RoleMap:
    """
    Canonical role assignments.

    Single valued roles are None when unset.
    Multi valued roles are an empty tuple when unset.
    List order is preserved as supplied by the source, because the first
    PuppetDB host is the one that inherits the database.
    """

    puppet_master_host: Optional[str] = None
    console_host: Optional[str] = None
    puppetdb_host: Tuple[str, ...] = ()
    database_host: Optional[str] = None
    primary_master_replica: Optional[str] = None
    compile_master: Tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "RoleMap":
        """
        Build a RoleMap from a raw document mapping.

        Unknown keys are ignored.
        A scalar value for a multi valued role becomes a one element tuple.
        """
        raw = raw or {}
        kwargs: Dict[str, Any] = {}
        for role in Role:
            if role.value not in raw:
                continue
            if role in MULTI_VALUED_ROLES:
                kwargs[role.value] = _multi(raw[role.value])
            else:
                kwargs[role.value] = _single(raw[role.value])
        return cls(**kwargs)

    def get(self, role: Role) -> Any:
        """Return the value for a role."""
        return getattr(self, role.value)

    def is_set(self, role: Role) -> bool:
        """Return True if the role has a non empty value."""
        return bool(self.get(role))

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain dict, with multi valued roles as lists."""
        out: Dict[str, Any] = {}
        for role in Role:
            value = self.get(role)
            out[role.value] = list(value) if role in MULTI_VALUED_ROLES else value
        return out


@dataclass(frozen=True)
class NodeResources:
    """
    Hardware resources of a node.

    ram_mb is total system memory in megabytes.
    """

    cpu: int
    ram_mb: int


@dataclass(frozen=True)
class NodeComponents:
    """
    Components present on one node, as handed to the settings calculator.
    """

    activemq: bool = False
    console: bool = False
    database: bool = False
    orchestrator: bool = False
    puppetdb: bool = False


@dataclass(frozen=True)
class MasterConfiguration:
    """
    Cluster level facts that change how master settings are sized.
    """

    is_monolithic: bool
    has_compile_masters: bool
    jruby9k_enabled: bool


@dataclass(frozen=True)
class NodeClassification:
    """
    Disjoint node categories.

    primary_masters holds exactly one host when classification succeeded.
    Any host in none of these tuples is not tracked.

    Disjointness is maintained by the subtraction order in classify,
    not by construction, so disjoint is offered as a check.
    """

    primary_masters: Tuple[str, ...] = ()
    replica_masters: Tuple[str, ...] = ()
    compile_masters: Tuple[str, ...] = ()
    console_hosts: Tuple[str, ...] = ()
    puppetdb_hosts: Tuple[str, ...] = ()
    external_database_hosts: Tuple[str, ...] = ()

    @property
    def is_unknown(self) -> bool:
        return len(self.primary_masters) == 0

    @property
    def is_monolithic(self) -> bool:
        return not self.console_hosts and not self.puppetdb_hosts

    @property
    def has_replica(self) -> bool:
        return len(self.replica_masters) > 0

    @property
    def has_compile_masters(self) -> bool:
        return len(self.compile_masters) > 0

    @property
    def has_external_database(self) -> bool:
        return len(self.external_database_hosts) > 0

    def categories(self) -> List[Tuple[str, ...]]:
        return [
            self.primary_masters,
            self.replica_masters,
            self.compile_masters,
            self.console_hosts,
            self.puppetdb_hosts,
            self.external_database_hosts,
        ]

    def all_hosts(self) -> List[str]:
        """Return every classified host."""
        hosts: List[str] = []
        for group in self.categories():
            hosts.extend(group)
        return hosts

    def disjoint(self) -> bool:
        """Return True if no host appears in more than one category."""
        hosts = self.all_hosts()
        return len(hosts) == len(set(hosts))

    def summary(self) -> str:
        """Human readable infrastructure type."""
        kind = "Monolithic" if self.is_monolithic else "Split"
        text = f"{kind} Infrastructure"
        if self.has_compile_masters:
            text += " with Compile Masters"
        if self.has_external_database:
            text += " with External Database"
        return text


@dataclass
class CollectedNode:
    """
    One processed node.

    role_label is the human readable category, such as Primary Master.
    settings is mutated by common settings extraction.
    """

    hostname: str
    role_label: str
    resources: NodeResources
    settings: Settings = field(default_factory=dict)
    totals: Totals = field(default_factory=dict)


def sorted_hosts(hosts: Iterable[str]) -> Tuple[str, ...]:
    """Return hosts as a sorted tuple. Useful for deterministic outputs."""
    return tuple(sorted(set(hosts)))
