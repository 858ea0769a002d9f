"""
Collaborator interfaces.

Goal
Define stable interfaces for everything the tuner does not compute itself:
node facts, classifier queries, current settings, the sizing formulas,
and the capacity formulas.

Real implementations wrap the classifier, PuppetDB, and the calculator.
We keep the interfaces narrow for testability.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Set, Tuple

from infra_tune.core.types import (
    Component,
    MasterConfiguration,
    NodeComponents,
    NodeResources,
    Settings,
    Totals,
)


class ResourceProvider(Protocol):
    """
    Node facts and classifier state.

    resources_for
    Returns cpu and ram_mb for a node.

    hosts_with_component
    Returns hosts whose classification includes the component.

    settings_for
    Returns current settings for the requested names, and the names defined
    in both the classifier and Hiera.
    """

    def resources_for(self, host: str) -> NodeResources:
        """Return node resources."""

    def hosts_with_component(self, component: Component) -> Set[str]:
        """Return hosts running a component."""

    def settings_for(self, host: str, names: Sequence[str]) -> Tuple[Settings, List[str]]:
        """Return current settings and duplicate setting names."""


class SettingsCalculator(Protocol):
    """
    Sizing formulas.

    Every method returns settings and totals.
    An empty settings result means the node is too small to tune.
    """

    def master_settings(
        self,
        resources: NodeResources,
        configuration: MasterConfiguration,
        components: NodeComponents,
    ) -> Tuple[Settings, Totals]:
        """Settings for primary, replica, and compile masters."""

    def console_settings(self, resources: NodeResources) -> Tuple[Settings, Totals]:
        """Settings for a dedicated console host."""

    def puppetdb_settings(
        self,
        resources: NodeResources,
        components: NodeComponents,
    ) -> Tuple[Settings, Totals]:
        """Settings for a dedicated PuppetDB host."""

    def database_settings(self, resources: NodeResources) -> Tuple[Settings, Totals]:
        """Settings for an external database host."""


class CapacityFormulas(Protocol):
    """Statistical capacity formulas."""

    def sample_size(self, active_nodes: int, run_interval: int) -> int:
        """Number of recent reports to average compile time over."""

    def maximum_nodes(
        self,
        average_compile_time: float,
        available_worker_units: int,
        run_interval: int,
    ) -> int:
        """Maximum active nodes the given worker units can serve."""

    def minimum_worker_units(
        self,
        active_nodes: int,
        average_compile_time: float,
        run_interval: int,
    ) -> int:
        """Minimum worker units required to serve the active nodes."""


class ClusterMetrics(Protocol):
    """Historical workload metrics."""

    def active_nodes(self) -> int:
        """Number of active agent nodes."""

    def average_compile_time(self, sample_size: int) -> float:
        """Average catalog compile time in seconds over recent reports."""


@dataclass(frozen=True)
class CalculatorOptions:
    """
    Options handed to a settings calculator factory.

    Zero means not configured, and the calculator uses its own default.
    """

    memory_per_jruby_mb: int = 0
    memory_reserved_for_os_mb: int = 0


@dataclass(frozen=True)
class Backend:
    """
    Bundle of collaborators loaded by the command line.

    calculator is required.
    provider answers queries for nodes not in an override inventory.
    metrics and formulas are only needed for capacity estimates.
    """

    calculator: SettingsCalculator
    provider: Optional[ResourceProvider] = None
    metrics: Optional[ClusterMetrics] = None
    formulas: Optional[CapacityFormulas] = None
