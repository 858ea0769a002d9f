"""
In memory collaborators.

These are used for tests and local simulations.
They behave like the classifier, PuppetDB, and the calculator, backed by dicts.

Features
- The provider serves resources, class membership, and current settings
- The calculator records every call and returns configured results
- The capacity formulas use plain arithmetic so estimates are easy to check
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Set, Tuple

from infra_tune.core.context import RuntimeContext
from infra_tune.core.errors import InvalidInventory
from infra_tune.core.types import (
    Component,
    MasterConfiguration,
    NodeComponents,
    NodeResources,
    Settings,
    Totals,
)
from infra_tune.providers.base import (
    Backend,
    CalculatorOptions,
    CapacityFormulas,
    ClusterMetrics,
    ResourceProvider,
    SettingsCalculator,
)


@dataclass
class InMemoryProvider(ResourceProvider):
    """
    In memory provider.

    resources
    Host to NodeResources.

    components
    Component to hosts, as the classifier would report it.

    settings
    Host to current settings.

    duplicates
    Host to names defined in both the classifier and Hiera.
    """

    resources: Dict[str, NodeResources] = field(default_factory=dict)
    components: Dict[Component, Set[str]] = field(default_factory=dict)
    settings: Dict[str, Settings] = field(default_factory=dict)
    duplicates: Dict[str, List[str]] = field(default_factory=dict)
    queries: List[str] = field(default_factory=list)

    def resources_for(self, host: str) -> NodeResources:
        self.queries.append(host)
        if host not in self.resources:
            raise InvalidInventory(f"Cannot query resources for node: {host}")
        return self.resources[host]

    def hosts_with_component(self, component: Component) -> Set[str]:
        return set(self.components.get(component, set()))

    def settings_for(self, host: str, names: Sequence[str]) -> Tuple[Settings, List[str]]:
        current = self.settings.get(host, {})
        found = {k: v for k, v in current.items() if k in names}
        return found, list(self.duplicates.get(host, []))


@dataclass
class InMemoryCalculator(SettingsCalculator):
    """
    Calculator returning configured results.

    results maps master, console, puppetdb, or database to settings and totals.
    by_cpu maps a cpu count to a results override, so tests can give nodes
    different settings through their resources.
    calls records (kind, resources, configuration, components) in call order.
    """

    results: Dict[str, Tuple[Settings, Totals]] = field(default_factory=dict)
    by_cpu: Dict[int, Tuple[Settings, Totals]] = field(default_factory=dict)
    calls: List[Tuple[str, NodeResources, Any, Any]] = field(default_factory=list)

    def _result(self, kind: str, resources: NodeResources) -> Tuple[Settings, Totals]:
        settings, totals = self.by_cpu.get(resources.cpu, self.results.get(kind, ({}, {})))
        return dict(settings), dict(totals)

    def master_settings(
        self,
        resources: NodeResources,
        configuration: MasterConfiguration,
        components: NodeComponents,
    ) -> Tuple[Settings, Totals]:
        self.calls.append(("master", resources, configuration, components))
        return self._result("master", resources)

    def console_settings(self, resources: NodeResources) -> Tuple[Settings, Totals]:
        self.calls.append(("console", resources, None, None))
        return self._result("console", resources)

    def puppetdb_settings(
        self,
        resources: NodeResources,
        components: NodeComponents,
    ) -> Tuple[Settings, Totals]:
        self.calls.append(("puppetdb", resources, None, components))
        return self._result("puppetdb", resources)

    def database_settings(self, resources: NodeResources) -> Tuple[Settings, Totals]:
        self.calls.append(("database", resources, None, None))
        return self._result("database", resources)


@dataclass
class InMemoryMetrics(ClusterMetrics):
    """Fixed workload metrics. sample_sizes records requested sample sizes."""

    active: int = 0
    compile_time: float = 0.0
    sample_sizes: List[int] = field(default_factory=list)

    def active_nodes(self) -> int:
        return self.active

    def average_compile_time(self, sample_size: int) -> float:
        self.sample_sizes.append(sample_size)
        return self.compile_time


@dataclass(frozen=True)
class ArithmeticCapacityFormulas(CapacityFormulas):
    """
    Plain arithmetic capacity formulas.

    One worker unit serves run_interval / compile_time agents per run interval.
    """

    max_sample: int = 1000

    def sample_size(self, active_nodes: int, run_interval: int) -> int:
        return max(1, min(active_nodes, self.max_sample))

    def maximum_nodes(
        self,
        average_compile_time: float,
        available_worker_units: int,
        run_interval: int,
    ) -> int:
        if average_compile_time <= 0:
            return 0
        return int(available_worker_units * run_interval / average_compile_time)

    def minimum_worker_units(
        self,
        active_nodes: int,
        average_compile_time: float,
        run_interval: int,
    ) -> int:
        if run_interval <= 0:
            return 0
        return math.ceil(active_nodes * average_compile_time / run_interval)


def demo_backend(options: CalculatorOptions, context: RuntimeContext) -> Backend:
    """
    Backend for demos and command line tests.

    Every master gets the same settings, so common extraction has something to do.
    The node the tool runs on is sized at the minimum requirements.
    """
    master = {
        "puppet_enterprise::master::puppetserver::jruby_max_active_instances": 3,
        "puppet_enterprise::profile::master::java_args": {"Xms": "2048m", "Xmx": "2048m"},
    }
    if options.memory_per_jruby_mb:
        master["puppet_enterprise::master::puppetserver::jruby_max_active_instances"] = max(
            1, 6144 // options.memory_per_jruby_mb
        )
    calculator = InMemoryCalculator(
        results={
            "master": (master, {"CPU": {"total": 4, "used": 3}, "RAM": {"total": 8192, "used": 4096}}),
            "console": ({"puppet_enterprise::profile::console::java_args": {"Xms": "512m", "Xmx": "512m"}}, {}),
            "puppetdb": ({"puppet_enterprise::puppetdb::command_processing_threads": 2}, {}),
            "database": ({"puppet_enterprise::profile::database::shared_buffers": "2048MB"}, {}),
        }
    )
    return Backend(
        calculator=calculator,
        provider=InMemoryProvider(resources={context.certname: NodeResources(cpu=4, ram_mb=8192)}),
        metrics=InMemoryMetrics(active=100, compile_time=20.0),
        formulas=ArithmeticCapacityFormulas(),
    )
