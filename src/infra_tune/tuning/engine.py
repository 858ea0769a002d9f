"""
Tuning engine.

This engine sweeps classified nodes in a fixed order:
primary master, replica masters, console hosts, PuppetDB hosts,
external database hosts, compile masters.

Console and PuppetDB hosts only exist in a split install,
so they are skipped when the install is monolithic.

Safety
The sweep aborts on the first failing node. Nothing is returned for a
partial sweep, so callers never write settings for half a cluster.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from infra_tune.core.errors import InsufficientResources
from infra_tune.core.types import (
    CollectedNode,
    MasterConfiguration,
    NodeClassification,
    NodeResources,
    Settings,
    Totals,
)
from infra_tune.providers.base import ResourceProvider, SettingsCalculator
from infra_tune.topology.classify import ComponentLookup, components_for, require_known
from infra_tune.tuning.aggregate import SettingsAggregator
from infra_tune.tuning.capacity import (
    JRUBY_MAX_ACTIVE_INSTANCES,
    CapacityEstimate,
    CapacityEstimator,
    available_worker_units,
)
from infra_tune.tuning.gate import require_minimum

logger = logging.getLogger(__name__)

PRIMARY_MASTER = "Primary Master"
REPLICA_MASTER = "Replica Master"
CONSOLE_HOST = "Console Host"
PUPPETDB_HOST = "PuppetDB Host"
EXTERNAL_DATABASE_HOST = "External Database Host"
COMPILE_MASTER = "Compile Master"

JRUBY_9K_ENABLED = "puppet_enterprise::master::puppetserver::jruby_9k_enabled"

# Settings read and written by the tuner.
TUNABLE_SETTINGS: Tuple[str, ...] = (
    "puppet_enterprise::master::puppetserver::jruby_max_active_instances",
    "puppet_enterprise::master::puppetserver::reserved_code_cache",
    "puppet_enterprise::profile::amq::broker::heap_mb",
    "puppet_enterprise::profile::console::java_args",
    "puppet_enterprise::profile::database::shared_buffers",
    "puppet_enterprise::profile::master::java_args",
    "puppet_enterprise::profile::orchestrator::java_args",
    "puppet_enterprise::profile::puppetdb::java_args",
    "puppet_enterprise::puppetdb::command_processing_threads",
)


@dataclass(frozen=True)
class TuneConfig:
    """
    Tuning configuration.

    common
    Extract settings shared by every contributing node.

    estimate
    Run the capacity estimate after the sweep.

    force
    Do not enforce minimum system requirements.

    platform_jruby9k
    The platform always runs JRuby 9k, as Puppet 6 and later do.
    When False, the jruby_9k_enabled setting of each master decides.

    run_interval_seconds
    Agent run interval used by the capacity estimate.
    """

    common: bool = False
    estimate: bool = False
    force: bool = False
    platform_jruby9k: bool = True
    run_interval_seconds: int = 1800


@dataclass(frozen=True)
class TuneResult:
    """Output of a successful optimize sweep."""

    classification: NodeClassification
    nodes: List[CollectedNode]
    common: Settings
    available_worker_units: int
    capacity: Optional[CapacityEstimate] = None


@dataclass(frozen=True)
class CurrentNodeSettings:
    """Current settings of one node, with names defined twice."""

    hostname: str
    role_label: str
    settings: Settings
    duplicates: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CurrentReport:
    """Output of a current settings sweep."""

    classification: NodeClassification
    nodes: List[CurrentNodeSettings]
    available_worker_units: int
    capacity: Optional[CapacityEstimate] = None


class TuneEngine:
    """
    Tuning engine.

    classification
    Disjoint node categories. Must contain a primary master.

    lookup
    Component lookup used to tell the calculator what runs on each node.

    provider
    Node resources and current settings.

    calculator
    Sizing formulas.

    capacity
    Optional estimator, used when config.estimate is set.
    """

    def __init__(
        self,
        classification: NodeClassification,
        lookup: ComponentLookup,
        provider: ResourceProvider,
        calculator: SettingsCalculator,
        config: TuneConfig | None = None,
        capacity: CapacityEstimator | None = None,
    ) -> None:
        self._classification = require_known(classification)
        self._lookup = lookup
        self._provider = provider
        self._calculator = calculator
        self._config = config or TuneConfig()
        self._capacity = capacity

    def jruby9k_enabled(self, host: str) -> bool:
        """Return True when the master on host runs JRuby 9k."""
        if self._config.platform_jruby9k:
            return True
        settings, _duplicates = self._provider.settings_for(host, [JRUBY_9K_ENABLED])
        enabled = str(settings.get(JRUBY_9K_ENABLED, "true")).lower() != "false"
        logger.debug("jruby_9k_enabled for %s: %s", host, enabled)
        return enabled

    def _master_configuration(self, host: str, compile_master: bool) -> MasterConfiguration:
        if compile_master:
            return MasterConfiguration(
                is_monolithic=False,
                has_compile_masters=True,
                jruby9k_enabled=self.jruby9k_enabled(host),
            )
        return MasterConfiguration(
            is_monolithic=self._classification.is_monolithic,
            has_compile_masters=self._classification.has_compile_masters,
            jruby9k_enabled=self.jruby9k_enabled(host),
        )

    def _sweep_plan(self) -> List[Tuple[str, str]]:
        c = self._classification
        plan: List[Tuple[str, str]] = []
        plan.extend((h, PRIMARY_MASTER) for h in c.primary_masters)
        plan.extend((h, REPLICA_MASTER) for h in c.replica_masters)
        if not c.is_monolithic:
            plan.extend((h, CONSOLE_HOST) for h in c.console_hosts)
            plan.extend((h, PUPPETDB_HOST) for h in c.puppetdb_hosts)
        plan.extend((h, EXTERNAL_DATABASE_HOST) for h in c.external_database_hosts)
        plan.extend((h, COMPILE_MASTER) for h in c.compile_masters)
        return plan

    def _calculate(self, host: str, label: str, resources: NodeResources) -> Tuple[Settings, Totals]:
        calc = self._calculator
        if label in (PRIMARY_MASTER, REPLICA_MASTER, COMPILE_MASTER):
            configuration = self._master_configuration(host, label == COMPILE_MASTER)
            return calc.master_settings(resources, configuration, components_for(host, self._lookup))
        if label == CONSOLE_HOST:
            return calc.console_settings(resources)
        if label == PUPPETDB_HOST:
            return calc.puppetdb_settings(resources, components_for(host, self._lookup))
        return calc.database_settings(resources)

    def _estimate(self, worker_units: int) -> Optional[CapacityEstimate]:
        if not self._config.estimate or self._capacity is None:
            return None
        return self._capacity.estimate(worker_units, self._config.run_interval_seconds)

    def optimize(self) -> TuneResult:
        """
        Calculate optimized settings for every classified node.

        Steps per node
        1) read resources
        2) enforce minimum requirements
        3) calculate settings
        4) reject an empty result as insufficient
        5) collect
        """
        aggregator = SettingsAggregator(extract=self._config.common)
        worker_units = 0

        for host, label in self._sweep_plan():
            resources = self._provider.resources_for(host)
            require_minimum(host, resources, self._config.force)
            settings, totals = self._calculate(host, label, resources)
            if not settings:
                raise InsufficientResources(host)
            aggregator.collect(host, label, resources, settings, totals)
            if label in (PRIMARY_MASTER, COMPILE_MASTER):
                worker_units += available_worker_units(settings, resources)
            logger.debug("Calculated settings for %s %s", label, host)

        common = aggregator.extract_common()

        return TuneResult(
            classification=self._classification,
            nodes=aggregator.nodes(),
            common=common,
            available_worker_units=worker_units,
            capacity=self._estimate(worker_units),
        )

    def current(self) -> CurrentReport:
        """
        Read current settings for every classified node.

        Worker units come from the primary master,
        or from the compile masters alone when there are any.
        """
        nodes: List[CurrentNodeSettings] = []
        worker_units: Dict[str, int] = {}

        for host, label in self._sweep_plan():
            settings, duplicates = self._provider.settings_for(host, TUNABLE_SETTINGS)
            nodes.append(
                CurrentNodeSettings(
                    hostname=host,
                    role_label=label,
                    settings=dict(settings),
                    duplicates=list(duplicates),
                )
            )
            if label in (PRIMARY_MASTER, COMPILE_MASTER):
                # Resources are only needed for the platform default.
                resources = None
                if settings.get(JRUBY_MAX_ACTIVE_INSTANCES) is None:
                    resources = self._provider.resources_for(host)
                worker_units[host] = available_worker_units(settings, resources)

        if self._classification.has_compile_masters:
            total = sum(worker_units[h] for h in self._classification.compile_masters)
        else:
            total = sum(worker_units[h] for h in self._classification.primary_masters)

        return CurrentReport(
            classification=self._classification,
            nodes=nodes,
            available_worker_units=total,
            capacity=self._estimate(total),
        )


def build_engine(
    classification: NodeClassification,
    lookup: ComponentLookup,
    provider: ResourceProvider,
    calculator: SettingsCalculator,
    config: TuneConfig,
    capacity_factory: Optional[Callable[[], CapacityEstimator]] = None,
) -> TuneEngine:
    """Build an engine, creating the estimator only when an estimate is requested."""
    capacity = capacity_factory() if config.estimate and capacity_factory is not None else None
    return TuneEngine(
        classification=classification,
        lookup=lookup,
        provider=provider,
        calculator=calculator,
        config=config,
        capacity=capacity,
    )
