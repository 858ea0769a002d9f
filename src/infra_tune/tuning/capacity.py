"""
Capacity estimation.

This module only plumbs data between collaborators.
The statistics live in CapacityFormulas and ClusterMetrics.

Flow
1. Read the active node count.
2. Ask the formulas for a report sample size.
3. Ask the metrics for the average compile time over that sample.
4. Ask the formulas how many nodes the available worker units can serve,
   and how many worker units the active nodes need.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from infra_tune.core.types import NodeResources, Settings
from infra_tune.providers.base import CapacityFormulas, ClusterMetrics

JRUBY_MAX_ACTIVE_INSTANCES = "puppet_enterprise::master::puppetserver::jruby_max_active_instances"
MAX_DEFAULT_WORKER_UNITS = 4


def available_worker_units(settings: Settings, resources: Optional[NodeResources]) -> int:
    """
    Worker units of one master.

    The configured jruby_max_active_instances when set,
    else the platform default of cpu - 1, capped at 4.
    """
    configured = settings.get(JRUBY_MAX_ACTIVE_INSTANCES)
    if configured is not None:
        return int(configured)
    if resources is None:
        return 0
    return min(resources.cpu - 1, MAX_DEFAULT_WORKER_UNITS)


@dataclass(frozen=True)
class CapacityEstimate:
    """
    Structured output of capacity estimation.

    maximum_servable_nodes
    Active nodes the available worker units can serve.

    minimum_required_worker_units
    Worker units required to serve the current active nodes.
    """

    active_nodes: int
    run_interval_seconds: int
    average_compile_time_seconds: float
    available_worker_units: int
    maximum_servable_nodes: int
    minimum_required_worker_units: int

    def explanation(self) -> List[str]:
        """Report lines: the given inputs, then both estimates."""
        return [
            f"Given: Available JRubies: {self.available_worker_units}, "
            f"Agent Run Interval: {self.run_interval_seconds} Seconds, "
            f"Average Compile Time: {self.average_compile_time_seconds} Seconds",
            f"Estimate: a maximum of {self.maximum_servable_nodes} Active Nodes "
            f"can be served by {self.available_worker_units} Available JRubies",
            f"Estimate: a minimum of {self.minimum_required_worker_units} Available JRubies "
            f"is required to serve {self.active_nodes} Active Nodes",
        ]


class CapacityEstimator:
    """Façade over the capacity collaborators."""

    def __init__(self, formulas: CapacityFormulas, metrics: ClusterMetrics) -> None:
        self._formulas = formulas
        self._metrics = metrics

    def estimate(self, worker_units: int, run_interval: int) -> CapacityEstimate:
        active_nodes = self._metrics.active_nodes()
        sample = self._formulas.sample_size(active_nodes, run_interval)
        average = self._metrics.average_compile_time(sample)
        return CapacityEstimate(
            active_nodes=active_nodes,
            run_interval_seconds=run_interval,
            average_compile_time_seconds=average,
            available_worker_units=worker_units,
            maximum_servable_nodes=self._formulas.maximum_nodes(average, worker_units, run_interval),
            minimum_required_worker_units=self._formulas.minimum_worker_units(
                active_nodes, average, run_interval
            ),
        )
