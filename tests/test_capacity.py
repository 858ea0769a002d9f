from infra_tune.core.types import NodeResources
from infra_tune.providers.mock import ArithmeticCapacityFormulas, InMemoryMetrics
from infra_tune.tuning.capacity import (
    JRUBY_MAX_ACTIVE_INSTANCES,
    CapacityEstimator,
    available_worker_units,
)


def test_configured_worker_units_win():
    assert available_worker_units({JRUBY_MAX_ACTIVE_INSTANCES: 6}, NodeResources(cpu=16, ram_mb=32768)) == 6


def test_default_worker_units_are_cpu_minus_one_capped_at_four():
    assert available_worker_units({}, NodeResources(cpu=4, ram_mb=8192)) == 3
    assert available_worker_units({}, NodeResources(cpu=16, ram_mb=8192)) == 4


def test_estimate_plumbs_collaborators():
    metrics = InMemoryMetrics(active=500, compile_time=10.0)
    estimator = CapacityEstimator(ArithmeticCapacityFormulas(), metrics)

    estimate = estimator.estimate(worker_units=4, run_interval=1800)

    assert metrics.sample_sizes == [500]
    assert estimate.active_nodes == 500
    assert estimate.average_compile_time_seconds == 10.0
    assert estimate.maximum_servable_nodes == 720
    assert estimate.minimum_required_worker_units == 3
    lines = estimate.explanation()
    assert lines[1] == "Estimate: a maximum of 720 Active Nodes can be served by 4 Available JRubies"
    assert lines[2] == "Estimate: a minimum of 3 Available JRubies is required to serve 500 Active Nodes"


def test_configured_zero_worker_units_is_not_the_default():
    assert available_worker_units({JRUBY_MAX_ACTIVE_INSTANCES: 0}, NodeResources(cpu=8, ram_mb=16384)) == 0
