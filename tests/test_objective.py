import math

import pytest

from cloudsched.models import ConfigurationError, ObjectiveWeights, Resource, Task
from cloudsched.objective import MetricBounds, ObjectiveEvaluator

TIME_ONLY = ObjectiveWeights(cost=0.0, total_time=1.0, load_balance=0.0, makespan=0.0)
MAKESPAN_ONLY = ObjectiveWeights(cost=0.0, total_time=0.0, load_balance=0.0, makespan=1.0)


def _two_by_two():
    tasks = [Task(0, 1000.0), Task(1, 2000.0)]
    resources = [Resource(0, 1000.0, 0.1), Resource(1, 2000.0, 0.1)]
    return tasks, resources


def test_raw_metrics_match_hand_computation(small_workload) -> None:
    tasks, resources = small_workload
    ev = ObjectiveEvaluator(tasks, resources)
    assignment = [0, 1, 2, 2, 0, 1]
    loads = ev.resource_loads(assignment)
    assert loads == pytest.approx([13.0, 16.0, 10.75])
    m = ev.metrics(assignment)
    assert m.makespan == pytest.approx(16.0)
    assert m.total_time == pytest.approx(39.75)
    mean = 39.75 / 3
    std = math.sqrt(sum((x - mean) ** 2 for x in loads) / 3)
    assert m.load_balance == pytest.approx(std)
    assert m.cost == pytest.approx(13.0 * 0.1 + 16.0 * 0.5 + 10.75 * 1.0)


def test_lower_total_time_wins_under_time_only_weight() -> None:
    tasks, resources = _two_by_two()
    ev = ObjectiveEvaluator(tasks, resources, TIME_ONLY)
    a, b = [0, 1], [1, 0]
    assert ev.total_time(a) == pytest.approx(2.0)
    assert ev.total_time(b) == pytest.approx(2.5)
    assert ev.evaluate(a) < ev.evaluate(b)
    assert ev.evaluate(a) == pytest.approx((2.0 - 1.5) / 1.5)


def test_ordering_follows_raw_metric_when_single_weight(small_workload) -> None:
    tasks, resources = small_workload
    ev = ObjectiveEvaluator(tasks, resources, TIME_ONLY)
    a = [2, 2, 2, 2, 2, 2]
    b = [0, 1, 0, 1, 0, 1]
    assert (ev.total_time(a) < ev.total_time(b)) == (ev(a) < ev(b))


def test_ratios_stay_in_unit_interval(small_workload) -> None:
    import random

    tasks, resources = small_workload
    weights = ObjectiveWeights(cost=0.25, total_time=0.25, load_balance=0.25, makespan=0.25)
    ev = ObjectiveEvaluator(tasks, resources, weights)
    rng = random.Random(3)
    for _ in range(200):
        a = [rng.randrange(3) for _ in tasks]
        for value in ev.ratios(a).values():
            assert 0.0 <= value <= 1.0
        assert 0.0 <= ev(a) <= weights.total()


def test_single_resource_degenerates_to_zero_fitness() -> None:
    tasks = [Task(i, 1000.0 * (i + 1)) for i in range(4)]
    ev = ObjectiveEvaluator(tasks, [Resource(0, 1000.0, 0.1)])
    assert ev.evaluate([0, 0, 0, 0]) == 0.0
    assert all(v == 0.0 for v in ev.ratios([0, 0, 0, 0]).values())


def test_unweighted_metrics_have_no_bounds() -> None:
    tasks, resources = _two_by_two()
    ev = ObjectiveEvaluator(tasks, resources, TIME_ONLY)
    assert set(ev.bounds) == {"total_time"}
    assert ev.ratios([0, 1])["cost"] == 0.0


def test_reference_seed_changes_only_load_balance_bound(small_workload) -> None:
    tasks, resources = small_workload
    a = ObjectiveEvaluator(tasks, resources, reference_seed=0)
    b = ObjectiveEvaluator(tasks, resources, reference_seed=0)
    assert a.bounds == b.bounds
    c = ObjectiveEvaluator(tasks, resources, reference_seed=11)
    assert c.bounds["cost"] == a.bounds["cost"]
    assert c.bounds["load_balance"].lower == 0.0


def test_metric_bounds_degenerate_cases() -> None:
    assert MetricBounds(1.0, 1.0).ratio(5.0) == 0.0
    assert MetricBounds(0.0, 2.0).ratio(math.nan) == 1.0
    assert MetricBounds(0.0, 2.0).ratio(math.inf) == 1.0
    assert MetricBounds(1.0, 1.0).ratio(math.inf) == 0.0
    assert MetricBounds(0.0, 2.0).ratio(3.0) == 1.0
    assert MetricBounds(0.0, 2.0).ratio(-1.0) == 0.0
    assert MetricBounds(0.0, 2.0).ratio(1.0) == pytest.approx(0.5)


def test_invalid_inputs_rejected() -> None:
    tasks, resources = _two_by_two()
    with pytest.raises(ConfigurationError):
        ObjectiveEvaluator([], resources)
    with pytest.raises(ConfigurationError):
        ObjectiveEvaluator(tasks, [])
    with pytest.raises(ConfigurationError):
        ObjectiveEvaluator(tasks, [Resource(0, 0.0, 0.1)])
    ev = ObjectiveEvaluator(tasks, resources)
    with pytest.raises(ValueError):
        ev.validate_assignment([0])
    with pytest.raises(ValueError):
        ev.metrics([0, 2])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"cost": 0.0, "total_time": 0.0, "load_balance": 0.0, "makespan": 0.0},
        {"cost": 1.5},
        {"total_time": -0.1},
        {"load_balance": float("nan")},
    ],
)
def test_invalid_weights(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        ObjectiveWeights(**kwargs)


def test_makespan_bounds_span_ideal_spread_to_slowest(small_workload) -> None:
    tasks, resources = small_workload
    ev = ObjectiveEvaluator(tasks, resources, MAKESPAN_ONLY)
    bounds = ev.bounds["makespan"]
    assert bounds.lower == pytest.approx(88000.0 / 7000.0)
    assert bounds.upper == pytest.approx(88.0)
    a = [0, 1, 2, 2, 0, 1]  # loads 13 / 16 / 10.75
    b = [0, 0, 0, 2, 1, 1]  # loads 20 / 14 / 10
    assert ev.makespan(a) == pytest.approx(16.0)
    assert ev.makespan(b) == pytest.approx(20.0)
    assert ev(a) == pytest.approx(1 / 22)
    assert 0.0 < ev(a) < ev(b)


def test_makespan_only_fitness_follows_makespan_on_default_catalog() -> None:
    import random

    from cloudsched.workload import create_resources, generate_tasks

    tasks = generate_tasks(50, seed=4)
    resources = create_resources()
    ev = ObjectiveEvaluator(tasks, resources, MAKESPAN_ONLY)
    rng = random.Random(8)
    samples = [[rng.randrange(len(resources)) for _ in tasks] for _ in range(40)]
    samples.sort(key=ev.makespan)
    fitness = [ev(a) for a in samples]
    assert all(f > 0.0 for f in fitness)
    assert fitness == sorted(fitness)
    assert len(set(fitness)) > 30


def test_non_finite_fitness_is_never_best() -> None:
    tasks, resources = _two_by_two()
    ev = ObjectiveEvaluator(tasks, resources, TIME_ONLY)
    assert ev.bounds["total_time"].ratio(math.inf) == 1.0
    assert ev.evaluate([0, 1]) < ev.bounds["total_time"].ratio(math.nan)
