import pytest

from cloudsched.models import ConfigurationError
from cloudsched.workload import (
    DEFAULT_TIERS,
    MIN_FILE_SIZE,
    ResourceTier,
    create_resources,
    generate_arrivals,
    generate_tasks,
)


def test_default_catalog() -> None:
    resources = create_resources()
    assert len(resources) == 9
    assert [r.index for r in resources] == list(range(9))
    assert [r.rate for r in resources] == [1000.0] * 4 + [2000.0] * 3 + [4000.0] * 2
    assert [r.tier for r in resources].count("high") == 2
    assert sum(t.count for t in DEFAULT_TIERS) == 9


def test_catalog_validation() -> None:
    with pytest.raises(ConfigurationError):
        create_resources(())
    with pytest.raises(ConfigurationError):
        create_resources((ResourceTier("x", rate=0.0, price_per_sec=1.0, count=1),))
    with pytest.raises(ConfigurationError):
        create_resources((ResourceTier("x", rate=1.0, price_per_sec=1.0, count=-1),))


@pytest.mark.parametrize("generator", ["log_normal", "uniform"])
def test_generators_are_seeded(generator) -> None:
    a = generate_tasks(50, generator, seed=7)
    b = generate_tasks(50, generator, seed=7)
    c = generate_tasks(50, generator, seed=8)
    assert a == b
    assert a != c
    assert [t.index for t in a] == list(range(50))
    assert all(t.length >= 1 for t in a)


def test_log_normal_file_sizes_floored() -> None:
    tasks = generate_tasks(300, "log_normal", seed=1)
    assert all(t.file_size >= MIN_FILE_SIZE and t.output_size >= MIN_FILE_SIZE for t in tasks)


def test_uniform_ranges() -> None:
    tasks = generate_tasks(300, "uniform", seed=1)
    assert all(10000 <= t.length <= 50000 for t in tasks)
    assert all(10 <= t.file_size <= 200 for t in tasks)


def test_generate_tasks_errors() -> None:
    with pytest.raises(ConfigurationError):
        generate_tasks(0)
    with pytest.raises(ConfigurationError):
        generate_tasks(5, "trace")


def test_arrivals_sorted_and_truncated() -> None:
    tasks = generate_arrivals(200, arrival_rate=1.0, simulation_duration=20.0, seed=3)
    assert 0 < len(tasks) < 200
    times = [t.arrival_time for t in tasks]
    assert times == sorted(times)
    assert all(0 < x <= 20.0 for x in times)
    assert [t.index for t in tasks] == list(range(len(tasks)))
    assert tasks == generate_arrivals(200, arrival_rate=1.0, simulation_duration=20.0, seed=3)


def test_arrival_parameters_validated() -> None:
    with pytest.raises(ConfigurationError):
        generate_arrivals(10, arrival_rate=0.0, simulation_duration=10.0)
    with pytest.raises(ConfigurationError):
        generate_arrivals(10, arrival_rate=1.0, simulation_duration=0.0)
