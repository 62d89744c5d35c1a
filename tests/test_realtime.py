import pytest

from cloudsched.models import ConfigurationError, Resource, Task
from cloudsched.schedulers.realtime import (
    RealtimeMetaheuristicScheduler,
    RealtimeMinLoadScheduler,
    RealtimePSOScheduler,
    RealtimeRandomScheduler,
    RealtimeSession,
    RealtimeWOAScheduler,
    create_realtime_scheduler,
    least_loaded,
)
from cloudsched.workload import generate_arrivals

RESOURCES = [
    Resource(0, 1000.0, 0.1),
    Resource(1, 2000.0, 0.5),
    Resource(2, 4000.0, 1.0),
]


def test_min_load_empty_waiting_picks_first_resource() -> None:
    scheduler = RealtimeMinLoadScheduler(RESOURCES)
    assert scheduler.schedule_on_arrival(Task(0, 100000.0), [], RESOURCES) == 0


def test_least_loaded_uses_waiting_loads() -> None:
    waiting = [(Task(0, 4000.0), 0), (Task(1, 4000.0), 2)]
    # loads: 4.0, 0.0, 1.0
    assert least_loaded(waiting, RESOURCES) == 1
    waiting.append((Task(2, 4000.0), 1))
    # loads: 4.0, 2.0, 1.0
    assert least_loaded(waiting, RESOURCES) == 2


def test_least_loaded_ties_lowest_index() -> None:
    waiting = [(Task(0, 1000.0), 0), (Task(1, 2000.0), 1), (Task(2, 4000.0), 2)]
    assert least_loaded(waiting, RESOURCES) == 0


def test_random_scheduler_in_range_and_seeded() -> None:
    a = RealtimeRandomScheduler(RESOURCES, seed=5)
    b = RealtimeRandomScheduler(RESOURCES, seed=5)
    picks_a = [a.schedule_on_arrival(Task(i, 1000.0), []) for i in range(20)]
    picks_b = [b.schedule_on_arrival(Task(i, 1000.0), []) for i in range(20)]
    assert picks_a == picks_b
    assert all(0 <= p < 3 for p in picks_a)


@pytest.mark.parametrize("cls", [RealtimePSOScheduler, RealtimeWOAScheduler])
def test_metaheuristic_empty_window_falls_back(cls) -> None:
    scheduler = cls(RESOURCES, population=5, max_iterations=5)
    assert scheduler.schedule_on_arrival(Task(0, 100000.0), []) == 0
    assert scheduler.arrivals == 1


@pytest.mark.parametrize("algo", ["PSO_REALTIME", "WOA_REALTIME"])
def test_metaheuristic_decides_for_new_task(algo) -> None:
    waiting = [(Task(i, 10000.0 * (i + 1)), i % 3) for i in range(4)]
    a = create_realtime_scheduler(algo, RESOURCES, population=6, max_iterations=6, seed=3)
    b = create_realtime_scheduler(algo, RESOURCES, population=6, max_iterations=6, seed=3)
    ra = a.schedule_on_arrival(Task(9, 30000.0), waiting)
    rb = b.schedule_on_arrival(Task(9, 30000.0), waiting)
    assert ra == rb
    assert 0 <= ra < 3


def test_metaheuristic_rejects_other_algorithms() -> None:
    with pytest.raises(ConfigurationError):
        RealtimeMetaheuristicScheduler(RESOURCES, "GWO")
    with pytest.raises(ConfigurationError):
        RealtimeMetaheuristicScheduler(RESOURCES, "PSO", population=0)
    assert RealtimeWOAScheduler(RESOURCES).algorithm.value == "WOA"


@pytest.mark.parametrize("algo", ["PSO", "GWO", "RL", "HHO"])
def test_factory_rejects_batch_only(algo) -> None:
    with pytest.raises(ConfigurationError):
        create_realtime_scheduler(algo, RESOURCES)


def test_session_fifo_timing() -> None:
    session = RealtimeSession(RealtimeMinLoadScheduler(RESOURCES))
    # every task lands on resource 0 until it becomes busier than the others
    r0 = session.submit(Task(0, 2000.0, arrival_time=0.0))
    assert (r0.resource, r0.start, r0.finish) == (0, 0.0, 2.0)
    r1 = session.submit(Task(1, 2000.0, arrival_time=0.5))
    assert r1.resource == 1
    assert r1.finish == pytest.approx(1.5)
    r2 = session.submit(Task(2, 4000.0, arrival_time=1.0))
    assert r2.resource == 2
    assert r2.finish == pytest.approx(2.0)
    # task 1 finished at 1.5 and left the waiting set; resource 1 is empty again
    r3 = session.submit(Task(3, 2000.0, arrival_time=1.6))
    assert r3.resource == 1
    assert r3.start == pytest.approx(1.6)


def test_session_queues_on_busy_resource() -> None:
    only = [Resource(0, 1000.0, 0.1)]
    session = RealtimeSession(RealtimeMinLoadScheduler(only))
    session.submit(Task(0, 3000.0, arrival_time=0.0))
    rec = session.submit(Task(1, 1000.0, arrival_time=1.0))
    assert rec.start == pytest.approx(3.0)
    assert rec.finish == pytest.approx(4.0)
    summary = session.summary()
    assert summary.mean_waiting_time == pytest.approx(1.0)
    assert summary.mean_response_time == pytest.approx((3.0 + 3.0) / 2)
    assert summary.metrics.makespan == pytest.approx(4.0)
    assert summary.task_count == 2


def test_session_rejects_out_of_order_arrivals() -> None:
    session = RealtimeSession(RealtimeMinLoadScheduler(RESOURCES))
    session.submit(Task(0, 1000.0, arrival_time=5.0))
    with pytest.raises(ValueError):
        session.submit(Task(1, 1000.0, arrival_time=4.0))


def test_session_run_sorts_arrivals() -> None:
    session = RealtimeSession(RealtimeRandomScheduler(RESOURCES, seed=1))
    tasks = [Task(0, 1000.0, arrival_time=2.0), Task(1, 1000.0, arrival_time=1.0)]
    records = session.run(tasks)
    assert [r.task_index for r in records] == [1, 0]


def test_session_summary_requires_tasks() -> None:
    with pytest.raises(ValueError):
        RealtimeSession(RealtimeMinLoadScheduler(RESOURCES)).summary()


def test_full_stream_with_pso() -> None:
    tasks = generate_arrivals(15, arrival_rate=2.0, simulation_duration=100.0, seed=2)
    scheduler = create_realtime_scheduler("PSO_REALTIME", RESOURCES, population=5, max_iterations=5, seed=2)
    session = RealtimeSession(scheduler, RESOURCES)
    records = session.run(tasks)
    assert len(records) == len(tasks)
    assert scheduler.arrivals == len(tasks)
    for rec, task in zip(records, tasks):
        assert rec.start >= task.arrival_time
        assert rec.finish > rec.start


def test_least_loaded_rejects_unknown_resource() -> None:
    with pytest.raises(ValueError):
        least_loaded([(Task(0, 1000.0), 3)], RESOURCES)
    with pytest.raises(ValueError):
        least_loaded([(Task(0, 1000.0), -1)], RESOURCES)


@pytest.mark.parametrize("algo", ["PSO_REALTIME", "WOA_REALTIME"])
def test_stream_replay_is_deterministic(algo) -> None:
    tasks = generate_arrivals(20, arrival_rate=4.0, simulation_duration=100.0, seed=6)

    def replay():
        scheduler = create_realtime_scheduler(algo, RESOURCES, population=5, max_iterations=5, seed=11)
        session = RealtimeSession(scheduler, RESOURCES)
        session.run(tasks)
        return session.assignment

    first = replay()
    assert len(first) == len(tasks)
    assert first == replay()


def test_each_arrival_gets_its_own_optimizer_seed(monkeypatch) -> None:
    import cloudsched.schedulers.realtime as realtime

    seeds = []
    real_factory = realtime.create_optimizer

    def recording_factory(*args, **kwargs):
        seeds.append(kwargs["seed"])
        return real_factory(*args, **kwargs)

    monkeypatch.setattr(realtime, "create_optimizer", recording_factory)
    scheduler = RealtimePSOScheduler(RESOURCES, population=4, max_iterations=3, seed=40)
    waiting = []
    for i in range(4):
        task = Task(i, 10000.0 * (i + 1))
        waiting.append((task, scheduler.schedule_on_arrival(task, waiting)))
    # first arrival sees an empty window and never builds an optimizer
    assert seeds == [41, 42, 43]
    assert scheduler.arrivals == 4
