"""Batch, reinforcement-learning and realtime schedulers."""

from cloudsched.schedulers.batch import (  # noqa: F401
    MetaheuristicScheduler,
    RandomScheduler,
    ScheduleResult,
    Scheduler,
    SchedulerParams,
    create_batch_scheduler,
)
from cloudsched.schedulers.realtime import (  # noqa: F401
    RealtimeMetaheuristicScheduler,
    RealtimeMinLoadScheduler,
    RealtimePSOScheduler,
    RealtimeRandomScheduler,
    RealtimeRecord,
    RealtimeScheduler,
    RealtimeSession,
    RealtimeWOAScheduler,
    create_realtime_scheduler,
    least_loaded,
)
from cloudsched.schedulers.rl import QLearningScheduler  # noqa: F401

__all__ = [
    "MetaheuristicScheduler",
    "QLearningScheduler",
    "RandomScheduler",
    "RealtimeMetaheuristicScheduler",
    "RealtimeMinLoadScheduler",
    "RealtimePSOScheduler",
    "RealtimeRandomScheduler",
    "RealtimeRecord",
    "RealtimeScheduler",
    "RealtimeSession",
    "RealtimeWOAScheduler",
    "ScheduleResult",
    "Scheduler",
    "SchedulerParams",
    "create_batch_scheduler",
    "create_realtime_scheduler",
    "least_loaded",
]
