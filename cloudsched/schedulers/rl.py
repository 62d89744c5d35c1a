"""Tabular Q-learning scheduler.

The agent walks the tasks in index order and picks one resource per task.
A state is the tuple ``(load buckets..., length bucket, progress bucket)``:

- load buckets: running analytic load of every resource divided by the
  largest running load, discretized into ``load_levels`` levels
- length bucket: 0 short (< 0.8 x mean length), 1 medium, 2 long (> 1.2 x mean)
- progress bucket: ``index / task_count`` discretized into ``progress_levels``

Training happens once, at construction. The exploration rate decays linearly
from ``exploration_rate`` in the first episode towards ``min_exploration_rate``.
After training the Q-table is frozen and ``allocate`` is a greedy walk
over it.
"""

from __future__ import annotations

import logging
import random
from types import MappingProxyType
from typing import Mapping, Sequence

from cloudsched.models import Assignment, ConfigurationError, ObjectiveWeights, Resource, Task
from cloudsched.schedulers.batch import Scheduler

logger = logging.getLogger("cloudsched.rl")

State = tuple[int, ...]

SHORT_TASK_FACTOR = 0.8
LONG_TASK_FACTOR = 1.2
OVERLOAD_FACTOR = 1.5
OVERLOAD_PENALTY = -5.0
BALANCED_BONUS = 2.0
VARIANCE_REWARD_SCALE = 10.0


def _variance(values: Sequence[float]) -> float:
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


class QLearningScheduler(Scheduler):
    """Q-learning with variance-reduction and overload-avoidance reward."""

    name = "rl"

    def __init__(
        self,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        weights: ObjectiveWeights | None = None,
        learning_rate: float = 0.1,
        discount_factor: float = 0.9,
        exploration_rate: float = 0.8,
        min_exploration_rate: float = 0.05,
        episodes: int = 100,
        load_levels: int = 5,
        progress_levels: int = 10,
        completion_reward: float = 100.0,
        seed: int | None = 0,
        reference_seed: int = 0,
    ):
        if episodes < 1:
            raise ConfigurationError(f"episodes must be >= 1, got {episodes}", field="episodes")
        if not 0 < learning_rate <= 1:
            raise ConfigurationError("learning_rate must be in (0, 1]", field="learning_rate")
        if not 0 <= discount_factor < 1:
            raise ConfigurationError("discount_factor must be in [0, 1)", field="discount_factor")
        if not 0 <= exploration_rate <= 1:
            raise ConfigurationError("exploration_rate must be in [0, 1]", field="exploration_rate")
        if not 0 <= min_exploration_rate <= exploration_rate:
            raise ConfigurationError(
                "min_exploration_rate must be in [0, exploration_rate]", field="min_exploration_rate"
            )
        if load_levels < 2:
            raise ConfigurationError("load_levels must be >= 2", field="load_levels")
        if progress_levels < 1:
            raise ConfigurationError("progress_levels must be >= 1", field="progress_levels")
        super().__init__(tasks, resources, weights, reference_seed)

        self.learning_rate = learning_rate
        self.discount_factor = discount_factor
        self.exploration_rate = exploration_rate
        self.min_exploration_rate = min_exploration_rate
        self.episodes = episodes
        self.load_levels = load_levels
        self.progress_levels = progress_levels
        self.completion_reward = completion_reward
        self.rng = random.Random(seed)

        self.mean_length = sum(t.length for t in self.tasks) / self.task_count
        self._q: dict[State, list[float]] = {}
        self.frozen = False
        self.episode_rewards: list[float] = []
        self.episode_epsilons: list[float] = []
        self._train()
        self.frozen = True

    @property
    def q_table(self) -> Mapping[State, list[float]]:
        return MappingProxyType(self._q)

    @property
    def states_visited(self) -> int:
        return len(self._q)

    # ---- state / reward ----

    def length_bucket(self, task: Task) -> int:
        if task.length < SHORT_TASK_FACTOR * self.mean_length:
            return 0
        if task.length > LONG_TASK_FACTOR * self.mean_length:
            return 2
        return 1

    def state(self, loads: Sequence[float], index: int) -> State:
        top = max(loads)
        levels = self.load_levels
        if top > 0:
            buckets = [min(int(load / top * levels), levels - 1) for load in loads]
        else:
            buckets = [0] * len(loads)
        progress = min(int(index / self.task_count * self.progress_levels), self.progress_levels - 1)
        return (*buckets, self.length_bucket(self.tasks[index]), progress)

    def reward(self, before: Sequence[float], after: Sequence[float], action: int) -> float:
        scale = sum(load * load for load in after) / len(after)
        value = 0.0
        if scale > 0:
            value = (_variance(before) - _variance(after)) / scale * VARIANCE_REWARD_SCALE
        mean_load = sum(after) / len(after)
        if after[action] > OVERLOAD_FACTOR * mean_load:
            value += OVERLOAD_PENALTY
        else:
            value += BALANCED_BONUS
        return value

    # ---- Q-table ----

    def q_values(self, state: State) -> list[float]:
        """Q-vector for ``state``; unseen states read as zeros without growing the table."""
        values = self._q.get(state)
        return values if values is not None else [0.0] * self.resource_count

    def _q_row(self, state: State) -> list[float]:
        if self.frozen:
            raise RuntimeError("Q-table is frozen after training")
        row = self._q.get(state)
        if row is None:
            row = [0.0] * self.resource_count
            self._q[state] = row
        return row

    def update(self, state: State, action: int, reward: float, next_state: State | None) -> None:
        """One-step Q-learning update (``next_state=None`` marks the episode end)."""
        row = self._q_row(state)
        future = 0.0 if next_state is None else max(self.q_values(next_state))
        row[action] += self.learning_rate * (reward + self.discount_factor * future - row[action])

    def greedy_action(self, state: State) -> int:
        values = self.q_values(state)
        best = 0
        for r in range(1, len(values)):
            if values[r] > values[best]:
                best = r
        return best

    # ---- training / inference ----

    def epsilon(self, episode: int) -> float:
        """Exploration rate of ``episode``: linear decay down to the floor."""
        step = (self.exploration_rate - self.min_exploration_rate) / self.episodes
        return max(self.min_exploration_rate, self.exploration_rate - episode * step)

    def _train(self) -> None:
        for episode in range(self.episodes):
            epsilon = self.epsilon(episode)
            total = self._run_episode(epsilon)
            self.episode_epsilons.append(epsilon)
            self.episode_rewards.append(total)
            if (episode + 1) % max(1, self.episodes // 10) == 0:
                logger.debug(
                    "Episode %d/%d epsilon=%.3f reward: %.4f",
                    episode + 1,
                    self.episodes,
                    epsilon,
                    total,
                )
        logger.info(
            "Q-learning trained for %d episodes, %d states visited",
            self.episodes,
            self.states_visited,
        )

    def _run_episode(self, epsilon: float) -> float:
        loads = [0.0] * self.resource_count
        total = 0.0
        last: tuple[State, int] | None = None
        for i, task in enumerate(self.tasks):
            state = self.state(loads, i)
            if self.rng.random() < epsilon:
                action = self.rng.randrange(self.resource_count)
            else:
                action = self.greedy_action(state)
            before = list(loads)
            loads[action] += task.length / self.resources[action].rate
            reward = self.reward(before, loads, action)
            total += reward
            next_state = self.state(loads, i + 1) if i + 1 < self.task_count else None
            self.update(state, action, reward, next_state)
            last = (state, action)
        if last is not None:
            state, action = last
            self._q_row(state)[action] += self.learning_rate * self.completion_reward
            total += self.completion_reward
        return total

    def allocate(self) -> Assignment:
        loads = [0.0] * self.resource_count
        assignment: Assignment = []
        for i, task in enumerate(self.tasks):
            action = self.greedy_action(self.state(loads, i))
            loads[action] += task.length / self.resources[action].rate
            assignment.append(action)
        return assignment
