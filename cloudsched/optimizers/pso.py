"""Particle Swarm Optimization over relaxed resource indices."""

from __future__ import annotations

import math

from cloudsched.optimizers.base import Optimizer

W_MAX = 0.9
W_MIN = 0.2
C1 = 2.0
C2 = 2.0
VELOCITY_LIMIT = 0.2  # fraction of (ub - lb)


class PSO(Optimizer):
    """Global-best PSO with linearly decreasing inertia.

    Velocities and personal bests share the flat layout of ``positions``.
    Personal/global bests are replaced only on a strictly lower fitness.
    """

    name = "pso"

    def _initialize(self) -> None:
        size = self.population * self.dim
        self.velocities = [0.0] * size
        self.p_best = [0.0] * size
        self.p_best_score = [math.inf] * self.population
        for i in range(self.population):
            base = i * self.dim
            for j in range(self.dim):
                self.positions[base + j] = self.random_coordinate()
                self.velocities[base + j] = self.rng.random()
            self.adjust(i)
        for i in range(self.population):
            self._update_bests(i, self.evaluate_agent(i))

    def _update_bests(self, agent: int, fitness: float) -> None:
        if fitness < self.p_best_score[agent]:
            self.p_best_score[agent] = fitness
            base = agent * self.dim
            self.p_best[base : base + self.dim] = self.positions[base : base + self.dim]
        self.state.update_best(self.position(agent), fitness)

    def inertia(self, t: int) -> float:
        return W_MAX - t * (W_MAX - W_MIN) / self.max_iterations

    def _iterate(self, t: int) -> None:
        w = self.inertia(t)
        v_max = VELOCITY_LIMIT * (self.ub - self.lb)
        g_best = self.state.best_position
        pos = self.positions
        vel = self.velocities
        rng = self.rng
        for i in range(self.population):
            base = i * self.dim
            previous = self.position(i)
            for j in range(self.dim):
                k = base + j
                r1 = rng.random()
                r2 = rng.random()
                v = (
                    w * vel[k]
                    + C1 * r1 * (self.p_best[k] - pos[k])
                    + C2 * r2 * (g_best[j] - pos[k])
                )
                if v > v_max:
                    v = v_max
                elif v < -v_max:
                    v = -v_max
                vel[k] = v
                pos[k] += v
            self.adjust(i, previous)
            fitness = self.evaluate_agent(i)
            if self.commit_move(i, previous, fitness):
                self._update_bests(i, fitness)
