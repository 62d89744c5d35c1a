"""Grey Wolf Optimizer over relaxed resource indices."""

from __future__ import annotations

import math

from cloudsched.optimizers.base import Optimizer


class GWO(Optimizer):
    """GWO with alpha/beta/delta leaders (three best-ever positions).

    Leaders are re-ranked after every single evaluation: a better wolf is
    inserted at its rank and lower leaders shift down one slot. Before three
    distinct evaluations have been seen, empty leader slots hold the lower
    bound vector.
    """

    name = "gwo"

    def _initialize(self) -> None:
        self.leaders = [[self.lb] * self.dim for _ in range(3)]
        self.leader_scores = [math.inf] * 3
        for i in range(self.population):
            self.randomize_agent(i)
            self._rank(i, self.evaluate_agent(i))

    def _rank(self, agent: int, fitness: float) -> None:
        for slot in range(3):
            if fitness < self.leader_scores[slot]:
                self.leaders.insert(slot, self.position(agent))
                self.leader_scores.insert(slot, fitness)
                del self.leaders[3:]
                del self.leader_scores[3:]
                break
        self.state.update_best(self.position(agent), fitness)

    def _iterate(self, t: int) -> None:
        a = 2.0 - t * (2.0 / self.max_iterations)
        pos = self.positions
        rng = self.rng
        for i in range(self.population):
            base = i * self.dim
            previous = self.position(i)
            alpha, beta, delta = self.leaders
            for j in range(self.dim):
                x = pos[base + j]
                total = 0.0
                for leader in (alpha, beta, delta):
                    A = 2.0 * a * rng.random() - a
                    C = 2.0 * rng.random()
                    d = abs(C * leader[j] - x)
                    total += leader[j] - A * d
                pos[base + j] = total / 3.0
            self.adjust(i, previous)
            fitness = self.evaluate_agent(i)
            if self.commit_move(i, previous, fitness):
                self._rank(i, fitness)
