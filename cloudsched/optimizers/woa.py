"""Whale Optimization Algorithm over relaxed resource indices."""

from __future__ import annotations

import math

from cloudsched.optimizers.base import Optimizer

SPIRAL_B = 1.0


class WOA(Optimizer):
    """WOA: exploration around random whales, encircling and spiral attack.

    ``a`` decays linearly from 2 to 0. The coefficients ``A``, ``C``, ``l``
    and the strategy draw ``p`` are drawn once per whale and shared by all its
    dimensions; the random leader used for exploration is drawn per
    dimension. The optimum is refreshed after every whale's full move.
    """

    name = "woa"

    def _initialize(self) -> None:
        for i in range(self.population):
            self.randomize_agent(i)
            self.state.update_best(self.position(i), self.evaluate_agent(i))

    def _iterate(self, t: int) -> None:
        a = 2.0 - t * (2.0 / self.max_iterations)
        pos = self.positions
        best = self.state.best_position
        rng = self.rng
        dim = self.dim
        for i in range(self.population):
            r1 = rng.random()
            r2 = rng.random()
            A = 2.0 * a * r1 - a
            C = 2.0 * r2
            l = rng.random() * 2.0 - 1.0  # noqa: E741
            p = rng.random()
            base = i * dim
            previous = self.position(i)
            for j in range(dim):
                k = base + j
                if p < 0.5:
                    if abs(A) >= 1:
                        x_rand = pos[rng.randrange(self.population) * dim + j]
                        pos[k] = x_rand - A * abs(C * x_rand - pos[k])
                    else:
                        pos[k] = best[j] - A * abs(C * best[j] - pos[k])
                else:
                    distance = abs(best[j] - pos[k])
                    pos[k] = distance * math.exp(SPIRAL_B * l) * math.cos(l * 2 * math.pi) + best[j]
            self.adjust(i, previous)
            fitness = self.evaluate_agent(i)
            if self.commit_move(i, previous, fitness):
                self.state.update_best(self.position(i), fitness)
