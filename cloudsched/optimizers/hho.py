"""Harris Hawks Optimization over relaxed resource indices.

Branches selected by the escaping energy ``E`` and a uniform draw ``r``:

    |E| >= 1                 exploration (perch on a random hawk, or around
                             the rabbit relative to the swarm mean)
    r >= 0.5, |E| >= 0.5     soft besiege
    r >= 0.5, |E| <  0.5     hard besiege
    r <  0.5, |E| >= 0.5     soft besiege with progressive rapid dives
    r <  0.5, |E| <  0.5     hard besiege with progressive rapid dives

Dives build two whole candidate vectors ``Y`` and ``Z = Y + S * Levy``, each
evaluated once per hawk (not per dimension), and the better one is kept.
"""

from __future__ import annotations

import math

from cloudsched.optimizers.base import Optimizer

LEVY_BETA = 1.5
LEVY_STEP_LIMIT = 1.0  # |levy step| cap, in units of (ub - lb)


def mantegna_sigma(beta: float = LEVY_BETA) -> float:
    num = math.gamma(1 + beta) * math.sin(math.pi * beta / 2)
    den = math.gamma((1 + beta) / 2) * beta * 2 ** ((beta - 1) / 2)
    return (num / den) ** (1 / beta)


class HHO(Optimizer):
    """HHO with one rabbit (global best) refreshed once per iteration.

    ``E = 2 * E0 * (1 - t / T)`` with ``E0`` uniform in ``[-1, 1]`` drawn once
    per iteration. Lévy steps use the Mantegna algorithm and are clamped to
    ``[-LEVY_STEP_LIMIT, LEVY_STEP_LIMIT]``.
    """

    name = "hho"

    def _initialize(self) -> None:
        self.sigma = mantegna_sigma()
        self.fitness: list[float | None] = [None] * self.population
        for i in range(self.population):
            self.randomize_agent(i)
            self.fitness[i] = self.evaluate_agent(i)
        self._update_rabbit()

    @property
    def rabbit_fitness(self) -> float:
        return self.state.best_fitness

    def levy_step(self) -> float:
        u = self.rng.gauss(0.0, 1.0) * self.sigma
        v = self.rng.gauss(0.0, 1.0)
        if v == 0.0:
            return math.copysign(LEVY_STEP_LIMIT, u)
        step = u / abs(v) ** (1 / LEVY_BETA)
        return max(-LEVY_STEP_LIMIT, min(LEVY_STEP_LIMIT, step))

    def _update_rabbit(self) -> None:
        for i in range(self.population):
            score = self.fitness[i]
            if score is not None:
                self.state.update_best(self.position(i), score)

    def _swarm_mean(self) -> list[float]:
        mean = [0.0] * self.dim
        pos = self.positions
        for i in range(self.population):
            base = i * self.dim
            for j in range(self.dim):
                mean[j] += pos[base + j]
        return [m / self.population for m in mean]

    def _iterate(self, t: int) -> None:
        rng = self.rng
        dim = self.dim
        span = self.ub - self.lb
        pos = self.positions
        rabbit = list(self.state.best_position)
        mean = self._swarm_mean()
        e0 = 2 * rng.random() - 1
        energy = 2 * e0 * (1 - t / self.max_iterations)
        abs_e = abs(energy)

        previous_positions = []
        previous_fitness = list(self.fitness)
        for i in range(self.population):
            base = i * dim
            previous = self.position(i)
            previous_positions.append(previous)
            q = rng.random()
            r = rng.random()
            jump = 2 * (1 - rng.random())

            if abs_e >= 1:
                if q >= 0.5:
                    k = rng.randrange(self.population) * dim
                    r1 = rng.random()
                    r2 = rng.random()
                    for j in range(dim):
                        x_rand = pos[k + j]
                        pos[base + j] = x_rand - r1 * abs(x_rand - 2 * r2 * pos[base + j])
                else:
                    r3 = rng.random()
                    r4 = rng.random()
                    for j in range(dim):
                        pos[base + j] = (rabbit[j] - mean[j]) - r3 * (self.lb + r4 * span)
                self.adjust(i, previous)
                self.fitness[i] = None
            elif r >= 0.5:
                for j in range(dim):
                    x = pos[base + j]
                    if abs_e >= 0.5:
                        pos[base + j] = (rabbit[j] - x) - energy * abs(jump * rabbit[j] - x)
                    else:
                        pos[base + j] = rabbit[j] - energy * abs(rabbit[j] - x)
                self.adjust(i, previous)
                self.fitness[i] = None
            else:
                anchor = previous if abs_e >= 0.5 else mean
                y = [rabbit[j] - energy * abs(jump * rabbit[j] - anchor[j]) for j in range(dim)]
                z = [y[j] + rng.random() * self.levy_step() * span for j in range(dim)]
                self.adjust_vector(y, previous)
                self.adjust_vector(z, previous)
                fit_y = self.evaluate_vector(y)
                fit_z = self.evaluate_vector(z)
                if fit_y <= fit_z:
                    chosen, score = y, fit_y
                else:
                    chosen, score = z, fit_z
                if math.isinf(score):
                    self.set_position(i, previous)
                    self.fitness[i] = previous_fitness[i]
                else:
                    self.set_position(i, chosen)
                    self.fitness[i] = score

        for i in range(self.population):
            if self.fitness[i] is None:
                score = self.evaluate_agent(i)
                if self.commit_move(i, previous_positions[i], score):
                    self.fitness[i] = score
                else:
                    self.fitness[i] = previous_fitness[i]
        self._update_rabbit()
