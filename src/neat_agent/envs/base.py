from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np

from ..genome import Genome, Policy


@dataclass
class Observation:
    grid: np.ndarray
    alive: bool
    progress: float


class Environment(Protocol):
    def reset(self) -> None:
        ...

    def observe(self) -> Observation:
        ...

    def apply_action(self, action: np.ndarray) -> None:
        ...


class FitnessEvaluator(Protocol):
    def evaluate(self, genome: Genome) -> float:
        ...


@dataclass
class EpisodeResult:
    fitness: float
    steps: int
    alive: bool


class EpisodeEvaluator:
    """Runs one genome through one episode and reports its final progress.

    The episode ends when the agent dies, when it falls behind the cull line
    (``steps * progress_ratio > progress``) or after ``max_steps`` steps.
    """

    def __init__(self, env: Environment, max_steps: int = 3000, progress_ratio: float = 1.5):
        if max_steps < 1:
            raise ValueError(f"max_steps must be >= 1, got {max_steps}")
        self.env = env
        self.max_steps = max_steps
        self.progress_ratio = progress_ratio

    def play(self, policy: Policy) -> EpisodeResult:
        self.env.reset()
        obs = self.env.observe()
        steps = 0

        for step in range(self.max_steps):
            obs = self.env.observe()
            self.env.apply_action(policy.action(obs.grid))
            steps = step + 1
            if not obs.alive or steps * self.progress_ratio > obs.progress:
                break

        return EpisodeResult(fitness=float(obs.progress), steps=steps, alive=obs.alive)

    def evaluate(self, genome: Genome) -> float:
        return self.play(genome.to_policy()).fitness
