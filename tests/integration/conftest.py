"""
Shared fixtures for integration tests.
"""

import matplotlib
import pytest

from neat_agent.config import EvolutionConfig
from neat_agent.envs import EpisodeEvaluator, GridRunner

# Plots are written to files only.
matplotlib.use("Agg")


@pytest.fixture
def short_level():
    """A 40-column level; long enough for a few obstacles."""
    return GridRunner(width=40, seed=0)


@pytest.fixture
def tiny_run_config(short_level):
    """Small population, two generations, short episodes."""
    return EvolutionConfig(
        pop_size=8,
        generations=2,
        input_size=short_level.observation_size,
        output_size=short_level.action_size,
        max_steps=200,
        seed=3,
    )


@pytest.fixture
def level_evaluator(short_level, tiny_run_config):
    return EpisodeEvaluator(
        short_level,
        max_steps=tiny_run_config.max_steps,
        progress_ratio=tiny_run_config.progress_ratio,
    )
