from .base import Environment, EpisodeEvaluator, EpisodeResult, FitnessEvaluator, Observation
from .grid_runner import GridRunner

__all__ = [
    "Environment",
    "EpisodeEvaluator",
    "EpisodeResult",
    "FitnessEvaluator",
    "GridRunner",
    "Observation",
]
