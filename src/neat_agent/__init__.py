"""Feed-forward NEAT for evolving real-time agent controllers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import EvolutionConfig
from .genome import Genome, compatibility_distance, create_initial_genome, crossover

if TYPE_CHECKING:
    from .evolution import NEATTrainer

__all__ = [
    "EvolutionConfig",
    "Genome",
    "NEATTrainer",
    "compatibility_distance",
    "create_initial_genome",
    "crossover",
]


def __getattr__(name: str):
    if name == "NEATTrainer":
        from .evolution import NEATTrainer as _NEATTrainer

        return _NEATTrainer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
