from __future__ import annotations

from dataclasses import dataclass, field

from .config import EvolutionConfig
from .genome import Genome, compatibility_distance


@dataclass
class Species:
    species_id: int
    representative: Genome
    members: list[Genome] = field(default_factory=list)

    def total_adjusted_fitness(self) -> float:
        return sum(g.adjusted_fitness for g in self.members)


class SpeciesManager:
    """Single-pass, order-dependent clustering, rebuilt from scratch every call."""

    def __init__(self, cfg: EvolutionConfig):
        self.cfg = cfg
        self.threshold = cfg.species.compatibility_threshold
        self.species: list[Species] = []

    def speciate(self, population: list[Genome]) -> list[Species]:
        for genome in population:
            genome.species_id = None

        species: list[Species] = []
        for genome in population:
            for sp in species:
                if compatibility_distance(genome, sp.representative, self.cfg) < self.threshold:
                    sp.members.append(genome)
                    genome.species_id = sp.species_id
                    break
            else:
                sid = len(species)
                species.append(Species(species_id=sid, representative=genome, members=[genome]))
                genome.species_id = sid

        self.species = species
        return species


def assign_adjusted_fitness(species: list[Species]) -> dict[int, float]:
    totals: dict[int, float] = {}
    for sp in species:
        size = float(len(sp.members))
        for genome in sp.members:
            genome.adjusted_fitness = genome.fitness / size
        totals[sp.species_id] = sp.total_adjusted_fitness()
    return totals
