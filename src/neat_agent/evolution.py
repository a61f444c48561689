from __future__ import annotations

import csv
import json
from pathlib import Path

import numpy as np

from .config import EvolutionConfig
from .envs.base import FitnessEvaluator
from .genome import Genome, create_initial_genome, crossover
from .persistence import save_genome
from .species import SpeciesManager, assign_adjusted_fitness


class NEATTrainer:
    def __init__(
        self,
        cfg: EvolutionConfig,
        evaluator: FitnessEvaluator,
        out_dir: Path,
        seed_genome: Genome | None = None,
        verbose: bool = True,
    ):
        self.cfg = cfg
        self.evaluator = evaluator
        self.out_dir = out_dir
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.genomes_dir = self.out_dir / "genomes"
        self.verbose = verbose

        self.rng = np.random.default_rng(cfg.seed)
        self.species_mgr = SpeciesManager(cfg)
        self.population: list[Genome] = self._initial_population(seed_genome)
        self.best_genome: Genome | None = None

        self.history: list[dict[str, float]] = []
        self.species_sizes: list[dict[int, int]] = []
        self.live_history_path = self.out_dir / "history_live.csv"
        self.live_species_path = self.out_dir / "species_sizes_live.csv"
        self.live_progress_path = self.out_dir / "progress.json"
        self.artifacts: dict[str, Path] = {}

    def _initial_population(self, seed_genome: Genome | None) -> list[Genome]:
        if seed_genome is None:
            return [
                create_initial_genome(self.cfg.input_size, self.cfg.output_size, self.rng)
                for _ in range(self.cfg.pop_size)
            ]

        if (seed_genome.input_size, seed_genome.output_size) != (self.cfg.input_size, self.cfg.output_size):
            raise ValueError(
                f"Seed genome shape {seed_genome.input_size}x{seed_genome.output_size} does not match "
                f"configured {self.cfg.input_size}x{self.cfg.output_size}"
            )
        population = []
        for i in range(self.cfg.pop_size):
            genome = seed_genome.clone()
            genome.fitness = 0.0
            genome.adjusted_fitness = 0.0
            if i > 0:
                genome.mutate_weights(self.rng, self.cfg.mutation)
            population.append(genome)
        return population

    def run(self) -> Genome:
        self._write_live_progress(generation_completed=0, status="starting")
        for gen in range(1, self.cfg.generations + 1):
            self._write_live_progress(
                generation_completed=gen - 1,
                status=f"evaluating_generation_{gen}",
            )
            self._evaluate_population()
            next_population = self.evolve(self.population)

            champion = self._generation_champion()
            if self.best_genome is None or champion.fitness > self.best_genome.fitness:
                self.best_genome = champion.clone()

            self._record_generation(gen)
            save_genome(champion, self.genomes_dir / f"gen_{gen:04d}.json")
            self._write_live_generation_files(gen)

            if gen < self.cfg.generations:
                self.population = next_population

        self._save_artifacts()
        self._write_live_progress(generation_completed=self.cfg.generations, status="finished")
        assert self.best_genome is not None
        return self.best_genome

    def _evaluate_population(self) -> None:
        for genome in self.population:
            genome.fitness = float(self.evaluator.evaluate(genome))

    def evolve(self, population: list[Genome]) -> list[Genome]:
        """Build the next generation from an evaluated population.

        Each species keeps a clone of its best member and breeds
        ``max(1, floor(share * pop_size)) - 1`` more children from its top
        ``survival_fraction``. Any shortfall is filled with crossovers of
        random members of random species.
        """
        if not population:
            raise ValueError("Cannot evolve an empty population")

        rcfg = self.cfg.reproduction
        pop_size = self.cfg.pop_size

        species = self.species_mgr.speciate(population)
        species_fitness = assign_adjusted_fitness(species)
        total_fitness = sum(species_fitness.values())

        elites: list[Genome] = []
        children: list[Genome] = []
        for sp in species:
            members = sorted(sp.members, key=lambda g: g.fitness, reverse=True)
            elites.append(members[0].clone())

            share = species_fitness[sp.species_id] / total_fitness if total_fitness > 0 else 0.0
            offspring_count = max(1, int(np.floor(share * pop_size)))
            survivors = max(1, int(np.floor(len(members) * rcfg.survival_fraction)))
            parents = members[:survivors]

            for _ in range(offspring_count - 1):
                if self.rng.random() < rcfg.mutation_only_rate or len(members) < 2:
                    child = parents[self.rng.integers(survivors)].clone()
                else:
                    p1 = parents[self.rng.integers(survivors)]
                    p2 = parents[self.rng.integers(survivors)]
                    child = crossover(self.rng, p1, p2)
                child.mutate(self.rng, self.cfg)
                children.append(child)

        next_population = elites + children
        while len(next_population) < pop_size:
            sp = species[self.rng.integers(len(species))]
            p1 = sp.members[self.rng.integers(len(sp.members))]
            p2 = sp.members[self.rng.integers(len(sp.members))]
            child = crossover(self.rng, p1, p2)
            child.mutate(self.rng, self.cfg)
            next_population.append(child)

        # The minimum of one offspring per species can overshoot; elites lead
        # the list so they survive the cut.
        next_population = next_population[:pop_size]
        for genome in next_population:
            genome.species_id = None
        return next_population

    def _generation_champion(self) -> Genome:
        return max(self.population, key=lambda g: g.fitness)

    def _record_generation(self, gen: int) -> None:
        fitness = np.array([g.fitness for g in self.population], dtype=float)
        best = self._generation_champion()
        mean_hidden = float(np.mean([g.complexity()[0] for g in self.population]))
        mean_conn = float(np.mean([g.complexity()[1] for g in self.population]))
        best_hidden, best_conn = best.complexity()

        record = {
            "generation": float(gen),
            "best_fitness": float(np.max(fitness)),
            "mean_fitness": float(np.mean(fitness)),
            "best_overall": float(self.best_genome.fitness if self.best_genome else np.max(fitness)),
            "species_count": float(len(self.species_mgr.species)),
            "mean_hidden_nodes": mean_hidden,
            "mean_enabled_connections": mean_conn,
            "champ_hidden_nodes": float(best_hidden),
            "champ_enabled_connections": float(best_conn),
        }
        self.history.append(record)

        size_map = {sp.species_id: len(sp.members) for sp in self.species_mgr.species}
        self.species_sizes.append(size_map)
        if self.verbose:
            print(
                f"[gen {gen:03d}/{self.cfg.generations:03d}] "
                f"best={record['best_fitness']:.1f} "
                f"mean={record['mean_fitness']:.1f} "
                f"overall={record['best_overall']:.1f} "
                f"species={int(record['species_count'])} "
                f"hidden={record['champ_hidden_nodes']:.0f} "
                f"conns={record['champ_enabled_connections']:.0f}"
            )

    def _write_live_generation_files(self, gen: int) -> None:
        # Rewritten every generation so a run can be followed while it trains.
        self._write_history_csv(self.live_history_path)
        self._write_species_csv(self.live_species_path)
        self._write_live_progress(
            generation_completed=gen,
            status=f"completed_generation_{gen}",
        )

    def _write_live_progress(self, generation_completed: int, status: str) -> None:
        progress = {
            "generation_completed": generation_completed,
            "generations_total": self.cfg.generations,
            "status": status,
            "out_dir": str(self.out_dir),
            "best_fitness": self.history[-1]["best_fitness"] if self.history else None,
            "mean_fitness": self.history[-1]["mean_fitness"] if self.history else None,
            "best_overall": self.best_genome.fitness if self.best_genome else None,
        }
        with self.live_progress_path.open("w", encoding="utf-8") as f:
            json.dump(progress, f, indent=2)
            f.flush()

    def _save_artifacts(self) -> dict[str, Path]:
        artifacts: dict[str, Path] = {
            "history_csv": self.out_dir / "history.csv",
            "species_csv": self.out_dir / "species_sizes.csv",
            "champion_json": self.out_dir / "champion_genome.json",
            "genomes_dir": self.genomes_dir,
            "progress_json": self.live_progress_path,
        }
        self._write_history_csv(artifacts["history_csv"])
        self._write_species_csv(artifacts["species_csv"])
        if self.best_genome is not None:
            save_genome(self.best_genome, artifacts["champion_json"])
        self.artifacts = artifacts
        return artifacts

    def _write_history_csv(self, path: Path) -> None:
        if not self.history:
            return
        fieldnames = list(self.history[0].keys())
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for row in self.history:
                writer.writerow(row)

    def _write_species_csv(self, path: Path) -> None:
        max_species = max((len(m) for m in self.species_sizes), default=0)
        fields = ["generation"] + [f"species_{sid}" for sid in range(max_species)]
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fields)
            writer.writeheader()
            for gen, sizes in enumerate(self.species_sizes, start=1):
                row = {"generation": gen}
                for sid in range(max_species):
                    row[f"species_{sid}"] = sizes.get(sid, 0)
                writer.writerow(row)
