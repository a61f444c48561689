from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def _require_number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    return value


@dataclass(frozen=True)
class MutationConfig:
    weight_mutate_rate: float = 0.8
    weight_mutate_power: float = 0.2
    weight_perturb_rate: float = 0.9
    add_node_rate: float = 0.06
    add_conn_rate: float = 0.1
    add_connection_attempts: int = 100


@dataclass(frozen=True)
class ReproductionConfig:
    survival_fraction: float = 0.1
    mutation_only_rate: float = 0.45


@dataclass(frozen=True)
class SpeciesConfig:
    compatibility_threshold: float = 3.0
    weight_coeff: float = 1.0
    disjoint_coeff: float = 1.0
    excess_coeff: float = 1.0


@dataclass(frozen=True)
class EvolutionConfig:
    pop_size: int = 75
    generations: int = 50
    input_size: int = 16 * 14
    output_size: int = 3
    seed: int = 0
    max_steps: int = 3000
    progress_ratio: float = 1.5
    mutation: MutationConfig = field(default_factory=MutationConfig)
    reproduction: ReproductionConfig = field(default_factory=ReproductionConfig)
    species: SpeciesConfig = field(default_factory=SpeciesConfig)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        sections = {
            "mutation": MutationConfig,
            "reproduction": ReproductionConfig,
            "species": SpeciesConfig,
        }
        for section, section_cls in sections.items():
            sub = getattr(self, section)
            if not isinstance(sub, section_cls):
                raise ValueError(f"{section} must be a {section_cls.__name__}, got {sub!r}")
            for f in fields(sub):
                if f.name == "add_connection_attempts":
                    _require_int(getattr(sub, f.name), f"{section}.{f.name}")
                else:
                    _require_number(getattr(sub, f.name), f"{section}.{f.name}")
        _require_int(self.seed, "seed")
        _require_number(self.progress_ratio, "progress_ratio")

        for name in ("pop_size", "generations", "input_size", "output_size", "max_steps"):
            if _require_int(getattr(self, name), name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.progress_ratio < 0:
            raise ValueError(f"progress_ratio must be >= 0, got {self.progress_ratio}")

        probabilities = {
            "mutation.weight_mutate_rate": self.mutation.weight_mutate_rate,
            "mutation.weight_perturb_rate": self.mutation.weight_perturb_rate,
            "mutation.add_node_rate": self.mutation.add_node_rate,
            "mutation.add_conn_rate": self.mutation.add_conn_rate,
            "reproduction.survival_fraction": self.reproduction.survival_fraction,
            "reproduction.mutation_only_rate": self.reproduction.mutation_only_rate,
        }
        for name, value in probabilities.items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")

        if self.mutation.weight_mutate_power < 0:
            raise ValueError("mutation.weight_mutate_power must be >= 0")
        if self.mutation.add_connection_attempts < 0:
            raise ValueError("mutation.add_connection_attempts must be >= 0")

        non_negative = {
            "species.compatibility_threshold": self.species.compatibility_threshold,
            "species.weight_coeff": self.species.weight_coeff,
            "species.disjoint_coeff": self.species.disjoint_coeff,
            "species.excess_coeff": self.species.excess_coeff,
        }
        for name, value in non_negative.items():
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EvolutionConfig":
        nested = {
            "mutation": MutationConfig,
            "reproduction": ReproductionConfig,
            "species": SpeciesConfig,
        }
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")

        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key in nested:
                if not isinstance(value, dict):
                    raise ValueError(f"Config section '{key}' must be an object, got {value!r}")
                sub_cls = nested[key]
                sub_known = {f.name for f in fields(sub_cls)}
                sub_unknown = set(value) - sub_known
                if sub_unknown:
                    raise ValueError(f"Unknown {key} config keys: {sorted(sub_unknown)}")
                kwargs[key] = sub_cls(**value)
            else:
                kwargs[key] = value
        return cls(**kwargs)


def load_config(path: Path) -> EvolutionConfig:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Could not read config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    return EvolutionConfig.from_dict(data)
