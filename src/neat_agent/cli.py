from __future__ import annotations

import argparse
import dataclasses
import datetime as dt
import sys
from pathlib import Path

from .config import EvolutionConfig, load_config
from .envs import EpisodeEvaluator, GridRunner
from .evolution import NEATTrainer
from .persistence import GenomeFormatError, PersistenceError, load_genome
from .reporting import write_markdown_report
from .visualization import plot_history, plot_species_sizes


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Evolve GridRunner controllers with NEAT")
    sub = p.add_subparsers(dest="command", required=True)

    train = sub.add_parser("train", help="run an evolution")
    train.add_argument("--config", type=str, default=None, help="JSON config file")
    train.add_argument("--pop-size", type=int, default=None)
    train.add_argument("--generations", type=int, default=None)
    train.add_argument("--max-steps", type=int, default=None)
    train.add_argument("--seed", type=int, default=None)
    train.add_argument("--seed-genome", type=str, default=None, help="start from clones of a saved genome")
    train.add_argument("--level-seed", type=int, default=0)
    train.add_argument("--level-width", type=int, default=200)
    train.add_argument("--out-root", type=str, default="artifacts")
    train.add_argument("--no-plots", action="store_true")
    train.add_argument("--quiet", action="store_true")

    replay = sub.add_parser("replay", help="evaluate a saved genome")
    replay.add_argument("genome", type=str)
    replay.add_argument("--level-seed", type=int, default=0)
    replay.add_argument("--level-width", type=int, default=200)
    replay.add_argument("--max-steps", type=int, default=3000)
    replay.add_argument("--progress-ratio", type=float, default=1.5)
    return p.parse_args(argv)


def build_config(args: argparse.Namespace, env: GridRunner) -> EvolutionConfig:
    cfg = load_config(Path(args.config)) if args.config else EvolutionConfig()
    overrides = {
        "pop_size": args.pop_size,
        "generations": args.generations,
        "max_steps": args.max_steps,
        "seed": args.seed,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(
        cfg,
        input_size=env.observation_size,
        output_size=env.action_size,
        **overrides,
    )


def train(args: argparse.Namespace) -> None:
    env = GridRunner(width=args.level_width, seed=args.level_seed)
    cfg = build_config(args, env)
    evaluator = EpisodeEvaluator(env, max_steps=cfg.max_steps, progress_ratio=cfg.progress_ratio)
    seed_genome = load_genome(Path(args.seed_genome)) if args.seed_genome else None

    ts = dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    out_dir = Path(args.out_root).resolve() / f"run_{ts}"

    trainer = NEATTrainer(cfg=cfg, evaluator=evaluator, out_dir=out_dir, seed_genome=seed_genome, verbose=not args.quiet)
    champion = trainer.run()
    artifacts = dict(trainer.artifacts)

    if not args.no_plots:
        plots_dir = out_dir / "plots"
        plot_history(trainer.history, plots_dir / "fitness_complexity.png")
        plot_species_sizes(trainer.species_sizes, plots_dir / "species_sizes.png")
        artifacts["plots_dir"] = plots_dir

    report_path = out_dir / "report.md"
    write_markdown_report(path=report_path, history=trainer.history, champion=champion, artifacts=artifacts)

    print(f"Run complete: {out_dir}")
    for name, p in sorted({**artifacts, "report": report_path}.items()):
        print(f"{name}: {p}")


def replay(args: argparse.Namespace) -> None:
    genome = load_genome(Path(args.genome))
    env = GridRunner(width=args.level_width, seed=args.level_seed)
    if (genome.input_size, genome.output_size) != (env.observation_size, env.action_size):
        raise ValueError(
            f"Genome shape {genome.input_size}x{genome.output_size} does not fit "
            f"GridRunner ({env.observation_size}x{env.action_size})"
        )
    evaluator = EpisodeEvaluator(env, max_steps=args.max_steps, progress_ratio=args.progress_ratio)
    result = evaluator.play(genome.to_policy())
    hidden, enabled = genome.complexity()
    print(
        f"fitness={result.fitness:.1f} steps={result.steps} alive={result.alive} "
        f"hidden={hidden} enabled_connections={enabled}"
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        if args.command == "train":
            train(args)
        else:
            replay(args)
    except (GenomeFormatError, PersistenceError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
