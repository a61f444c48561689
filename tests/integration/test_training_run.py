"""
Integration tests: evolve GridRunner controllers end to end.

These runs are short (a handful of genomes, two generations) and check the
plumbing between evaluation, reproduction and the on-disk artifacts rather
than how well the agents play.
"""

import csv
import json

import pytest

from neat_agent.cli import main
from neat_agent.evolution import NEATTrainer
from neat_agent.genome import create_initial_genome
from neat_agent.persistence import load_genome, save_genome


def single_run_dir(out_root):
    runs = sorted(out_root.glob("run_*"))
    assert len(runs) == 1
    return runs[0]


# ============================================================================
# Test: NEATTrainer on GridRunner
# ============================================================================

class TestTrainerOnGridRunner:
    """Test a full run with real episodes."""

    def test_run_produces_champion_and_records(self, tmp_path, tiny_run_config, level_evaluator):
        trainer = NEATTrainer(cfg=tiny_run_config, evaluator=level_evaluator, out_dir=tmp_path / "run", verbose=False)

        champion = trainer.run()

        assert champion.input_size == 224 and champion.output_size == 3
        # every agent starts at x = 40 and is never pushed backwards past 0
        assert champion.fitness >= 0.0
        assert len(trainer.history) == 2
        assert len(trainer.population) == tiny_run_config.pop_size

        saved = load_genome(tmp_path / "run" / "champion_genome.json")
        assert saved == champion

    def test_saved_champion_replays_to_same_fitness(self, tmp_path, tiny_run_config, level_evaluator):
        trainer = NEATTrainer(cfg=tiny_run_config, evaluator=level_evaluator, out_dir=tmp_path / "run", verbose=False)
        champion = trainer.run()

        restored = load_genome(tmp_path / "run" / "champion_genome.json")
        assert level_evaluator.evaluate(restored) == pytest.approx(champion.fitness)

    def test_same_seed_same_history(self, tmp_path, tiny_run_config, level_evaluator):
        first = NEATTrainer(cfg=tiny_run_config, evaluator=level_evaluator, out_dir=tmp_path / "a", verbose=False)
        second = NEATTrainer(cfg=tiny_run_config, evaluator=level_evaluator, out_dir=tmp_path / "b", verbose=False)
        first.run()
        second.run()
        assert first.history == second.history


# ============================================================================
# Test: command line
# ============================================================================

class TestCommandLine:
    """Test the train and replay subcommands."""

    TRAIN_ARGS = [
        "train",
        "--pop-size", "6",
        "--generations", "2",
        "--max-steps", "120",
        "--level-width", "40",
        "--seed", "5",
        "--quiet",
    ]

    def test_train_writes_run_directory(self, tmp_path, capsys):
        main(self.TRAIN_ARGS + ["--out-root", str(tmp_path), "--no-plots"])

        run_dir = single_run_dir(tmp_path)
        assert (run_dir / "report.md").exists()
        assert (run_dir / "champion_genome.json").exists()
        assert (run_dir / "genomes" / "gen_0001.json").exists()
        assert (run_dir / "genomes" / "gen_0002.json").exists()
        assert not (run_dir / "plots").exists()

        with (run_dir / "history.csv").open() as f:
            rows = list(csv.DictReader(f))
        assert [int(float(r["generation"])) for r in rows] == [1, 2]

        progress = json.loads((run_dir / "progress.json").read_text())
        assert progress["status"] == "finished"
        assert "Run complete" in capsys.readouterr().out

    def test_train_with_plots(self, tmp_path):
        main(self.TRAIN_ARGS + ["--out-root", str(tmp_path)])

        run_dir = single_run_dir(tmp_path)
        assert (run_dir / "plots" / "fitness_complexity.png").exists()
        assert (run_dir / "plots" / "species_sizes.png").exists()
        assert "plots_dir" in (run_dir / "report.md").read_text()

    def test_train_from_config_file(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"pop_size": 5, "species": {"compatibility_threshold": 1.0}}))
        out_root = tmp_path / "out"

        main([
            "train", "--config", str(config_path), "--generations", "1", "--max-steps", "60",
            "--level-width", "40", "--out-root", str(out_root), "--no-plots", "--quiet",
        ])

        run_dir = single_run_dir(out_root)
        with (run_dir / "species_sizes.csv").open() as f:
            row = next(csv.DictReader(f))
        assert sum(int(v) for k, v in row.items() if k != "generation") == 5

    @pytest.mark.parametrize("content", [{"mutation": 5}, {"pop_size": "10"}, {"pop_size": 2.5}])
    def test_train_with_malformed_config_exits_with_error(self, tmp_path, capsys, content):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps(content))

        with pytest.raises(SystemExit) as exc_info:
            main(["train", "--config", str(config_path), "--out-root", str(tmp_path / "out"), "--quiet"])

        assert exc_info.value.code == 1
        assert "error:" in capsys.readouterr().err
        assert not (tmp_path / "out").exists()

    def test_train_from_seed_genome(self, tmp_path, rng):
        seed_path = save_genome(create_initial_genome(224, 3, rng), tmp_path / "seed.json")
        out_root = tmp_path / "out"

        main(self.TRAIN_ARGS + ["--seed-genome", str(seed_path), "--out-root", str(out_root), "--no-plots"])

        champion = load_genome(single_run_dir(out_root) / "champion_genome.json")
        assert champion.input_size == 224

    def test_replay_prints_fitness(self, tmp_path, capsys):
        main(self.TRAIN_ARGS + ["--out-root", str(tmp_path), "--no-plots"])
        champion_path = single_run_dir(tmp_path) / "champion_genome.json"
        capsys.readouterr()

        main(["replay", str(champion_path), "--level-width", "40", "--max-steps", "120"])

        out = capsys.readouterr().out
        assert "fitness=" in out
        assert "steps=" in out

    def test_replay_missing_file_exits_with_error(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["replay", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 1
        assert "error:" in capsys.readouterr().err

    def test_replay_rejects_wrong_shape(self, tmp_path, rng, capsys):
        path = save_genome(create_initial_genome(3, 2, rng), tmp_path / "small.json")
        with pytest.raises(SystemExit) as exc_info:
            main(["replay", str(path)])
        assert exc_info.value.code == 1
        assert "does not fit" in capsys.readouterr().err

    def test_replay_non_utf8_file(self, tmp_path, capsys):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\x89PNG\r\n\x1a\n\xff")
        with pytest.raises(SystemExit) as exc_info:
            main(["replay", str(path)])
        assert exc_info.value.code == 1
        assert "UTF-8" in capsys.readouterr().err

    def test_replay_malformed_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(SystemExit) as exc_info:
            main(["replay", str(path)])
        assert exc_info.value.code == 1
