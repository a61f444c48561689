from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np


def _column(history: list[dict[str, float]], key: str) -> np.ndarray:
    return np.array([h[key] for h in history], dtype=float)


def _save(fig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def plot_history(history: list[dict[str, float]], path: Path) -> None:
    """Fitness, network size and species count per generation."""
    if not history:
        return

    gen = _column(history, "generation")

    fig, axes = plt.subplots(2, 2, figsize=(12, 8), sharex=True)
    ax_fit, ax_species, ax_hidden, ax_conns = axes.ravel()

    ax_fit.plot(gen, _column(history, "best_overall"), color="black", linewidth=2, label="best so far")
    ax_fit.plot(gen, _column(history, "best_fitness"), marker="o", markersize=3, label="generation best")
    ax_fit.plot(gen, _column(history, "mean_fitness"), linestyle="--", label="mean")
    ax_fit.set_ylabel("progress (px)")
    ax_fit.set_title("Fitness")
    ax_fit.legend(fontsize=8)

    ax_species.step(gen, _column(history, "species_count"), where="mid")
    ax_species.set_ylabel("species")
    ax_species.set_title("Species count")

    ax_hidden.plot(gen, _column(history, "mean_hidden_nodes"), label="population mean")
    ax_hidden.plot(gen, _column(history, "champ_hidden_nodes"), marker="s", markersize=3, label="champion")
    ax_hidden.set_ylabel("hidden nodes")
    ax_hidden.set_xlabel("generation")
    ax_hidden.legend(fontsize=8)

    ax_conns.plot(gen, _column(history, "mean_enabled_connections"), label="population mean")
    ax_conns.plot(gen, _column(history, "champ_enabled_connections"), marker="s", markersize=3, label="champion")
    ax_conns.set_ylabel("enabled connections")
    ax_conns.set_xlabel("generation")
    ax_conns.legend(fontsize=8)

    for ax in axes.ravel():
        ax.grid(True, alpha=0.3)

    _save(fig, path)


def plot_species_sizes(species_sizes: list[dict[int, int]], path: Path) -> None:
    if not species_sizes:
        return

    # Species are re-formed every generation, so an id only names the same
    # cluster within one bar.
    n_gens = len(species_sizes)
    max_species = max(len(row) for row in species_sizes)
    gen = np.arange(1, n_gens + 1)
    colors = plt.cm.tab20(np.linspace(0.0, 1.0, max(max_species, 1)))

    fig, ax = plt.subplots(figsize=(10, 4.5))
    bottom = np.zeros(n_gens, dtype=float)
    for sid in range(max_species):
        sizes = np.array([row.get(sid, 0) for row in species_sizes], dtype=float)
        ax.bar(gen, sizes, bottom=bottom, width=0.85, color=colors[sid], label=f"#{sid}")
        bottom += sizes

    ax.set_xlabel("generation")
    ax.set_ylabel("genomes")
    ax.set_title("Population split by species")
    ax.grid(True, axis="y", alpha=0.25)
    if max_species <= 10:
        ax.legend(loc="upper right", fontsize=8, ncol=2)

    _save(fig, path)
