from __future__ import annotations

from pathlib import Path

from .genome import Genome


def _trend(history: list[dict[str, float]], key: str) -> str:
    first, last = history[0][key], history[-1][key]
    return f"{first:.2f} -> {last:.2f} ({last - first:+.2f})"


def _generation_table(history: list[dict[str, float]]) -> list[str]:
    rows = [
        "| gen | best | mean | best so far | species | champion hidden | champion conns |",
        "| ---: | ---: | ---: | ---: | ---: | ---: | ---: |",
    ]
    for h in history:
        rows.append(
            f"| {int(h['generation'])} | {h['best_fitness']:.1f} | {h['mean_fitness']:.1f} "
            f"| {h['best_overall']:.1f} | {int(h['species_count'])} "
            f"| {int(h['champ_hidden_nodes'])} | {int(h['champ_enabled_connections'])} |"
        )
    return rows


def _first_improvement(history: list[dict[str, float]]) -> int | None:
    start = history[0]["best_overall"]
    for h in history:
        if h["best_overall"] > start:
            return int(h["generation"])
    return None


def build_complexification_commentary(history: list[dict[str, float]], champion: Genome) -> str:
    """How network size and species count moved over the run."""
    if not history:
        return "No generation history was recorded."

    hidden, enabled = champion.complexity()
    disabled = len(champion.connections) - enabled

    lines = [
        "### Complexification",
        "",
        f"- Population mean hidden nodes: {_trend(history, 'mean_hidden_nodes')}.",
        f"- Population mean enabled connections: {_trend(history, 'mean_enabled_connections')}.",
        f"- Species count: {_trend(history, 'species_count')}.",
    ]

    improved_at = _first_improvement(history)
    if improved_at is None:
        lines.append("- The best fitness never rose above its first-generation value.")
    else:
        lines.append(f"- Best fitness first improved in generation {improved_at}.")

    if hidden:
        lines.append(
            f"- The champion grew {hidden} hidden node(s); {disabled} of its "
            f"{len(champion.connections)} connections were disabled by node splits."
        )
    else:
        lines.append("- The champion is still a direct input-to-output network.")

    return "\n".join(lines)


def write_markdown_report(
    path: Path,
    history: list[dict[str, float]],
    champion: Genome,
    artifacts: dict[str, Path],
) -> None:
    hidden, enabled = champion.complexity()

    lines = [
        "# NEAT Agent Run Report",
        "",
        "## Champion",
        "",
        f"- Fitness (progress): {champion.fitness:.2f}",
        f"- Inputs / outputs: {champion.input_size} / {champion.output_size}",
        f"- Hidden nodes: {hidden}",
        f"- Connections: {len(champion.connections)} ({enabled} enabled)",
        f"- Innovation counter: {champion.innovation_counter}",
        "",
        "## Generations",
        "",
    ]
    lines.extend(_generation_table(history) if history else ["No generations were run."])
    lines.extend(["", build_complexification_commentary(history, champion), "", "## Artifacts", ""])
    lines.extend(f"- {name}: `{p}`" for name, p in sorted(artifacts.items()))
    lines.append("")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines), encoding="utf-8")
