"""Genome records: a self-describing JSON form and its file storage.

Node order in a record carries no meaning (nodes are rebuilt by id), but the
connection order does, because ``Genome.activate`` walks connections in list
order. Both directions keep connections exactly as listed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .genes import NODE_INPUT, NODE_KINDS, NODE_OUTPUT, ConnectionGene, NodeGene
from .genome import Genome

FORMAT_VERSION = 1

_REQUIRED_FIELDS = ("nodes", "connections", "innovation_counter", "input_size", "output_size")
_CONNECTION_FIELDS = ("in_node", "out_node", "weight", "enabled", "innovation")


class GenomeFormatError(ValueError):
    """A genome record is malformed or violates genome invariants."""


class PersistenceError(RuntimeError):
    """A genome record could not be read from or written to storage."""


def genome_to_dict(genome: Genome) -> dict[str, Any]:
    return {
        "format_version": FORMAT_VERSION,
        "input_size": genome.input_size,
        "output_size": genome.output_size,
        "innovation_counter": genome.innovation_counter,
        "fitness": float(genome.fitness),
        "adjusted_fitness": float(genome.adjusted_fitness),
        "nodes": [
            {"id": n.node_id, "kind": n.kind}
            for n in sorted(genome.nodes.values(), key=lambda x: x.node_id)
        ],
        "connections": [
            {
                "in_node": c.src,
                "out_node": c.dst,
                "weight": float(c.weight),
                "enabled": bool(c.enabled),
                "innovation": c.innovation,
            }
            for c in genome.connections
        ],
    }


def _require_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise GenomeFormatError(f"{what} must be an integer, got {value!r}")
    return value


def _require_number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise GenomeFormatError(f"{what} must be a number, got {value!r}")
    return float(value)


def genome_from_dict(data: Any) -> Genome:
    if not isinstance(data, dict):
        raise GenomeFormatError("Genome record must be a JSON object")
    missing = [k for k in _REQUIRED_FIELDS if k not in data]
    if missing:
        raise GenomeFormatError(f"Genome record is missing fields: {', '.join(missing)}")

    for key in ("nodes", "connections"):
        if not isinstance(data[key], list):
            raise GenomeFormatError(f"'{key}' must be a list")

    input_size = _require_int(data["input_size"], "input_size")
    output_size = _require_int(data["output_size"], "output_size")
    if input_size < 1 or output_size < 1:
        raise GenomeFormatError("input_size and output_size must be >= 1")

    nodes: dict[int, NodeGene] = {}
    for raw in data["nodes"]:
        if not isinstance(raw, dict) or "id" not in raw or "kind" not in raw:
            raise GenomeFormatError(f"Node entry needs 'id' and 'kind': {raw!r}")
        nid = _require_int(raw["id"], "node id")
        kind = raw["kind"]
        if kind not in NODE_KINDS:
            raise GenomeFormatError(f"Node {nid} has unknown kind {kind!r}")
        if nid in nodes:
            raise GenomeFormatError(f"Duplicate node id {nid}")
        nodes[nid] = NodeGene(node_id=nid, kind=kind)

    for nid in range(1, input_size + 1):
        if nid not in nodes or nodes[nid].kind != NODE_INPUT:
            raise GenomeFormatError(f"Expected input node with id {nid}")
    for nid in range(input_size + 1, input_size + output_size + 1):
        if nid not in nodes or nodes[nid].kind != NODE_OUTPUT:
            raise GenomeFormatError(f"Expected output node with id {nid}")
    extra_io = [
        n.node_id for n in nodes.values()
        if n.kind in (NODE_INPUT, NODE_OUTPUT) and n.node_id > input_size + output_size
    ]
    if extra_io:
        raise GenomeFormatError(f"Unexpected input/output nodes: {extra_io}")

    connections: list[ConnectionGene] = []
    seen_innovations: set[int] = set()
    seen_pairs: set[tuple[int, int]] = set()
    for raw in data["connections"]:
        if not isinstance(raw, dict):
            raise GenomeFormatError(f"Connection entry must be an object: {raw!r}")
        missing = [k for k in _CONNECTION_FIELDS if k not in raw]
        if missing:
            raise GenomeFormatError(f"Connection entry is missing fields: {', '.join(missing)}")

        src = _require_int(raw["in_node"], "in_node")
        dst = _require_int(raw["out_node"], "out_node")
        innovation = _require_int(raw["innovation"], "innovation")
        if src not in nodes or dst not in nodes:
            raise GenomeFormatError(f"Connection {innovation} references unknown node ({src} -> {dst})")
        if nodes[src].kind == NODE_OUTPUT or nodes[dst].kind == NODE_INPUT:
            raise GenomeFormatError(f"Connection {innovation} has an invalid direction ({src} -> {dst})")
        if src == dst:
            raise GenomeFormatError(f"Connection {innovation} is a self-loop on node {src}")
        if (src, dst) in seen_pairs:
            raise GenomeFormatError(f"Duplicate connection {src} -> {dst} (innovation {innovation})")
        if innovation in seen_innovations:
            raise GenomeFormatError(f"Duplicate innovation number {innovation}")
        if not isinstance(raw["enabled"], bool):
            raise GenomeFormatError(f"Connection {innovation} 'enabled' must be a boolean")
        seen_innovations.add(innovation)
        seen_pairs.add((src, dst))

        connections.append(
            ConnectionGene(
                innovation=innovation,
                src=src,
                dst=dst,
                weight=_require_number(raw["weight"], "weight"),
                enabled=raw["enabled"],
            )
        )

    innovation_counter = _require_int(data["innovation_counter"], "innovation_counter")
    if seen_innovations and innovation_counter < max(seen_innovations):
        raise GenomeFormatError(
            f"innovation_counter {innovation_counter} is below the highest innovation {max(seen_innovations)}"
        )

    return Genome(
        nodes=nodes,
        connections=connections,
        input_size=input_size,
        output_size=output_size,
        innovation_counter=innovation_counter,
        fitness=_require_number(data.get("fitness", 0.0), "fitness"),
        adjusted_fitness=_require_number(data.get("adjusted_fitness", 0.0), "adjusted_fitness"),
    )


def serialize(genome: Genome) -> str:
    return json.dumps(genome_to_dict(genome), indent=2)


def deserialize(text: str) -> Genome:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GenomeFormatError(f"Genome record is not valid JSON: {exc}") from exc
    return genome_from_dict(data)


def save_genome(genome: Genome, path: Path) -> Path:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            f.write(serialize(genome))
    except OSError as exc:
        raise PersistenceError(f"Failed to write genome to {path}: {exc}") from exc
    return path


def load_genome(path: Path) -> Genome:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise GenomeFormatError(f"Genome file {path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise PersistenceError(f"Failed to read genome from {path}: {exc}") from exc
    return deserialize(text)
