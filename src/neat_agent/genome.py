from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import jax.numpy as jnp
import numpy as np

from .activations import binary_action, steep_sigmoid
from .config import EvolutionConfig, MutationConfig
from .genes import NODE_HIDDEN, NODE_INPUT, NODE_OUTPUT, ConnectionGene, NodeGene


@dataclass
class Genome:
    """One evolvable network.

    ``connections`` is an ordered list: ``activate`` walks it front to back,
    so the order is part of the network's behaviour. Innovation numbers are
    stamped from this genome's own ``innovation_counter``.
    """

    nodes: dict[int, NodeGene]
    connections: list[ConnectionGene]
    input_size: int
    output_size: int
    innovation_counter: int = 0
    fitness: float = 0.0
    adjusted_fitness: float = 0.0
    species_id: int | None = field(default=None, compare=False)

    def clone(self) -> "Genome":
        return Genome(
            nodes={nid: NodeGene(node_id=n.node_id, kind=n.kind) for nid, n in self.nodes.items()},
            connections=[c.copy() for c in self.connections],
            input_size=self.input_size,
            output_size=self.output_size,
            innovation_counter=self.innovation_counter,
            fitness=self.fitness,
            adjusted_fitness=self.adjusted_fitness,
        )

    @property
    def input_ids(self) -> list[int]:
        return list(range(1, self.input_size + 1))

    @property
    def output_ids(self) -> list[int]:
        return list(range(self.input_size + 1, self.input_size + self.output_size + 1))

    @property
    def hidden_ids(self) -> list[int]:
        return sorted(k for k, n in self.nodes.items() if n.kind == NODE_HIDDEN)

    def complexity(self) -> tuple[int, int]:
        enabled = sum(1 for c in self.connections if c.enabled)
        return len(self.hidden_ids), enabled

    def connection_exists(self, src: int, dst: int) -> bool:
        return any(c.src == src and c.dst == dst for c in self.connections)

    def to_policy(self) -> "Policy":
        return Policy(self)

    def activate(self, inputs: Sequence[float]) -> list[float]:
        values = {nid: 0.0 for nid in self.nodes}
        for i in range(min(len(inputs), self.input_size)):
            values[i + 1] = float(inputs[i])

        # Insertion order, not dependency order: a source computed later in
        # the list contributes whatever it held at this point.
        for conn in self.connections:
            if conn.enabled:
                values[conn.dst] = values.get(conn.dst, 0.0) + values.get(conn.src, 0.0) * conn.weight

        totals = jnp.asarray([values.get(nid, 0.0) for nid in self.output_ids], dtype=jnp.float32)
        return [float(v) for v in steep_sigmoid(totals)]

    def _next_innovation(self) -> int:
        self.innovation_counter += 1
        return self.innovation_counter

    def mutate(self, rng: np.random.Generator, cfg: EvolutionConfig) -> None:
        mcfg = cfg.mutation
        if rng.random() < mcfg.add_node_rate:
            self.mutate_add_node(rng)
        if rng.random() < mcfg.add_conn_rate:
            self.mutate_add_connection(rng, attempts=mcfg.add_connection_attempts)
        self.mutate_weights(rng, mcfg)

    def mutate_weights(self, rng: np.random.Generator, mcfg: MutationConfig) -> None:
        for conn in self.connections:
            if rng.random() < mcfg.weight_mutate_rate:
                if rng.random() < mcfg.weight_perturb_rate:
                    conn.weight += float((rng.random() - 0.5) * mcfg.weight_mutate_power)
                else:
                    conn.weight = float(rng.uniform(-1.0, 1.0))

    def mutate_add_node(self, rng: np.random.Generator) -> None:
        if not self.connections:
            return
        enabled = [c for c in self.connections if c.enabled]
        if not enabled:
            return

        old_conn = enabled[rng.integers(len(enabled))]
        old_conn.enabled = False

        new_node_id = max(self.nodes) + 1
        self.nodes[new_node_id] = NodeGene(node_id=new_node_id, kind=NODE_HIDDEN)

        self.connections.append(
            ConnectionGene(
                innovation=self._next_innovation(),
                src=old_conn.src,
                dst=new_node_id,
                weight=1.0,
                enabled=True,
            )
        )
        self.connections.append(
            ConnectionGene(
                innovation=self._next_innovation(),
                src=new_node_id,
                dst=old_conn.dst,
                weight=old_conn.weight,
                enabled=True,
            )
        )

    def mutate_add_connection(self, rng: np.random.Generator, attempts: int = 100) -> None:
        node_list = list(self.nodes.values())
        if not node_list:
            return

        for _ in range(attempts):
            src_node = node_list[rng.integers(len(node_list))]
            dst_node = node_list[rng.integers(len(node_list))]
            if src_node.node_id == dst_node.node_id:
                continue
            if src_node.kind == NODE_OUTPUT or dst_node.kind == NODE_INPUT:
                continue
            if self.connection_exists(src_node.node_id, dst_node.node_id):
                continue

            self.connections.append(
                ConnectionGene(
                    innovation=self._next_innovation(),
                    src=src_node.node_id,
                    dst=dst_node.node_id,
                    weight=float(rng.uniform(-1.0, 1.0)),
                    enabled=True,
                )
            )
            return


class Policy:
    """Controller view of a genome: observation grid in, action vector out."""

    def __init__(self, genome: Genome):
        self._genome = genome

    def forward(self, observation) -> jnp.ndarray:
        flat = np.asarray(observation, dtype=np.float32).reshape(-1)
        return jnp.asarray(self._genome.activate(flat), dtype=jnp.float32)

    def action(self, observation) -> np.ndarray:
        return np.asarray(binary_action(self.forward(observation)))


def create_initial_genome(input_size: int, output_size: int, rng: np.random.Generator) -> Genome:
    nodes: dict[int, NodeGene] = {}
    for nid in range(1, input_size + 1):
        nodes[nid] = NodeGene(node_id=nid, kind=NODE_INPUT)
    for nid in range(input_size + 1, input_size + output_size + 1):
        nodes[nid] = NodeGene(node_id=nid, kind=NODE_OUTPUT)

    genome = Genome(nodes=nodes, connections=[], input_size=input_size, output_size=output_size)
    for src in range(1, input_size + 1):
        for dst in range(input_size + 1, input_size + output_size + 1):
            genome.connections.append(
                ConnectionGene(
                    innovation=genome._next_innovation(),
                    src=src,
                    dst=dst,
                    weight=float(rng.uniform(-1.0, 1.0)),
                    enabled=True,
                )
            )
    return genome


def compatibility_distance(genome_a: Genome, genome_b: Genome, cfg: EvolutionConfig) -> float:
    scfg = cfg.species

    conns_a = sorted(genome_a.connections, key=lambda c: c.innovation)
    conns_b = sorted(genome_b.connections, key=lambda c: c.innovation)

    disjoint = 0
    matching = 0
    weight_diff = 0.0
    i = j = 0
    while i < len(conns_a) and j < len(conns_b):
        a = conns_a[i]
        b = conns_b[j]
        if a.innovation == b.innovation:
            weight_diff += abs(a.weight - b.weight)
            matching += 1
            i += 1
            j += 1
        elif a.innovation < b.innovation:
            disjoint += 1
            i += 1
        else:
            disjoint += 1
            j += 1

    # Whatever is left on either side once one list runs out.
    excess = (len(conns_a) - i) + (len(conns_b) - j)

    n = max(len(conns_a), len(conns_b), 1)
    weight_term = scfg.weight_coeff * weight_diff / matching if matching else 0.0
    return weight_term + scfg.disjoint_coeff * disjoint / n + scfg.excess_coeff * excess / n


def crossover(rng: np.random.Generator, parent_a: Genome, parent_b: Genome) -> Genome:
    # Ties keep parent_a dominant.
    if parent_b.fitness > parent_a.fitness:
        fitter, other = parent_b, parent_a
    else:
        fitter, other = parent_a, parent_b

    max_innovation = max(fitter.innovation_counter, other.innovation_counter)
    child = Genome(
        nodes={nid: NodeGene(node_id=n.node_id, kind=n.kind) for nid, n in fitter.nodes.items()},
        connections=[],
        input_size=fitter.input_size,
        output_size=fitter.output_size,
        innovation_counter=max_innovation,
    )

    f_innov = {c.innovation: c for c in fitter.connections}
    o_innov = {c.innovation: c for c in other.connections}
    used_pairs: set[tuple[int, int]] = set()

    def usable(gene: ConnectionGene) -> bool:
        return (
            gene.src in child.nodes
            and gene.dst in child.nodes
            and (gene.src, gene.dst) not in used_pairs
        )

    for innov in range(1, max_innovation + 1):
        f_gene = f_innov.get(innov)
        o_gene = o_innov.get(innov)
        if f_gene is None:
            # Genes only the weaker parent carries are never inherited.
            continue

        if o_gene is not None:
            picked, fallback = (f_gene, o_gene) if rng.random() < 0.5 else (o_gene, f_gene)
            # Counters are per genome, so the same number can name different
            # links in the two parents; only take a gene the child can host.
            candidates = [picked, fallback]
        else:
            candidates = [f_gene]

        for gene in candidates:
            if usable(gene):
                child.connections.append(gene.copy())
                used_pairs.add((gene.src, gene.dst))
                break

    return child
