"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add the src directory to the Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir / "src"))

from neat_agent.config import EvolutionConfig, SpeciesConfig  # noqa: E402
from neat_agent.genes import NODE_HIDDEN, NODE_INPUT, NODE_OUTPUT, ConnectionGene, NodeGene  # noqa: E402
from neat_agent.genome import Genome, create_initial_genome  # noqa: E402


@pytest.fixture
def rng():
    """Seeded generator so randomized tests are repeatable."""
    return np.random.default_rng(1234)


@pytest.fixture
def small_config():
    """Config for a 3-input, 2-output network and a small population."""
    return EvolutionConfig(pop_size=20, generations=3, input_size=3, output_size=2, max_steps=100)


@pytest.fixture
def unit_coeff_config():
    """Config with c1 = c2 = c3 = 1 for hand-computed distances."""
    return EvolutionConfig(
        input_size=3,
        output_size=2,
        species=SpeciesConfig(compatibility_threshold=3.0, weight_coeff=1.0, disjoint_coeff=1.0, excess_coeff=1.0),
    )


@pytest.fixture
def small_genome(rng):
    """Freshly created fully connected 3x2 genome."""
    return create_initial_genome(3, 2, rng)


@pytest.fixture
def genome_factory():
    """Build a genome from explicit (innovation, src, dst, weight, enabled) tuples."""

    def _make(input_size, output_size, connections, hidden=(), fitness=0.0, innovation_counter=None):
        nodes = {}
        for nid in range(1, input_size + 1):
            nodes[nid] = NodeGene(node_id=nid, kind=NODE_INPUT)
        for nid in range(input_size + 1, input_size + output_size + 1):
            nodes[nid] = NodeGene(node_id=nid, kind=NODE_OUTPUT)
        for nid in hidden:
            nodes[nid] = NodeGene(node_id=nid, kind=NODE_HIDDEN)

        conns = [
            ConnectionGene(innovation=inn, src=src, dst=dst, weight=w, enabled=en)
            for inn, src, dst, w, en in connections
        ]
        if innovation_counter is None:
            innovation_counter = max((c.innovation for c in conns), default=0)
        return Genome(
            nodes=nodes,
            connections=conns,
            input_size=input_size,
            output_size=output_size,
            innovation_counter=innovation_counter,
            fitness=fitness,
        )

    return _make
