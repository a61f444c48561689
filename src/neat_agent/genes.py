from __future__ import annotations

from dataclasses import dataclass

NODE_INPUT = "input"
NODE_HIDDEN = "hidden"
NODE_OUTPUT = "output"

NODE_KINDS = (NODE_INPUT, NODE_HIDDEN, NODE_OUTPUT)


@dataclass
class NodeGene:
    node_id: int
    kind: str


@dataclass
class ConnectionGene:
    innovation: int
    src: int
    dst: int
    weight: float
    enabled: bool = True

    def copy(self) -> "ConnectionGene":
        return ConnectionGene(
            innovation=self.innovation,
            src=self.src,
            dst=self.dst,
            weight=self.weight,
            enabled=self.enabled,
        )
