from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union


class NodeKind(str, Enum):
    INPUT = "input"
    EFFECT = "effect"
    OUTPUT = "output"


@dataclass
class PipelineNode:
    id: str
    kind: NodeKind
    algorithm: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    label: Optional[str] = None

    def __post_init__(self) -> None:
        self.kind = NodeKind(self.kind)
        self.params = dict(self.params or {})

    @property
    def display_name(self) -> str:
        return self.label or self.id


@dataclass(frozen=True)
class PipelineEdge:
    source: str
    target: str


EffectSpec = Union[str, Tuple[str, Dict[str, Any]]]


@dataclass
class PipelineGraph:
    """Nodes and edges of a processing graph, in declaration order.

    The graph itself accepts anything; structural rules are checked by
    ``GraphExecutor.validate``.
    """

    nodes: List[PipelineNode] = field(default_factory=list)
    edges: List[PipelineEdge] = field(default_factory=list)

    def node(self, node_id: str) -> PipelineNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def has_node(self, node_id: str) -> bool:
        return any(node.id == node_id for node in self.nodes)

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def nodes_of_kind(self, kind: Union[NodeKind, str]) -> List[PipelineNode]:
        kind = NodeKind(kind)
        return [node for node in self.nodes if node.kind is kind]

    def incoming(self, node_id: str) -> List[PipelineEdge]:
        return [edge for edge in self.edges if edge.target == node_id]

    def outgoing(self, node_id: str) -> List[PipelineEdge]:
        return [edge for edge in self.edges if edge.source == node_id]

    def predecessor(self, node_id: str) -> Optional[str]:
        for edge in self.edges:
            if edge.target == node_id:
                return edge.source
        return None

    def add_node(
        self,
        node_id: str,
        kind: Union[NodeKind, str],
        algorithm: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        label: Optional[str] = None,
    ) -> PipelineNode:
        node = PipelineNode(node_id, NodeKind(kind), algorithm, dict(params or {}), label)
        self.nodes.append(node)
        return node

    def connect(self, source: str, target: str) -> PipelineEdge:
        edge = PipelineEdge(source, target)
        self.edges.append(edge)
        return edge


def linear_graph(*effects: EffectSpec) -> PipelineGraph:
    """``input -> effect-1 -> ... -> effect-n -> output``.

    Each effect is an algorithm key or an ``(algorithm, params)`` pair.
    """
    graph = PipelineGraph()
    graph.add_node("input", NodeKind.INPUT)
    previous = "input"
    for index, spec in enumerate(effects, start=1):
        if isinstance(spec, str):
            algorithm, params = spec, {}
        else:
            algorithm, params = spec
        node_id = f"effect-{index}"
        graph.add_node(node_id, NodeKind.EFFECT, algorithm, params)
        graph.connect(previous, node_id)
        previous = node_id
    graph.add_node("output", NodeKind.OUTPUT)
    graph.connect(previous, "output")
    return graph


def chain(graph: PipelineGraph, node_ids: Sequence[str]) -> PipelineGraph:
    """Connect ``node_ids`` pairwise in order."""
    for source, target in zip(node_ids, node_ids[1:]):
        graph.connect(source, target)
    return graph
