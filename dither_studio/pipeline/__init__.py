"""Pipeline graphs and the executor that runs them."""

from .executor import ExecutionState, GraphExecutor, ValidationResult
from .graph import NodeKind, PipelineEdge, PipelineGraph, PipelineNode, linear_graph
from .serialize import dumps, graph_from_dict, graph_to_dict, load_graph, loads, save_graph

__all__ = [
    "ExecutionState",
    "GraphExecutor",
    "ValidationResult",
    "NodeKind",
    "PipelineEdge",
    "PipelineGraph",
    "PipelineNode",
    "linear_graph",
    "dumps",
    "graph_from_dict",
    "graph_to_dict",
    "load_graph",
    "loads",
    "save_graph",
]
