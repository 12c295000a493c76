"""JSON round-tripping for pipeline graphs.

The canonical document is::

    {"version": 1,
     "nodes": [{"id": ..., "kind": ..., "algorithm": ..., "params": {...}, "label": ...}],
     "edges": [{"source": ..., "target": ...}]}

Documents saved by the browser graph editor use ``type`` for the node kind
and nest ``algorithm``/``params``/``label`` under ``data``; those load too.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from ..errors import GraphFormatError
from .graph import NodeKind, PipelineEdge, PipelineGraph, PipelineNode


FORMAT_VERSION = 1

PathLike = Union[str, Path]


def node_to_dict(node: PipelineNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": node.id, "kind": node.kind.value}
    if node.algorithm is not None:
        data["algorithm"] = node.algorithm
    if node.params:
        data["params"] = dict(node.params)
    if node.label is not None:
        data["label"] = node.label
    return data


def graph_to_dict(graph: PipelineGraph) -> Dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "nodes": [node_to_dict(node) for node in graph.nodes],
        "edges": [{"source": edge.source, "target": edge.target} for edge in graph.edges],
    }


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise GraphFormatError(f"{what} must be a non-empty string, got {value!r}")
    return value


def node_from_dict(data: Any) -> PipelineNode:
    if not isinstance(data, Mapping):
        raise GraphFormatError(f"Node entries must be objects, got {data!r}")
    node_id = _require_str(data.get("id"), "Node id")

    kind = data.get("kind", data.get("type"))
    try:
        kind = NodeKind(kind)
    except ValueError:
        raise GraphFormatError(f"Node {node_id!r} has unknown kind {kind!r}") from None

    extra = data.get("data") or {}
    if not isinstance(extra, Mapping):
        raise GraphFormatError(f"Node {node_id!r} has a non-object 'data' field")
    algorithm = data.get("algorithm", extra.get("algorithm"))
    params = data.get("params", extra.get("params")) or {}
    label = data.get("label", extra.get("label"))

    if algorithm is not None and not isinstance(algorithm, str):
        raise GraphFormatError(f"Node {node_id!r} algorithm must be a string, got {algorithm!r}")
    if not isinstance(params, Mapping):
        raise GraphFormatError(f"Node {node_id!r} params must be an object, got {params!r}")
    if label is not None and not isinstance(label, str):
        raise GraphFormatError(f"Node {node_id!r} label must be a string, got {label!r}")
    return PipelineNode(node_id, kind, algorithm, dict(params), label)


def graph_from_dict(data: Any) -> PipelineGraph:
    if not isinstance(data, Mapping):
        raise GraphFormatError(f"Graph description must be an object, got {type(data).__name__}")
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise GraphFormatError(f"Unsupported graph format version {version!r}")

    nodes = data.get("nodes")
    edges = data.get("edges", [])
    if not isinstance(nodes, list):
        raise GraphFormatError("Graph description needs a 'nodes' list")
    if not isinstance(edges, list):
        raise GraphFormatError("Graph 'edges' must be a list")

    graph = PipelineGraph([node_from_dict(node) for node in nodes])
    for edge in edges:
        if not isinstance(edge, Mapping):
            raise GraphFormatError(f"Edge entries must be objects, got {edge!r}")
        graph.edges.append(
            PipelineEdge(
                _require_str(edge.get("source"), "Edge source"),
                _require_str(edge.get("target"), "Edge target"),
            )
        )
    return graph


def dumps(graph: PipelineGraph, **kwargs: Any) -> str:
    return json.dumps(graph_to_dict(graph), **kwargs)


def loads(text: Union[str, bytes]) -> PipelineGraph:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise GraphFormatError(f"Graph description is not valid JSON: {exc}") from exc
    return graph_from_dict(data)


def save_graph(graph: PipelineGraph, path: PathLike) -> None:
    Path(path).write_text(dumps(graph, indent=2) + "\n", encoding="utf-8")


def load_graph(path: PathLike) -> PipelineGraph:
    return loads(Path(path).read_text(encoding="utf-8"))
