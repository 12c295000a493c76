"""Validate and run a pipeline graph against a source image.

A run walks the graph in dependency order, memoizing each node's output so
that a node feeding several consumers is computed once. The memo belongs to
the executor and is reset at the start of every run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Set, Tuple

from ..adapters import Adapter, call_adapter, region_from_params
from ..buffer import ImageBuffer
from ..errors import ExecutionError, InternalConsistencyError, ValidationError
from ..processing.registry import DEFAULT_REGISTRY, TransformRegistry
from .graph import NodeKind, PipelineGraph, PipelineNode


logger = logging.getLogger(__name__)

_EXHAUSTED = object()


class ExecutionState(Enum):
    UNVALIDATED = "unvalidated"
    VALIDATED = "validated"
    EXECUTING = "executing"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.valid


class GraphExecutor:
    def __init__(
        self,
        graph: PipelineGraph,
        registry: Optional[TransformRegistry] = None,
        adapters: Optional[Mapping[str, Adapter]] = None,
    ) -> None:
        self.graph = graph
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.adapters: Dict[str, Adapter] = dict(adapters or {})
        self.state = ExecutionState.UNVALIDATED
        self._cache: Dict[str, ImageBuffer] = {}

    # -- validation -----------------------------------------------------

    def validate(self) -> ValidationResult:
        graph = self.graph
        errors: List[str] = []

        if not graph.nodes_of_kind(NodeKind.INPUT):
            errors.append("Graph must have at least one Input node")
        if not graph.nodes_of_kind(NodeKind.OUTPUT):
            errors.append("Graph must have at least one Output node")

        seen: Set[str] = set()
        for node in graph.nodes:
            if node.id in seen:
                errors.append(f"Duplicate node id {node.id!r}")
            seen.add(node.id)

        for edge in graph.edges:
            for end in (edge.source, edge.target):
                if end not in seen:
                    errors.append(f"Edge {edge.source!r} -> {edge.target!r} references unknown node {end!r}")

        cycle = self.find_cycle()
        if cycle:
            errors.append("Graph contains a cycle: " + " -> ".join(cycle))

        for node in graph.nodes:
            incoming = graph.incoming(node.id)
            if node.kind is NodeKind.INPUT:
                if incoming:
                    errors.append(f"Input node {node.display_name!r} cannot have incoming connections")
                continue
            if len(incoming) > 1:
                sources = ", ".join(repr(edge.source) for edge in incoming)
                errors.append(
                    f"Node {node.display_name!r} has {len(incoming)} incoming connections "
                    f"({sources}); only one is allowed"
                )
            if node.kind is NodeKind.EFFECT:
                if not incoming or not graph.outgoing(node.id):
                    errors.append(f"Effect node {node.display_name!r} is not properly connected")
                if not node.algorithm:
                    errors.append(f"Effect node {node.display_name!r} has no algorithm selected")
            elif not incoming:
                errors.append(f"Output node {node.display_name!r} must have an input connection")

        if errors:
            self.state = ExecutionState.UNVALIDATED
            return ValidationResult(False, tuple(errors))
        self.state = ExecutionState.VALIDATED
        return ValidationResult(True)

    def find_cycle(self) -> Optional[List[str]]:
        """Return one cycle as a closed path of node ids, or ``None``."""
        successors: Dict[str, List[str]] = {node_id: [] for node_id in self.graph.node_ids()}
        for edge in self.graph.edges:
            if edge.source in successors and edge.target in successors:
                successors[edge.source].append(edge.target)
        visited: Set[str] = set()

        for root in successors:
            if root in visited:
                continue
            visited.add(root)
            path = [root]
            on_path = {root}
            pending = [iter(successors[root])]
            while pending:
                neighbour = next(pending[-1], _EXHAUSTED)
                if neighbour is _EXHAUSTED:
                    pending.pop()
                    on_path.discard(path.pop())
                elif neighbour in on_path:
                    return path[path.index(neighbour):] + [neighbour]
                elif neighbour not in visited:
                    visited.add(neighbour)
                    path.append(neighbour)
                    on_path.add(neighbour)
                    pending.append(iter(successors[neighbour]))
        return None

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None

    def topological_order(self) -> List[str]:
        """Node ids with every node after all of its predecessors.

        Nodes are visited in declaration order and dependencies are followed
        along incoming edges, so the order is stable for a given graph.
        """
        if self.has_cycle():
            raise ValidationError(["Graph contains a cycle"])
        predecessors: Dict[str, List[str]] = {node_id: [] for node_id in self.graph.node_ids()}
        for edge in self.graph.edges:
            if edge.source in predecessors and edge.target in predecessors:
                predecessors[edge.target].append(edge.source)
        order: List[str] = []
        visited: Set[str] = set()

        for root in predecessors:
            if root in visited:
                continue
            visited.add(root)
            stack = [(root, iter(predecessors[root]))]
            while stack:
                node_id, deps = stack[-1]
                dep = next(deps, _EXHAUSTED)
                if dep is _EXHAUSTED:
                    stack.pop()
                    order.append(node_id)
                elif dep not in visited:
                    visited.add(dep)
                    stack.append((dep, iter(predecessors[dep])))
        return order

    # -- execution ------------------------------------------------------

    def execute(self, source: ImageBuffer) -> ImageBuffer:
        result = self.validate()
        if not result.valid:
            raise ValidationError(result.errors)

        self._cache = {}
        self.state = ExecutionState.EXECUTING
        graph = self.graph
        started = time.perf_counter()

        for node_id in self.topological_order():
            node = graph.node(node_id)
            tick = time.perf_counter()
            try:
                self._cache[node_id] = self._run_node(node, source)
            except InternalConsistencyError:
                self.state = ExecutionState.FAILED
                raise
            except Exception as exc:
                self.state = ExecutionState.FAILED
                logger.warning("Node %s (%s) failed: %s", node_id, node.algorithm or node.kind.value, exc)
                raise ExecutionError(node_id, exc) from exc
            logger.debug(
                "Node %s (%s) finished in %.1f ms",
                node_id,
                node.algorithm or node.kind.value,
                (time.perf_counter() - tick) * 1000,
            )

        output = graph.nodes_of_kind(NodeKind.OUTPUT)[0]
        buf = self._cache.get(output.id)
        if buf is None:
            self.state = ExecutionState.FAILED
            raise InternalConsistencyError(f"Output node {output.id!r} produced no result")
        self.state = ExecutionState.COMPLETE
        logger.debug("Graph executed in %.1f ms", (time.perf_counter() - started) * 1000)
        return buf

    def _upstream(self, node: PipelineNode) -> ImageBuffer:
        source_id = self.graph.predecessor(node.id)
        buf = self._cache.get(source_id) if source_id is not None else None
        if buf is None:
            raise InternalConsistencyError(f"Node {node.id!r} ran before its input {source_id!r}")
        return buf

    def _run_node(self, node: PipelineNode, source: ImageBuffer) -> ImageBuffer:
        if node.kind is NodeKind.INPUT:
            return source
        upstream = self._upstream(node)
        if node.kind is NodeKind.OUTPUT:
            return upstream
        adapter = self.adapters.get(node.algorithm)
        if adapter is not None:
            return call_adapter(adapter, upstream, region_from_params(node.params, upstream))
        return self.registry.get(node.algorithm)(upstream, node.params)

    def node_output(self, node_id: str) -> Optional[ImageBuffer]:
        """The buffer node ``node_id`` produced during the last run, if any."""
        return self._cache.get(node_id)
