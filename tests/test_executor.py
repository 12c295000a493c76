import pytest

from dither_studio.adapters import Region
from dither_studio.buffer import ImageBuffer
from dither_studio.errors import ExecutionError, InternalConsistencyError, ParameterError, ValidationError
from dither_studio.pipeline.executor import ExecutionState, GraphExecutor
from dither_studio.pipeline.graph import NodeKind, PipelineGraph, chain, linear_graph
from dither_studio.processing.dither import FLOYD_STEINBERG, error_diffuse
from dither_studio.processing.registry import DEFAULT_REGISTRY


@pytest.fixture
def recorder():
    calls = []
    registry = DEFAULT_REGISTRY.copy()

    @registry.register("record")
    def record(buf, params):
        calls.append(params.get("tag"))
        return buf

    @registry.register("explode")
    def explode(buf, params):
        raise RuntimeError("boom")

    return registry, calls


def _graph(nodes, edges):
    graph = PipelineGraph()
    for node_id, kind, algorithm in nodes:
        graph.add_node(node_id, kind, algorithm, {"tag": node_id})
    for source, target in edges:
        graph.connect(source, target)
    return graph


def test_linear_chain_runs_in_order(recorder, gradient):
    registry, calls = recorder
    graph = linear_graph(("record", {"tag": "first"}), ("record", {"tag": "second"}))
    executor = GraphExecutor(graph, registry=registry)

    assert executor.state is ExecutionState.UNVALIDATED
    out = executor.execute(gradient)

    assert out == gradient
    assert calls == ["first", "second"]
    order = executor.topological_order()
    assert order.index("effect-1") < order.index("effect-2")
    assert executor.state is ExecutionState.COMPLETE


def test_topological_order_ignores_declaration_order():
    graph = _graph(
        [("out", "output", None), ("b", "effect", "none"), ("a", "effect", "none"), ("in", "input", None)],
        [("in", "a"), ("a", "b"), ("b", "out")],
    )

    assert GraphExecutor(graph).topological_order() == ["in", "a", "b", "out"]


def test_execution_matches_the_transform(gradient):
    out = GraphExecutor(linear_graph("floydSteinberg")).execute(gradient)

    assert out == error_diffuse(gradient, FLOYD_STEINBERG)


def test_repeated_runs_are_byte_identical(colourful):
    graph = linear_graph("contrast", ("randomOrdered", {"seed": 11}), "bloom", ("dataMosh", {"time": 2.0}))

    first = GraphExecutor(graph).execute(colourful)
    executor = GraphExecutor(graph)
    second = executor.execute(colourful)
    third = executor.execute(colourful)

    assert first.pixels == second.pixels == third.pixels


def test_cycle_is_rejected_and_never_executed(recorder, gradient):
    registry, calls = recorder
    graph = _graph(
        [("in", "input", None), ("a", "effect", "record"), ("b", "effect", "record"), ("out", "output", None)],
        [("in", "a"), ("a", "b"), ("b", "a"), ("b", "out")],
    )
    executor = GraphExecutor(graph, registry=registry)

    result = executor.validate()

    assert not result
    assert any("cycle" in error for error in result.errors)
    assert executor.has_cycle()
    with pytest.raises(ValidationError) as excinfo:
        executor.execute(gradient)
    assert any("cycle" in error for error in excinfo.value.errors)
    assert calls == []


def test_diamond_into_one_output_is_rejected():
    graph = _graph(
        [("in", "input", None), ("e1", "effect", "none"), ("e2", "effect", "none"), ("out", "output", None)],
        [("in", "e1"), ("in", "e2"), ("e1", "out"), ("e2", "out")],
    )

    result = GraphExecutor(graph).validate()

    assert not result.valid
    assert any("incoming connections" in error for error in result.errors)


def test_validation_collects_every_problem():
    graph = PipelineGraph()
    graph.add_node("fx", NodeKind.EFFECT)
    graph.add_node("fx", NodeKind.EFFECT, "none")
    graph.connect("fx", "nowhere")

    errors = GraphExecutor(graph).validate().errors

    assert "Graph must have at least one Input node" in errors
    assert "Graph must have at least one Output node" in errors
    assert any("Duplicate node id" in error for error in errors)
    assert any("unknown node 'nowhere'" in error for error in errors)
    assert any("not properly connected" in error for error in errors)
    assert any("no algorithm" in error for error in errors)


def test_output_without_input_and_input_with_input_are_rejected():
    graph = _graph(
        [("in", "input", None), ("in2", "input", None), ("out", "output", None), ("out2", "output", None)],
        [("in", "in2"), ("in", "out")],
    )

    errors = GraphExecutor(graph).validate().errors

    assert any("Input node 'in2'" in error for error in errors)
    assert any("Output node 'out2'" in error for error in errors)


def test_fan_out_computes_shared_node_once(recorder, gradient):
    registry, calls = recorder
    graph = _graph(
        [("in", "input", None), ("shared", "effect", "record"), ("left", "output", None), ("right", "output", None)],
        [("in", "shared"), ("shared", "left"), ("shared", "right")],
    )
    executor = GraphExecutor(graph, registry=registry)

    executor.execute(gradient)

    assert calls == ["shared"]
    assert executor.node_output("left") == executor.node_output("right") == gradient


def test_unknown_algorithm_fails_the_node(gradient):
    executor = GraphExecutor(linear_graph("none", "sepia"))

    with pytest.raises(ExecutionError) as excinfo:
        executor.execute(gradient)

    assert excinfo.value.node_id == "effect-2"
    assert isinstance(excinfo.value.cause, ParameterError)
    assert executor.state is ExecutionState.FAILED


def test_transform_failure_aborts_the_run(recorder, gradient):
    registry, calls = recorder
    graph = linear_graph("explode", ("record", {"tag": "after"}))
    executor = GraphExecutor(graph, registry=registry)

    with pytest.raises(ExecutionError, match="boom"):
        executor.execute(gradient)

    assert calls == []
    assert executor.state is ExecutionState.FAILED


def test_node_output_exposes_intermediates(gradient):
    executor = GraphExecutor(linear_graph("none", "atkinson"))

    assert executor.node_output("effect-1") is None
    executor.execute(gradient)

    assert executor.node_output("effect-1") == gradient
    assert executor.node_output("output") == executor.node_output("effect-2")


def test_adapter_nodes_receive_clipped_regions(make_gray):
    seen = []

    def overlay(buf, region):
        seen.append(region)
        return ImageBuffer.blank(buf.width, buf.height, (255, 0, 0))

    graph = linear_graph(("textOverlay", {"region": {"x": -2, "y": 1, "width": 10, "height": 10}}))
    out = GraphExecutor(graph, adapters={"textOverlay": overlay}).execute(make_gray(4, 4))

    assert seen == [Region(0, 1, 4, 3)]
    assert out.pixel(0, 0) == (255, 0, 0, 255)


def test_adapter_defaults_to_the_full_frame(make_gray):
    seen = []

    def mask(buf, region):
        seen.append(region)
        return buf

    GraphExecutor(linear_graph("backgroundMask"), adapters={"backgroundMask": mask}).execute(make_gray(3, 2))

    assert seen == [Region(0, 0, 3, 2)]


def test_adapter_returning_garbage_fails_the_node(make_gray):
    executor = GraphExecutor(linear_graph("textOverlay"), adapters={"textOverlay": lambda buf, region: None})

    with pytest.raises(ExecutionError) as excinfo:
        executor.execute(make_gray(2, 2))

    assert isinstance(excinfo.value.cause, TypeError)


def test_missing_output_result_is_an_internal_error(gradient):
    class DroppingExecutor(GraphExecutor):
        def _run_node(self, node, source):
            if node.kind is NodeKind.OUTPUT:
                return None
            return super()._run_node(node, source)

    executor = DroppingExecutor(linear_graph("none"))

    with pytest.raises(InternalConsistencyError) as excinfo:
        executor.execute(gradient)

    assert isinstance(excinfo.value, AssertionError)
    assert executor.state is ExecutionState.FAILED


def test_chain_helper_builds_valid_graphs(gradient):
    graph = PipelineGraph()
    graph.add_node("in", "input")
    graph.add_node("fx", "effect", "threshold", {"threshold": 0})
    graph.add_node("out", "output")
    chain(graph, ["in", "fx", "out"])

    out = GraphExecutor(graph).execute(gradient)

    assert set(out.pixels[0::4]) == {255}


def test_long_chains_do_not_exhaust_the_stack(gradient):
    executor = GraphExecutor(linear_graph(*["none"] * 1500))

    assert executor.validate().valid
    assert executor.execute(gradient) == gradient
    assert executor.topological_order()[-1] == "output"


def test_long_cycle_is_reported_as_a_closed_path():
    ids = [f"n{i}" for i in range(1500)]
    graph = _graph(
        [("in", "input", None)] + [(node_id, "effect", "none") for node_id in ids] + [("out", "output", None)],
        [("in", ids[0])] + list(zip(ids, ids[1:])) + [(ids[-1], ids[0]), (ids[-1], "out")],
    )

    cycle = GraphExecutor(graph).find_cycle()

    assert cycle[0] == cycle[-1] == ids[0]
    assert len(cycle) == len(ids) + 1
