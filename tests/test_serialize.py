import json

import pytest

from dither_studio.errors import GraphFormatError
from dither_studio.pipeline.executor import GraphExecutor
from dither_studio.pipeline.graph import NodeKind, linear_graph
from dither_studio.pipeline.serialize import (
    dumps,
    graph_from_dict,
    graph_to_dict,
    load_graph,
    loads,
    save_graph,
)


@pytest.fixture
def graph():
    graph = linear_graph(
        ("jarvisJudiceNinke", {"palette": "gameBoyOriginal", "serpentine": True}),
        ("grain", {"amount": 0.1, "seed": 9}),
    )
    graph.node("effect-1").label = "JJN"
    return graph


def test_graph_to_dict_shape(graph):
    data = graph_to_dict(graph)

    assert data["version"] == 1
    assert data["nodes"][0] == {"id": "input", "kind": "input"}
    assert data["nodes"][1] == {
        "id": "effect-1",
        "kind": "effect",
        "algorithm": "jarvisJudiceNinke",
        "params": {"palette": "gameBoyOriginal", "serpentine": True},
        "label": "JJN",
    }
    assert data["edges"][0] == {"source": "input", "target": "effect-1"}


def test_round_trip_is_lossless(graph):
    assert graph_from_dict(graph_to_dict(graph)) == graph
    assert loads(dumps(graph)) == graph


def test_reloaded_graph_renders_identically(graph, colourful):
    reloaded = loads(dumps(graph))

    assert GraphExecutor(reloaded).execute(colourful).pixels == GraphExecutor(graph).execute(colourful).pixels


def test_save_and_load_graph(tmp_path, graph):
    path = tmp_path / "pipeline.json"

    save_graph(graph, path)

    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1
    assert load_graph(path) == graph


def test_loads_editor_documents():
    document = {
        "nodes": [
            {"id": "input-1", "type": "input", "position": {"x": 50, "y": 200}, "data": {}},
            {
                "id": "effect-1",
                "type": "effect",
                "position": {"x": 300, "y": 120},
                "data": {"algorithm": "bloom", "params": {"bloom": 40}, "label": "Glow"},
            },
            {"id": "output-1", "type": "output", "data": {"hasOutput": False}},
        ],
        "edges": [
            {"id": "e1", "source": "input-1", "target": "effect-1"},
            {"id": "e2", "source": "effect-1", "target": "output-1"},
        ],
    }

    graph = graph_from_dict(document)

    effect = graph.node("effect-1")
    assert effect.kind is NodeKind.EFFECT
    assert effect.algorithm == "bloom"
    assert effect.params == {"bloom": 40}
    assert effect.label == "Glow"
    assert GraphExecutor(graph).validate().valid


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"edges": []},
        {"version": 2, "nodes": []},
        {"nodes": [{"id": "a", "kind": "filter"}]},
        {"nodes": [{"kind": "input"}]},
        {"nodes": ["input"]},
        {"nodes": [{"id": "a", "kind": "effect", "params": [1, 2]}]},
        {"nodes": [{"id": "a", "kind": "effect", "algorithm": 3}]},
        {"nodes": [], "edges": [{"source": "a"}]},
        {"nodes": [], "edges": "a->b"},
    ],
)
def test_malformed_documents_raise_graph_format_errors(document):
    with pytest.raises(GraphFormatError):
        graph_from_dict(document)


def test_loads_rejects_invalid_json():
    with pytest.raises(GraphFormatError, match="not valid JSON"):
        loads("{nodes: ")
