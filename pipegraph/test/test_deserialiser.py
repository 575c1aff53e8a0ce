import json

import pytest

from pipegraph.compiler import compile_pipeline, strip_timestamp
from pipegraph.compiler.deserialiser import (
    pipeline_from_dict,
    pipeline_from_file,
    pipeline_from_json,
    pipeline_to_dict,
)
from pipegraph.compiler.schema import SchemaError, normalise
from pipegraph.core.Types import DataType, NodeCategory, NodeKind
from pipegraph.library.pipelines import DOCUMENT_QA, QUICK_ANSWER


def text_port(port_id):
    return {"id": port_id, "label": port_id.title(), "dataType": "text"}


CANONICAL = {
    "name": "Echo",
    "nodes": [
        {"id": "in", "category": "input", "label": "Question", "outputs": [text_port("text")]},
        {"id": "out", "category": "output", "label": "Answer", "inputs": [text_port("text")]},
    ],
    "edges": [
        {"id": "e1", "sourceNodeId": "in", "sourcePortId": "text",
         "targetNodeId": "out", "targetPortId": "text", "dataType": "text"},
    ],
}

EDITOR = {
    "nodes": [
        {"id": "in", "type": "input", "position": {"x": 0, "y": 0},
         "data": {"label": "Question", "kind": "text-input", "config": {"maxLength": 10},
                  "outputs": [text_port("text")]}},
        {"id": "out", "type": "output", "position": {"x": 200, "y": 0},
         "data": {"label": "Answer", "inputs": [text_port("text")]}},
    ],
    "edges": [
        {"id": "e1", "source": "in", "sourceHandle": "text", "target": "out", "targetHandle": "text"},
    ],
}


class TestCanonicalShape:

    def test_build(self):
        p = pipeline_from_dict(CANONICAL)
        assert p.name == "Echo"
        assert [n.id for n in p.nodes] == ["in", "out"]
        assert p.get_node("in").category is NodeCategory.INPUT
        assert p.edges[0].data_type is DataType.TEXT

    def test_from_json_text(self):
        assert pipeline_from_json(json.dumps(CANONICAL)).get_node("out").label == "Answer"

    def test_from_file(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(CANONICAL), encoding="utf-8")
        assert len(pipeline_from_file(path).edges) == 1

    def test_edge_type_taken_from_source_port_when_omitted(self):
        doc = json.loads(json.dumps(CANONICAL))
        doc["nodes"][0]["outputs"][0]["dataType"] = "json"
        del doc["edges"][0]["dataType"]
        assert pipeline_from_dict(doc).edges[0].data_type is DataType.JSON

    def test_edge_type_defaults_to_text_for_unknown_source(self):
        doc = json.loads(json.dumps(CANONICAL))
        doc["edges"][0]["sourceNodeId"] = "ghost"
        del doc["edges"][0]["dataType"]
        assert pipeline_from_dict(doc).edges[0].data_type is DataType.TEXT


class TestEditorShape:

    def test_normalise(self):
        doc = normalise(EDITOR)
        assert doc["name"] == "Generated Pipeline"
        assert doc["nodes"][0]["category"] == "input"
        assert doc["nodes"][0]["kind"] == "text-input"
        assert doc["edges"][0] == {
            "id": "e1", "sourceNodeId": "in", "sourcePortId": "text",
            "targetNodeId": "out", "targetPortId": "text",
        }

    def test_build(self):
        p = pipeline_from_dict(EDITOR)
        node = p.get_node("in")
        assert node.kind is NodeKind.TEXT_INPUT
        assert node.config["maxLength"] == 10
        assert p.edges[0].target_port_id == "text"

    def test_editor_and_canonical_compile_the_same(self):
        a = compile_pipeline(pipeline_from_dict(CANONICAL), timestamp="t")
        b = compile_pipeline(pipeline_from_dict({**EDITOR, "name": "Echo"}), timestamp="t")
        assert a.success and b.success
        assert a.order == b.order


class TestSchemaErrors:

    @pytest.mark.parametrize("doc,fragment", [
        ([], "top level"),
        ({"edges": []}, "missing required field 'nodes'"),
        ({"nodes": {}}, "nodes must be a list"),
        ({"nodes": [{"id": "a"}]}, "missing required field 'category'"),
        ({"nodes": [{"id": "a", "category": "widget"}]}, "Unknown node category"),
        ({"nodes": [{"id": "a", "category": "logic", "kind": "blender"}]}, "Unknown node kind"),
        ({"nodes": [{"id": "a", "category": "logic"}, {"id": "a", "category": "logic"}]},
         "duplicate node id 'a'"),
        ({"nodes": [{"id": "a", "category": "logic",
                     "inputs": [text_port("x"), text_port("x")]}]}, "duplicate port id 'x'"),
        ({"nodes": [{"id": "a", "category": "logic",
                     "inputs": [{"id": "x", "dataType": "image"}]}]}, "Unknown data type"),
        ({"nodes": [], "edges": [{"id": "e", "source": "a"}]}, "missing required field"),
    ])
    def test_rejected(self, doc, fragment):
        with pytest.raises(SchemaError, match=fragment):
            pipeline_from_dict(doc)

    def test_bad_json_text(self):
        with pytest.raises(SchemaError, match="invalid JSON"):
            pipeline_from_json("{nodes: ")

    def test_bad_json_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("not json", encoding="utf-8")
        with pytest.raises(SchemaError, match="invalid JSON"):
            pipeline_from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            pipeline_from_file(tmp_path / "absent.json")

    def test_dangling_edges_are_not_schema_errors(self):
        doc = json.loads(json.dumps(CANONICAL))
        doc["edges"][0]["targetNodeId"] = "nowhere"
        result = compile_pipeline(pipeline_from_dict(doc))
        assert not result.success
        assert result.errors[0].startswith("ReferenceError")


class TestRoundTrip:

    @pytest.mark.parametrize("pipeline", [DOCUMENT_QA, QUICK_ANSWER])
    def test_round_trip_compiles_identically(self, pipeline):
        restored = pipeline_from_json(json.dumps(pipeline_to_dict(pipeline)))
        assert restored.name == pipeline.name
        assert [n.kind for n in restored.nodes] == [n.kind for n in pipeline.nodes]

        original = compile_pipeline(pipeline)
        again = compile_pipeline(restored)
        assert strip_timestamp(original.source_text) == strip_timestamp(again.source_text)
        assert original.dependency_manifest == again.dependency_manifest
