"""
pipegraph compiler — JSON Deserialiser
======================================
Converts a serialised pipeline (JSON text, file or dict) into a Pipeline
value, and back.

    graph.json  →  [schema.normalise + schema.validate]  →  canonical dict
    dict        →  [pipeline_from_dict]                  →  Pipeline
    Pipeline    →  [pipeline_to_dict]                    →  canonical dict

See pipegraph/compiler/schema.py for both accepted document shapes.

Edge data types
---------------
An edge's ``dataType`` is a cache.  When the document omits it, the type is
taken from the source port if that resolves, else TEXT.  Either way the
validator re-derives it from the live source port.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

from pipegraph.core.GraphPrimitives import Edge, Node, Pipeline, Port
from pipegraph.core.Types import DataType, NodeCategory, NodeKind

from .schema import SchemaError, normalise, validate, validate_file


# ── Core parsing ──────────────────────────────────────────────────────────────

def _parse_port(spec: Dict[str, Any]) -> Port:
    return Port(
        id=spec["id"],
        label=spec.get("label", spec["id"]),
        data_type=DataType.parse(spec["dataType"]),
        required=bool(spec.get("required", True)),
        description=spec.get("description", ""),
    )


def _parse_node(spec: Dict[str, Any]) -> Node:
    return Node(
        id=spec["id"],
        category=NodeCategory.parse(spec["category"]),
        label=spec.get("label") or spec["id"],
        config=spec.get("config", {}),
        inputs=[_parse_port(p) for p in spec.get("inputs", [])],
        outputs=[_parse_port(p) for p in spec.get("outputs", [])],
        kind=NodeKind.parse(spec.get("kind")),
        description=spec.get("description", ""),
    )


def _parse_edge(spec: Dict[str, Any], node_map: Dict[str, Node]) -> Edge:
    if "dataType" in spec:
        data_type = DataType.parse(spec["dataType"])
    else:
        source = node_map.get(spec["sourceNodeId"])
        port = source.get_output(spec["sourcePortId"]) if source else None
        data_type = port.data_type if port else DataType.TEXT
    return Edge(
        id=spec["id"],
        source_node_id=spec["sourceNodeId"],
        source_port_id=spec["sourcePortId"],
        target_node_id=spec["targetNodeId"],
        target_port_id=spec["targetPortId"],
        data_type=data_type,
    )


# ── Public entry points ───────────────────────────────────────────────────────

def pipeline_from_dict(data: Dict[str, Any]) -> Pipeline:
    """
    Build a Pipeline from a parsed JSON document in either accepted shape.

    Raises:
        SchemaError: If the document is structurally invalid.
    """
    doc = normalise(data)
    validate(doc)
    return _build(doc)


def _build(doc: Dict[str, Any]) -> Pipeline:
    nodes = [_parse_node(n) for n in doc["nodes"]]
    node_map = {n.id: n for n in nodes}
    return Pipeline(
        nodes=nodes,
        edges=[_parse_edge(e, node_map) for e in doc["edges"]],
        name=doc.get("name", "Generated Pipeline"),
        description=doc.get("description", ""),
    )


def pipeline_from_json(text: str) -> Pipeline:
    """Build a Pipeline from JSON text.  Raises SchemaError on bad JSON or structure."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"invalid JSON ({exc})") from exc
    return pipeline_from_dict(data)


def pipeline_from_file(path: Union[str, Path]) -> Pipeline:
    """
    Load a pipeline JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        SchemaError: If the file is not JSON or the structure is invalid.
    """
    return _build(validate_file(path))


def _port_to_dict(port: Port) -> Dict[str, Any]:
    return {
        "id": port.id,
        "label": port.label,
        "dataType": port.data_type.value,
        "required": port.required,
        "description": port.description,
    }


def pipeline_to_dict(pipeline: Pipeline) -> Dict[str, Any]:
    """Serialise ``pipeline`` to the canonical JSON shape."""
    nodes = []
    for node in pipeline.nodes:
        spec: Dict[str, Any] = {
            "id": node.id,
            "category": node.category.value,
            "label": node.label,
            "config": dict(node.config),
            "inputs": [_port_to_dict(p) for p in node.inputs],
            "outputs": [_port_to_dict(p) for p in node.outputs],
        }
        if node.kind is not None:
            spec["kind"] = node.kind.value
        if node.description:
            spec["description"] = node.description
        nodes.append(spec)

    doc: Dict[str, Any] = {
        "name": pipeline.name,
        "nodes": nodes,
        "edges": [
            {
                "id": e.id,
                "sourceNodeId": e.source_node_id,
                "sourcePortId": e.source_port_id,
                "targetNodeId": e.target_node_id,
                "targetPortId": e.target_port_id,
                "dataType": e.data_type.value,
            }
            for e in pipeline.edges
        ],
    }
    if pipeline.description:
        doc["description"] = pipeline.description
    return doc


__all__ = [
    "pipeline_from_dict",
    "pipeline_from_file",
    "pipeline_from_json",
    "pipeline_to_dict",
]
