"""
pipegraph compiler — Pipeline JSON Schema + Validator
=====================================================
Defines the canonical serialisation format for pipelines and a lightweight
structural validator that runs without any third-party JSON Schema library.

Canonical JSON format
---------------------

    {
      "name":        "Document Q&A Pipeline",      // (str, optional)
      "description": "...",                        // (str, optional)
      "nodes": [
        {
          "id":       "text-chunker-1",            // unique (str, required)
          "category": "processing",                // input | processing | retrieval |
                                                   // llm | logic | output (required)
          "kind":     "text-chunker",              // NodeKind value (optional)
          "label":    "Text Chunker",              // display name (optional → id)
          "description": "...",                    // (optional)
          "config":   { "chunkSize": 512 },        // (object, optional)
          "inputs":   [ {"id": "text", "label": "Text", "dataType": "text",
                         "required": true, "description": ""} ],
          "outputs":  [ ... ]
        }
      ],
      "edges": [
        {
          "id":           "edge-2",                // (str, required)
          "sourceNodeId": "pdf-extractor-1",
          "sourcePortId": "text",
          "targetNodeId": "text-chunker-1",
          "targetPortId": "text",
          "dataType":     "text"                   // cached type (optional)
        }
      ]
    }

Editor format
-------------
The visual editor saves React-Flow documents.  ``normalise`` folds them into
the canonical shape before validation:

    node:  {"id", "type": <category>, "position", "data": {label, config, inputs, outputs, ...}}
    edge:  {"id", "source", "target", "sourceHandle" | "sourcePort",
            "targetHandle" | "targetPort", "dataType"}

Only the document's *shape* is checked here.  Whether edges point at real
nodes and ports is the compiler validator's job, so those problems come back
as diagnostics rather than as SchemaError.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from pipegraph.core.Types import DataType, NodeCategory, NodeKind


class SchemaError(ValueError):
    """Raised when pipeline JSON fails structural validation."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SchemaError(message)


def _require_keys(obj: Dict, keys: List[str], context: str) -> None:
    for key in keys:
        _require(key in obj, f"{context}: missing required field '{key}'")


def _require_enum(parse, value: Any, context: str) -> None:
    try:
        parse(value)
    except ValueError as exc:
        raise SchemaError(f"{context}: {exc}") from None


# ── Editor format → canonical ─────────────────────────────────────────────────

def _first(obj: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if obj.get(key) is not None:
            return obj[key]
    return None


def _normalise_node(node: Any, ctx: str) -> Dict[str, Any]:
    _require(isinstance(node, dict), f"{ctx}: each node must be a JSON object")
    data = node.get("data") or {}
    _require(isinstance(data, dict), f"{ctx}.data must be an object")

    # Fields inside "data" win; React Flow only guarantees id/type at the top.
    merged = {**{k: v for k, v in node.items() if k != "data"}, **data}
    out: Dict[str, Any] = {
        "id": node.get("id", data.get("id")),
        "category": _first(merged, "category", "type"),
        "label": merged.get("label", node.get("id")),
        "config": merged.get("config", {}),
        "inputs": merged.get("inputs", []),
        "outputs": merged.get("outputs", []),
    }
    if merged.get("kind") is not None:
        out["kind"] = merged["kind"]
    if merged.get("description"):
        out["description"] = merged["description"]
    return {k: v for k, v in out.items() if v is not None}


def _normalise_edge(edge: Any, ctx: str) -> Dict[str, Any]:
    _require(isinstance(edge, dict), f"{ctx}: each edge must be a JSON object")
    data = edge.get("data") or {}
    _require(isinstance(data, dict), f"{ctx}.data must be an object")
    merged = {**edge, **data}
    out = {
        "id": merged.get("id"),
        "sourceNodeId": _first(merged, "sourceNodeId", "source"),
        "sourcePortId": _first(merged, "sourcePortId", "sourcePort", "sourceHandle"),
        "targetNodeId": _first(merged, "targetNodeId", "target"),
        "targetPortId": _first(merged, "targetPortId", "targetPort", "targetHandle"),
    }
    if merged.get("dataType") is not None:
        out["dataType"] = merged["dataType"]
    return {k: v for k, v in out.items() if v is not None}


def normalise(data: Any) -> Dict[str, Any]:
    """Return ``data`` in canonical form.  Accepts canonical or editor documents."""
    _require(isinstance(data, dict), "pipeline JSON must be a JSON object at the top level")
    _require_keys(data, ["nodes"], "pipeline root")
    _require(isinstance(data["nodes"], list), "nodes must be a list")
    edges = data.get("edges", [])
    _require(isinstance(edges, list), "edges must be a list")

    doc: Dict[str, Any] = {
        "name": data.get("name", "Generated Pipeline"),
        "nodes": [_normalise_node(n, f"nodes[{i}]") for i, n in enumerate(data["nodes"])],
        "edges": [_normalise_edge(e, f"edges[{i}]") for i, e in enumerate(edges)],
    }
    if data.get("description"):
        doc["description"] = data["description"]
    return doc


# ── Public validator ─────────────────────────────────────────────────────────

def _validate_ports(ports: Any, ctx: str) -> None:
    _require(isinstance(ports, list), f"{ctx} must be a list")
    seen = set()
    for i, port in enumerate(ports):
        pctx = f"{ctx}[{i}]"
        _require(isinstance(port, dict), f"{pctx}: each port must be a JSON object")
        _require_keys(port, ["id", "dataType"], pctx)
        _require(isinstance(port["id"], str), f"{pctx}.id must be a string")
        _require(port["id"] not in seen, f"{pctx}: duplicate port id '{port['id']}'")
        seen.add(port["id"])
        _require_enum(DataType.parse, port["dataType"], f"{pctx}.dataType")


def validate(data: Dict[str, Any]) -> None:
    """
    Validate a canonical pipeline dict.

    Raises:
        SchemaError: On any structural violation.
    """
    _require(isinstance(data, dict), "pipeline JSON must be a JSON object at the top level")
    _require_keys(data, ["nodes", "edges"], "pipeline root")
    _require(isinstance(data.get("name", ""), str), "name must be a string")
    _require(isinstance(data["nodes"], list), "nodes must be a list")
    _require(isinstance(data["edges"], list), "edges must be a list")

    node_ids: set = set()
    for i, node in enumerate(data["nodes"]):
        ctx = f"nodes[{i}]"
        _require(isinstance(node, dict), f"{ctx}: each node must be a JSON object")
        _require_keys(node, ["id", "category"], ctx)
        _require(isinstance(node["id"], str), f"{ctx}.id must be a string")
        _require(node["id"] not in node_ids, f"{ctx}: duplicate node id '{node['id']}'")
        node_ids.add(node["id"])

        _require_enum(NodeCategory.parse, node["category"], f"{ctx}.category")
        if node.get("kind") is not None:
            _require_enum(NodeKind.parse, node["kind"], f"{ctx}.kind")
        _require(isinstance(node.get("label", ""), str), f"{ctx}.label must be a string")
        _require(isinstance(node.get("config", {}), dict), f"{ctx}.config must be an object")
        _validate_ports(node.get("inputs", []), f"{ctx}.inputs")
        _validate_ports(node.get("outputs", []), f"{ctx}.outputs")

    for i, edge in enumerate(data["edges"]):
        ctx = f"edges[{i}]"
        _require(isinstance(edge, dict), f"{ctx}: each edge must be a JSON object")
        fields = ["id", "sourceNodeId", "sourcePortId", "targetNodeId", "targetPortId"]
        _require_keys(edge, fields, ctx)
        for field in fields:
            _require(isinstance(edge[field], str), f"{ctx}.{field} must be a string")
        if "dataType" in edge:
            _require_enum(DataType.parse, edge["dataType"], f"{ctx}.dataType")


def validate_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load, normalise and validate a pipeline JSON file.

    Returns:
        The canonical dict on success.

    Raises:
        FileNotFoundError: If the file does not exist.
        SchemaError: If the file is not JSON or the structure is invalid.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise SchemaError(f"{path}: invalid JSON ({exc})") from exc
    doc = normalise(data)
    validate(doc)
    return doc


__all__ = ["SchemaError", "normalise", "validate", "validate_file"]
