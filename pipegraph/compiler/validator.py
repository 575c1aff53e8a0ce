"""
pipegraph compiler — Validator
==============================
Structural and type checks over a Pipeline.

``validate`` never raises and never stops at the first problem: every check
runs, so one call surfaces everything the user has to fix.  An empty list
means the pipeline may be scheduled.

Cycle detection lives in the scheduler, which finds cycles as a by-product
of the topological sort.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from pipegraph.core.Compatibility import DEFAULT_MATRIX, CompatibilityMatrix
from pipegraph.core.GraphPrimitives import Edge, Node, Pipeline
from pipegraph.core.Types import NodeCategory

from .diagnostics import Diagnostic

logger = logging.getLogger(__name__)


def _check_categories(pipeline: Pipeline) -> List[Diagnostic]:
    found = []
    if not pipeline.nodes_of(NodeCategory.INPUT):
        found.append(Diagnostic.structural("missing input node"))
    if not pipeline.nodes_of(NodeCategory.OUTPUT):
        found.append(Diagnostic.structural("missing output node"))
    return found


def _check_edge(edge: Edge, nodes: Dict[str, Node], matrix: CompatibilityMatrix) -> Optional[Diagnostic]:
    source = nodes.get(edge.source_node_id)
    target = nodes.get(edge.target_node_id)

    problems = []
    if source is None:
        problems.append(f"source node '{edge.source_node_id}' does not exist")
    elif source.get_output(edge.source_port_id) is None:
        problems.append(
            f"source node '{edge.source_node_id}' has no output port '{edge.source_port_id}'")
    if target is None:
        problems.append(f"target node '{edge.target_node_id}' does not exist")
    elif target.get_input(edge.target_port_id) is None:
        problems.append(
            f"target node '{edge.target_node_id}' has no input port '{edge.target_port_id}'")

    if problems:
        return Diagnostic.reference(
            f"Invalid connection '{edge.id}' "
            f"({edge.source_node_id}.{edge.source_port_id} -> "
            f"{edge.target_node_id}.{edge.target_port_id}): " + "; ".join(problems),
            edge_id=edge.id,
        )

    # The edge's own data_type is only a cache; the live source port is authoritative.
    source_type = source.get_output(edge.source_port_id).data_type
    target_type = target.get_input(edge.target_port_id).data_type
    if not matrix.is_compatible(source_type, target_type):
        return Diagnostic.type_mismatch(
            f"Incompatible data types: {source_type.value} -> {target_type.value} "
            f"({source.label} -> {target.label})",
            edge_id=edge.id,
        )
    return None


def validate(pipeline: Pipeline, matrix: Optional[CompatibilityMatrix] = None) -> List[Diagnostic]:
    """
    Run every structural and type check against ``pipeline``.

    Args:
        pipeline: The pipeline to check.  Never modified.
        matrix:   Compatibility relation to use.  Defaults to DEFAULT_MATRIX.

    Returns:
        All diagnostics found, in check order.  Empty when compilable.
    """
    matrix = matrix or DEFAULT_MATRIX
    diagnostics = _check_categories(pipeline)
    nodes = pipeline.node_map()

    for edge in pipeline.edges:
        diagnostic = _check_edge(edge, nodes, matrix)
        if diagnostic is not None:
            diagnostics.append(diagnostic)

    logger.debug(f"Validated '{pipeline.name}': {len(pipeline.nodes)} nodes, "
                 f"{len(pipeline.edges)} edges, {len(diagnostics)} diagnostics")
    return diagnostics


__all__ = ["validate"]
