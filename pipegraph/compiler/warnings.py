"""
pipegraph compiler — Warnings
=============================
Non-fatal observations about a pipeline.  Warnings never block compilation
and are reported alongside both successful and rejected results.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Tuple

from pipegraph.core.GraphPrimitives import Edge, Pipeline
from pipegraph.core.Types import NodeCategory

from .config import CompilerConfig

logger = logging.getLogger(__name__)


def _empty_configs(pipeline: Pipeline) -> List[str]:
    return [
        f"Node '{node.label}' has no configuration - using defaults"
        for node in pipeline.nodes
        if not node.config
    ]


def _complexity(pipeline: Pipeline, threshold: int) -> List[str]:
    count = len(pipeline.nodes_of(NodeCategory.PROCESSING))
    if count > threshold:
        return ["Pipeline has many processing nodes - consider optimizing for performance"]
    return []


def _stale_edge_types(pipeline: Pipeline) -> List[str]:
    found = []
    nodes = pipeline.node_map()
    for edge in pipeline.edges:
        source = nodes.get(edge.source_node_id)
        port = source.get_output(edge.source_port_id) if source else None
        if port is not None and port.data_type is not edge.data_type:
            found.append(
                f"Connection '{edge.id}' was drawn as {edge.data_type.value} but "
                f"{source.label}.{port.id} now produces {port.data_type.value} - "
                f"using {port.data_type.value}"
            )
    return found


def _fan_in(pipeline: Pipeline) -> List[str]:
    feeding: Dict[Tuple[str, str], List[Edge]] = defaultdict(list)
    for edge in pipeline.edges:
        feeding[(edge.target_node_id, edge.target_port_id)].append(edge)

    nodes = pipeline.node_map()
    found = []
    for (node_id, port_id), edges in feeding.items():
        if len(edges) > 1:
            label = nodes[node_id].label if node_id in nodes else node_id
            found.append(
                f"Input '{port_id}' of node '{label}' has {len(edges)} connections - "
                f"only '{edges[0].id}' is used"
            )
    return found


def _duplicate_output_labels(pipeline: Pipeline) -> List[str]:
    counts = Counter(n.label for n in pipeline.nodes_of(NodeCategory.OUTPUT))
    return [
        f"Output label '{label}' is used by {count} output nodes - only the last result is kept"
        for label, count in counts.items()
        if count > 1
    ]


def collect_warnings(pipeline: Pipeline, config: Optional[CompilerConfig] = None) -> List[str]:
    """All non-fatal warnings for ``pipeline``, in a stable order."""
    config = config or CompilerConfig()
    warnings = (
        _empty_configs(pipeline)
        + _complexity(pipeline, config.complexity_threshold)
        + _stale_edge_types(pipeline)
        + _fan_in(pipeline)
        + _duplicate_output_labels(pipeline)
    )
    for message in warnings:
        logger.warning(message)
    return warnings


__all__ = ["collect_warnings"]
