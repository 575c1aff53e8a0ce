"""
pipegraph compiler — Execution Scheduler
========================================
Maps a Pipeline → ordered list of node ids: a dependency-consistent execution
order that the emitter walks to produce source code.

Algorithm
---------
Depth-first topological sort over *supplier* edges, driven by an explicit
stack of ``(node, remaining suppliers)`` frames so chain length is not bounded
by the interpreter's recursion limit:

    push n ; visiting += n
    while stack:
        take the next supplier s of the top frame
        none left       → pop ; visiting -= n ; finished += n ; order.append(n)
        s in visiting   → CycleError
        s not finished  → push s ; visiting += s

The outer loop visits nodes in declaration order, so disconnected subgraphs
are covered and unconstrained nodes keep the order the user declared them in.
Suppliers of a node are also visited in declaration order, which makes the
result reproducible across runs on the same input.

A cycle aborts scheduling immediately; no partial order is ever returned.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Set, Tuple

from pipegraph.core.GraphPrimitives import Pipeline

from .diagnostics import CycleError, Diagnostic

logger = logging.getLogger(__name__)


class Scheduler:
    def __init__(self, pipeline: Pipeline):
        self.pipeline = pipeline
        self._position: Dict[str, int] = {
            n.id: i for i, n in enumerate(pipeline.nodes)
        }

    # ── Supplier lookup ───────────────────────────────────────────────────

    def _suppliers(self) -> Dict[str, List[str]]:
        """
        node_id → distinct ids of the nodes feeding its inputs, in declaration
        order.  Edges that reference undeclared nodes are ignored here; the
        validator reports them.
        """
        suppliers: Dict[str, Set[str]] = {nid: set() for nid in self._position}
        for edge in self.pipeline.edges:
            if edge.source_node_id in self._position and edge.target_node_id in self._position:
                suppliers[edge.target_node_id].add(edge.source_node_id)
        return {
            nid: sorted(srcs, key=self._position.__getitem__)
            for nid, srcs in suppliers.items()
        }

    # ── Public API ────────────────────────────────────────────────────────

    def order(self) -> List[str]:
        """Return every node id in execution order, or raise CycleError."""
        suppliers = self._suppliers()
        visiting: List[str] = []      # current DFS path, used to name the cycle
        visiting_set: Set[str] = set()
        finished: Set[str] = set()
        order: List[str] = []

        for node in self.pipeline.nodes:
            if node.id in finished:
                continue

            visiting.append(node.id)
            visiting_set.add(node.id)
            stack: List[Tuple[str, Iterator[str]]] = [(node.id, iter(suppliers[node.id]))]

            while stack:
                nid, pending = stack[-1]
                supplier = next(pending, None)

                if supplier is None:
                    stack.pop()
                    visiting.pop()
                    visiting_set.discard(nid)
                    finished.add(nid)
                    order.append(nid)
                elif supplier in visiting_set:
                    path = visiting[visiting.index(supplier):] + [supplier]
                    raise CycleError(Diagnostic.cycle(
                        f"Pipeline contains circular dependencies: {' -> '.join(path)}",
                        node_id=supplier,
                    ))
                elif supplier not in finished:
                    visiting.append(supplier)
                    visiting_set.add(supplier)
                    stack.append((supplier, iter(suppliers[supplier])))

        logger.debug(f"Scheduled '{self.pipeline.name}': {' -> '.join(order)}")
        return order


def schedule(pipeline: Pipeline) -> List[str]:
    """Topologically order ``pipeline``'s nodes.  Raises CycleError on a cycle."""
    return Scheduler(pipeline).order()


__all__ = ["Scheduler", "schedule"]
