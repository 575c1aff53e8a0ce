from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .Types import DataType, NodeCategory, NodeKind


# Pipelines are immutable values: every primitive here is a frozen dataclass.
# Structural invariants (dangling edges, cycles, type mismatches) are NOT
# enforced at construction time; that is the validator's and scheduler's job.


@dataclass(frozen=True)
class Port:
    id: str
    label: str
    data_type: DataType
    required: bool = True
    description: str = ""

    def __repr__(self):
        return f"Port({self.id}:{self.data_type.value})"


@dataclass(frozen=True)
class Node:
    id: str
    category: NodeCategory
    label: str
    config: Mapping[str, Any] = field(default_factory=dict)
    inputs: Tuple[Port, ...] = ()
    outputs: Tuple[Port, ...] = ()
    kind: Optional[NodeKind] = None
    description: str = ""

    def __post_init__(self):
        # Freeze the containers so a compiled pipeline can't be changed under us.
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))
        for direction, ports in (("input", self.inputs), ("output", self.outputs)):
            ids = [p.id for p in ports]
            if len(ids) != len(set(ids)):
                raise ValueError(f"Node '{self.id}' declares duplicate {direction} port ids")

    def get_input(self, port_id: str) -> Optional[Port]:
        return next((p for p in self.inputs if p.id == port_id), None)

    def get_output(self, port_id: str) -> Optional[Port]:
        return next((p for p in self.outputs if p.id == port_id), None)

    def with_config(self, **changes: Any) -> 'Node':
        """Return a copy of this node with ``changes`` merged into its config."""
        merged = dict(self.config)
        merged.update(changes)
        return replace(self, config=merged)

    def __repr__(self):
        return f"Node({self.id}, {self.category.value})"


@dataclass(frozen=True)
class Edge:
    id: str
    source_node_id: str
    source_port_id: str
    target_node_id: str
    target_port_id: str

    # Cached at creation time from the source port. Re-derived during validation.
    data_type: DataType = DataType.TEXT

    @classmethod
    def connect(cls, edge_id: str, source: Node, source_port_id: str,
                target: Node, target_port_id: str) -> 'Edge':
        """Create an edge whose data type is taken from the source port."""
        port = source.get_output(source_port_id)
        if port is None:
            raise ValueError(f"Node '{source.id}' has no output port '{source_port_id}'")
        return cls(edge_id, source.id, source_port_id, target.id, target_port_id, port.data_type)

    def __repr__(self):
        return (f"Edge({self.source_node_id}.{self.source_port_id} -> "
                f"{self.target_node_id}.{self.target_port_id})")


@dataclass(frozen=True)
class Pipeline:
    nodes: Tuple[Node, ...] = ()
    edges: Tuple[Edge, ...] = ()
    name: str = "Generated Pipeline"
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Node with id '{node.id}' already exists in the pipeline")
            seen.add(node.id)

    # ── Convenience queries ────────────────────────────────────────────────

    def get_node(self, node_id: str) -> Optional[Node]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def node_map(self) -> Dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def nodes_of(self, category: NodeCategory) -> List[Node]:
        return [n for n in self.nodes if n.category is category]

    def get_incoming(self, node_id: str, port_id: Optional[str] = None) -> List[Edge]:
        return [e for e in self.edges
                if e.target_node_id == node_id
                and (port_id is None or e.target_port_id == port_id)]

    def get_outgoing(self, node_id: str, port_id: Optional[str] = None) -> List[Edge]:
        return [e for e in self.edges
                if e.source_node_id == node_id
                and (port_id is None or e.source_port_id == port_id)]
