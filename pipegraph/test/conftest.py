import pytest

from pipegraph.core.GraphPrimitives import Edge, Node, Pipeline, Port
from pipegraph.core.Types import DataType, NodeCategory


def _port(port_id, data_type=DataType.TEXT):
    return Port(port_id, port_id.title(), data_type)


def _node(node_id, category, inputs=(), outputs=(), label=None, config=None, kind=None):
    """inputs/outputs: port ids (TEXT) or (port_id, DataType) pairs."""
    def ports(specs):
        return [_port(*s) if isinstance(s, tuple) else _port(s) for s in specs]

    return Node(
        id=node_id,
        category=category,
        label=label or node_id.title(),
        config=config or {},
        inputs=ports(inputs),
        outputs=ports(outputs),
        kind=kind,
    )


@pytest.fixture
def make_node():
    return _node


@pytest.fixture
def echo_pipeline():
    """Input (text) → Output (text)."""
    src = _node("in", NodeCategory.INPUT, outputs=["text"], label="Question")
    dst = _node("out", NodeCategory.OUTPUT, inputs=["text"], label="Answer")
    return Pipeline(
        nodes=[src, dst],
        edges=[Edge.connect("e1", src, "text", dst, "text")],
        name="Echo",
    )


@pytest.fixture
def linear_chain():
    """Input → Processing → Retrieval → LanguageModel → Output, all TEXT."""
    nodes = [
        _node("in", NodeCategory.INPUT, outputs=["text"]),
        _node("proc", NodeCategory.PROCESSING, inputs=["text"], outputs=["text"]),
        _node("retr", NodeCategory.RETRIEVAL, inputs=["text"], outputs=["text"]),
        _node("llm", NodeCategory.LANGUAGE_MODEL, inputs=["text"], outputs=["text"]),
        _node("out", NodeCategory.OUTPUT, inputs=["text"]),
    ]
    edges = [
        Edge.connect(f"e{i}", a, "text", b, "text")
        for i, (a, b) in enumerate(zip(nodes, nodes[1:]), start=1)
    ]
    return Pipeline(nodes=nodes, edges=edges, name="Chain")
