import pytest

from pipegraph.compiler.diagnostics import CycleError, DiagnosticKind
from pipegraph.compiler.scheduler import Scheduler, schedule
from pipegraph.core.GraphPrimitives import Edge, Pipeline
from pipegraph.core.Types import NodeCategory


def link(edge_id, source, target):
    return Edge(edge_id, source, "text", target, "text")


class TestScheduler:

    def test_two_nodes(self, echo_pipeline):
        assert schedule(echo_pipeline) == ["in", "out"]

    def test_linear_chain_keeps_declaration_order(self, linear_chain):
        assert schedule(linear_chain) == ["in", "proc", "retr", "llm", "out"]

    def test_suppliers_come_first_regardless_of_declaration(self, linear_chain):
        reversed_nodes = Pipeline(nodes=linear_chain.nodes[::-1], edges=linear_chain.edges)
        assert schedule(reversed_nodes) == ["in", "proc", "retr", "llm", "out"]

    def test_every_edge_respected(self, make_node):
        ids = ["d", "b", "a", "c"]
        nodes = [make_node(i, NodeCategory.LOGIC, inputs=["text"], outputs=["text"]) for i in ids]
        edges = [link("1", "a", "b"), link("2", "a", "c"), link("3", "b", "d"), link("4", "c", "d")]
        order = schedule(Pipeline(nodes=nodes, edges=edges))

        assert sorted(order) == sorted(ids)
        for e in edges:
            assert order.index(e.source_node_id) < order.index(e.target_node_id)

    def test_disconnected_subgraphs_all_scheduled(self, make_node):
        nodes = [make_node(i, NodeCategory.LOGIC, inputs=["text"], outputs=["text"])
                 for i in ["x1", "y1", "x2", "y2"]]
        edges = [link("1", "x1", "x2"), link("2", "y1", "y2")]
        assert schedule(Pipeline(nodes=nodes, edges=edges)) == ["x1", "y1", "x2", "y2"]

    def test_edges_to_undeclared_nodes_ignored(self, echo_pipeline):
        p = Pipeline(nodes=echo_pipeline.nodes, edges=echo_pipeline.edges + (link("ghost", "zz", "out"),))
        assert schedule(p) == ["in", "out"]

    def test_parallel_edges_count_once(self, make_node):
        a = make_node("a", NodeCategory.INPUT, outputs=["x", "y"])
        b = make_node("b", NodeCategory.OUTPUT, inputs=["x", "y"])
        edges = [Edge("1", "a", "x", "b", "x"), Edge("2", "a", "y", "b", "y")]
        assert schedule(Pipeline(nodes=[a, b], edges=edges)) == ["a", "b"]

    def test_deterministic(self, linear_chain):
        assert Scheduler(linear_chain).order() == Scheduler(linear_chain).order()

    def test_long_chain_declared_in_reverse(self, make_node):
        ids = [f"n{i}" for i in range(5000)]
        nodes = [make_node(i, NodeCategory.LOGIC, inputs=["text"], outputs=["text"]) for i in reversed(ids)]
        edges = [link(f"e{i}", ids[i], ids[i + 1]) for i in range(len(ids) - 1)]
        assert schedule(Pipeline(nodes=nodes, edges=edges)) == ids


class TestCycles:

    def test_two_node_cycle(self, make_node):
        a = make_node("A", NodeCategory.PROCESSING, inputs=["text"], outputs=["text"])
        b = make_node("B", NodeCategory.PROCESSING, inputs=["text"], outputs=["text"])
        p = Pipeline(nodes=[a, b], edges=[link("ab", "A", "B"), link("ba", "B", "A")])

        with pytest.raises(CycleError) as exc_info:
            schedule(p)
        diagnostic = exc_info.value.diagnostic
        assert diagnostic.kind is DiagnosticKind.CYCLE
        assert "A -> B -> A" in diagnostic.message

    def test_self_loop(self, make_node):
        a = make_node("A", NodeCategory.LOGIC, inputs=["text"], outputs=["text"])
        with pytest.raises(CycleError, match="A -> A"):
            schedule(Pipeline(nodes=[a], edges=[link("aa", "A", "A")]))

    def test_cycle_downstream_of_valid_prefix(self, linear_chain):
        back = link("back", "llm", "proc")
        with pytest.raises(CycleError) as exc_info:
            schedule(Pipeline(nodes=linear_chain.nodes, edges=linear_chain.edges + (back,)))
        assert "CycleError" in str(exc_info.value)

    def test_long_cycle_names_full_path(self, make_node):
        ids = [f"n{i}" for i in range(3000)]
        nodes = [make_node(i, NodeCategory.LOGIC, inputs=["text"], outputs=["text"]) for i in ids]
        edges = [link(f"e{i}", ids[i], ids[(i + 1) % len(ids)]) for i in range(len(ids))]
        with pytest.raises(CycleError) as exc_info:
            schedule(Pipeline(nodes=nodes, edges=edges))
        path = exc_info.value.diagnostic.message.split(": ", 1)[1].split(" -> ")
        assert len(path) == len(ids) + 1
        assert path[0] == path[-1] == "n0"
