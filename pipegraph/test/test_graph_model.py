import pytest

from pipegraph.core.Compatibility import DEFAULT_MATRIX, CompatibilityMatrix
from pipegraph.core.GraphPrimitives import Edge, Node, Pipeline, Port
from pipegraph.core.Types import DataType, NodeCategory, NodeKind


class TestTypes:

    def test_data_type_parse_accepts_value_name_and_member(self):
        assert DataType.parse("pdf") is DataType.PDF
        assert DataType.parse("CHUNKS") is DataType.CHUNKS
        assert DataType.parse(DataType.JSON) is DataType.JSON

    def test_data_type_parse_rejects_unknown(self):
        with pytest.raises(ValueError):
            DataType.parse("image")

    def test_category_parse_accepts_editor_tags(self):
        assert NodeCategory.parse("llm") is NodeCategory.LANGUAGE_MODEL
        assert NodeCategory.parse("language_model") is NodeCategory.LANGUAGE_MODEL
        assert NodeCategory.parse("LanguageModel") is NodeCategory.LANGUAGE_MODEL
        assert NodeCategory.parse("Output") is NodeCategory.OUTPUT

    def test_category_display_name(self):
        assert NodeCategory.LANGUAGE_MODEL.display_name == "LanguageModel"

    def test_kind_parse(self):
        assert NodeKind.parse(None) is None
        assert NodeKind.parse("text_chunker") is NodeKind.TEXT_CHUNKER
        with pytest.raises(ValueError):
            NodeKind.parse("gesture-recognizer")


class TestGraphPrimitives:

    def setup_method(self):
        self.src = Node("a", NodeCategory.INPUT, "A", outputs=[Port("pdf", "PDF", DataType.PDF)])
        self.dst = Node("b", NodeCategory.PROCESSING, "B", inputs=[Port("pdf", "PDF", DataType.PDF)])

    def test_node_config_is_read_only(self):
        node = Node("n", NodeCategory.LOGIC, "N", config={"separator": ","})
        with pytest.raises(TypeError):
            node.config["separator"] = ";"

    def test_with_config_returns_new_node(self):
        node = Node("n", NodeCategory.LOGIC, "N", config={"separator": ","})
        changed = node.with_config(separator=";", extra=1)
        assert dict(changed.config) == {"separator": ";", "extra": 1}
        assert dict(node.config) == {"separator": ","}

    def test_duplicate_port_ids_rejected(self):
        with pytest.raises(ValueError, match="duplicate input port"):
            Node("n", NodeCategory.LOGIC, "N",
                 inputs=[Port("x", "X", DataType.TEXT), Port("x", "X2", DataType.TEXT)])

    def test_same_port_id_allowed_across_directions(self):
        node = Node("n", NodeCategory.PROCESSING, "N",
                    inputs=[Port("text", "T", DataType.TEXT)],
                    outputs=[Port("text", "T", DataType.TEXT)])
        assert node.get_input("text") is not None
        assert node.get_output("text") is not None

    def test_edge_connect_takes_source_port_type(self):
        edge = Edge.connect("e1", self.src, "pdf", self.dst, "pdf")
        assert edge.data_type is DataType.PDF
        assert (edge.source_node_id, edge.target_node_id) == ("a", "b")

    def test_edge_connect_unknown_port(self):
        with pytest.raises(ValueError):
            Edge.connect("e1", self.src, "text", self.dst, "pdf")

    def test_pipeline_rejects_duplicate_node_ids(self):
        with pytest.raises(ValueError, match="already exists"):
            Pipeline(nodes=[self.src, self.src])

    def test_pipeline_queries(self):
        edge = Edge.connect("e1", self.src, "pdf", self.dst, "pdf")
        p = Pipeline(nodes=[self.src, self.dst], edges=[edge])
        assert p.get_node("b") is self.dst
        assert p.nodes_of(NodeCategory.INPUT) == [self.src]
        assert p.get_incoming("b") == [edge]
        assert p.get_incoming("b", "other") == []
        assert p.get_outgoing("a", "pdf") == [edge]


class TestCompatibilityMatrix:

    def test_exact_match_always_allowed(self):
        for data_type in DataType:
            assert DEFAULT_MATRIX.is_compatible(data_type, data_type)

    @pytest.mark.parametrize("source,target", [
        (DataType.PDF, DataType.TEXT),
        (DataType.TEXT, DataType.CHUNKS),
        (DataType.CHUNKS, DataType.EMBEDDINGS),
        (DataType.CHUNKS, DataType.TEXT),
        (DataType.JSON, DataType.TEXT),
        (DataType.BOOLEAN, DataType.TEXT),
        (DataType.NUMBER, DataType.TEXT),
    ])
    def test_default_conversions(self, source, target):
        assert DEFAULT_MATRIX.is_compatible(source, target)

    def test_not_symmetric(self):
        assert not DEFAULT_MATRIX.is_compatible(DataType.TEXT, DataType.PDF)

    def test_not_transitive(self):
        # pdf → text → chunks, but pdf does not feed chunks directly.
        assert not DEFAULT_MATRIX.is_compatible(DataType.PDF, DataType.CHUNKS)

    def test_embeddings_only_feed_embeddings(self):
        others = [t for t in DataType if t is not DataType.EMBEDDINGS]
        assert not any(DEFAULT_MATRIX.is_compatible(DataType.EMBEDDINGS, t) for t in others)

    def test_extended_leaves_original_untouched(self):
        wider = DEFAULT_MATRIX.extended(DataType.JSON, DataType.BOOLEAN)
        assert wider.is_compatible(DataType.JSON, DataType.BOOLEAN)
        assert wider.is_compatible(DataType.JSON, DataType.TEXT)
        assert not DEFAULT_MATRIX.is_compatible(DataType.JSON, DataType.BOOLEAN)

    def test_custom_rules(self):
        matrix = CompatibilityMatrix({DataType.NUMBER: {DataType.BOOLEAN}})
        assert matrix.is_compatible(DataType.NUMBER, DataType.BOOLEAN)
        assert not matrix.is_compatible(DataType.PDF, DataType.TEXT)
