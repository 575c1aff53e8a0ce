"""
pipegraph library — Node Palette
================================
The stock node kinds an editor offers, with their ports and default config.

    node = instantiate(NodeKind.TEXT_CHUNKER, "chunker-1", chunkSize=256)

``instantiate`` copies the defaults, applies overrides, and returns a
ready-to-wire Node whose ``kind`` selects the matching code template.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pipegraph.core.GraphPrimitives import Node, Port
from pipegraph.core.Types import DataType, NodeCategory, NodeKind


@dataclass(frozen=True)
class NodeSpec:
    kind: NodeKind
    category: NodeCategory
    label: str
    description: str
    inputs: Tuple[Port, ...] = ()
    outputs: Tuple[Port, ...] = ()
    default_config: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        def port(p: Port) -> Dict[str, Any]:
            return {"id": p.id, "label": p.label, "dataType": p.data_type.value,
                    "required": p.required, "description": p.description}

        return {
            "kind": self.kind.value,
            "category": self.category.value,
            "label": self.label,
            "description": self.description,
            "inputs": [port(p) for p in self.inputs],
            "outputs": [port(p) for p in self.outputs],
            "defaultConfig": dict(self.default_config),
        }


def _port(id: str, label: str, data_type: DataType, description: str, required: bool = True) -> Port:
    return Port(id=id, label=label, data_type=data_type, required=required, description=description)


_SPECS = [
    # ── Input ─────────────────────────────────────────────────────────────
    NodeSpec(
        NodeKind.PDF_INPUT, NodeCategory.INPUT, "PDF Input",
        "Load PDF documents from device storage",
        outputs=(_port("pdf", "PDF Document", DataType.PDF, "Raw PDF document"),),
        default_config={"allowMultiple": False, "fileFilter": "*.pdf", "maxSize": "10MB"},
    ),
    NodeSpec(
        NodeKind.TEXT_INPUT, NodeCategory.INPUT, "Text Input",
        "Direct text input for processing",
        outputs=(_port("text", "Text", DataType.TEXT, "Raw text content"),),
        default_config={"placeholder": "Enter your text here...", "maxLength": 10000},
    ),

    # ── Processing ────────────────────────────────────────────────────────
    NodeSpec(
        NodeKind.PDF_TEXT_EXTRACTOR, NodeCategory.PROCESSING, "PDF Text Extractor",
        "Extract text content from PDF documents",
        inputs=(_port("pdf", "PDF Document", DataType.PDF, "PDF document to extract text from"),),
        outputs=(_port("text", "Extracted Text", DataType.TEXT, "Text extracted from PDF"),),
        default_config={"stripFormatting": True, "preserveLineBreaks": False},
    ),
    NodeSpec(
        NodeKind.TEXT_CHUNKER, NodeCategory.PROCESSING, "Text Chunker",
        "Split text into chunks for processing",
        inputs=(_port("text", "Text", DataType.TEXT, "Text to chunk"),),
        outputs=(_port("chunks", "Text Chunks", DataType.CHUNKS, "Chunked text segments"),),
        default_config={"chunkSize": 512, "overlap": 64, "method": "fixed-size"},
    ),
    NodeSpec(
        NodeKind.EMBEDDING_GENERATOR, NodeCategory.PROCESSING, "Embedding Generator",
        "Generate vector embeddings using Gecko model",
        inputs=(_port("chunks", "Text Chunks", DataType.CHUNKS, "Text chunks to embed"),),
        outputs=(_port("embeddings", "Embeddings", DataType.EMBEDDINGS, "768-dimensional embeddings"),),
        default_config={"model": "gecko", "dimensions": 768, "useGpu": True},
    ),

    # ── Retrieval ─────────────────────────────────────────────────────────
    NodeSpec(
        NodeKind.VECTOR_STORE, NodeCategory.RETRIEVAL, "Vector Store",
        "Store embeddings in SQLite vector database",
        inputs=(
            _port("embeddings", "Embeddings", DataType.EMBEDDINGS, "Vector embeddings to store"),
            _port("metadata", "Metadata", DataType.JSON, "Optional chunk metadata", required=False),
        ),
        outputs=(_port("stored", "Stored Count", DataType.NUMBER, "Number of embeddings stored"),),
        default_config={"tableName": "embeddings", "indexType": "cosine", "persistent": True},
    ),
    NodeSpec(
        NodeKind.SEMANTIC_SEARCH, NodeCategory.RETRIEVAL, "Semantic Search",
        "Search vector database for relevant chunks",
        inputs=(_port("query", "Query", DataType.TEXT, "Search query"),),
        outputs=(
            _port("results", "Search Results", DataType.CHUNKS, "Relevant text chunks"),
            _port("scores", "Similarity Scores", DataType.JSON, "Similarity scores for results",
                  required=False),
        ),
        default_config={"topK": 3, "minSimilarity": 0.0, "rerankResults": False},
    ),

    # ── Language model ────────────────────────────────────────────────────
    NodeSpec(
        NodeKind.LLM_GENERATOR, NodeCategory.LANGUAGE_MODEL, "Gemma Generator",
        "Generate responses using Gemma 3B model",
        inputs=(
            _port("prompt", "Prompt", DataType.TEXT, "Input prompt for generation"),
            _port("context", "Context", DataType.CHUNKS, "Retrieved context chunks", required=False),
        ),
        outputs=(_port("response", "Generated Text", DataType.TEXT, "LLM generated response"),),
        default_config={"model": "gemma-3b-1b-int4", "temperature": 0.8, "topP": 0.95,
                        "topK": 40, "maxTokens": 2048, "useGpu": True},
    ),
    NodeSpec(
        NodeKind.PROMPT_BUILDER, NodeCategory.LANGUAGE_MODEL, "Prompt Builder",
        "Build prompts with context injection",
        inputs=(
            _port("query", "User Query", DataType.TEXT, "User question"),
            _port("context", "Context", DataType.CHUNKS, "Retrieved context", required=False),
        ),
        outputs=(_port("prompt", "Formatted Prompt", DataType.TEXT, "Formatted prompt with context"),),
        default_config={
            "template": (
                "You are a helpful assistant. Use the following information to answer the "
                "user's question. If the answer is not in the context, say you don't know."
                "\n\nContext: {context}\n\nQuestion: {query}"
            ),
            "contextSeparator": "\n\n",
            "maxContextLength": 4000,
        },
    ),

    # ── Logic ─────────────────────────────────────────────────────────────
    NodeSpec(
        NodeKind.CONDITIONAL_BRANCH, NodeCategory.LOGIC, "Conditional Branch",
        "Branch execution based on conditions",
        inputs=(_port("input", "Input Value", DataType.TEXT, "Value to evaluate"),),
        outputs=(
            _port("true", "True Branch", DataType.TEXT, "Output if condition is true", required=False),
            _port("false", "False Branch", DataType.TEXT, "Output if condition is false", required=False),
        ),
        default_config={"condition": "length > 0", "operator": "greater_than", "value": "0"},
    ),
    NodeSpec(
        NodeKind.DATA_MERGER, NodeCategory.LOGIC, "Data Merger",
        "Combine multiple inputs into one",
        inputs=(
            _port("input1", "Input 1", DataType.TEXT, "First input"),
            _port("input2", "Input 2", DataType.TEXT, "Second input", required=False),
        ),
        outputs=(_port("merged", "Merged Output", DataType.TEXT, "Combined output"),),
        default_config={"separator": "\n", "mergeMethod": "concatenate"},
    ),

    # ── Output ────────────────────────────────────────────────────────────
    NodeSpec(
        NodeKind.TEXT_RESPONSE, NodeCategory.OUTPUT, "Text Response",
        "Display generated text response",
        inputs=(_port("text", "Response Text", DataType.TEXT, "Text to display"),),
        default_config={"displayType": "chat-message", "enableMarkdown": True, "showMetadata": False},
    ),
    NodeSpec(
        NodeKind.JSON_EXPORT, NodeCategory.OUTPUT, "JSON Export",
        "Export results as JSON data",
        inputs=(_port("data", "Data", DataType.JSON, "Data to export"),),
        default_config={"filename": "pipeline-results.json", "prettyPrint": True,
                        "includeMetadata": True},
    ),
]

NODE_TEMPLATES: Dict[NodeKind, NodeSpec] = {spec.kind: spec for spec in _SPECS}


def get_node_spec(kind: Union[NodeKind, str]) -> NodeSpec:
    parsed = NodeKind.parse(kind)
    if parsed is None:
        raise ValueError("A node kind is required")
    return NODE_TEMPLATES[parsed]


def instantiate(kind: Union[NodeKind, str], node_id: str,
                label: Optional[str] = None, **config: Any) -> Node:
    """Create a Node of ``kind`` with default config overridden by ``config``."""
    spec = get_node_spec(kind)
    merged = dict(spec.default_config)
    merged.update(config)
    return Node(
        id=node_id,
        category=spec.category,
        label=label or spec.label,
        config=merged,
        inputs=spec.inputs,
        outputs=spec.outputs,
        kind=spec.kind,
        description=spec.description,
    )


def grouped() -> Dict[str, List[NodeSpec]]:
    """Palette sections: category display name → specs, in catalog order."""
    groups: Dict[str, List[NodeSpec]] = {}
    for spec in _SPECS:
        groups.setdefault(spec.category.display_name, []).append(spec)
    return groups


__all__ = ["NODE_TEMPLATES", "NodeSpec", "get_node_spec", "grouped", "instantiate"]
