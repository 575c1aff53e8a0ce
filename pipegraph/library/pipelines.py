"""
pipegraph library — Pre-built Pipelines
=======================================
Starting points for the editor.  Each entry is an ordinary, immutable
Pipeline that compiles cleanly as-is.

    from pipegraph.library.pipelines import PIPELINE_TEMPLATES
    pipeline = PIPELINE_TEMPLATES["document-qa"]
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List

from pipegraph.core.GraphPrimitives import Edge, Node, Pipeline
from pipegraph.core.Types import NodeKind

from .nodes import instantiate


def _wire(nodes: List[Node], links: List[tuple]) -> List[Edge]:
    """links: (source id, source port, target id, target port) → numbered edges."""
    by_id = {n.id: n for n in nodes}
    return [
        Edge.connect(f"edge-{i}", by_id[src], src_port, by_id[tgt], tgt_port)
        for i, (src, src_port, tgt, tgt_port) in enumerate(links, start=1)
    ]


# ── Document Q&A ──────────────────────────────────────────────────────────────
#
#   PDF Input → Extractor → Chunker → Embeddings → Vector Store
#
#   Text Input ─┬→ Semantic Search ─→ Prompt Builder → Gemma → Text Response
#               └──────────────────→ ┘

def _document_qa() -> Pipeline:
    search = instantiate(NodeKind.SEMANTIC_SEARCH, "semantic-search-1")
    gemma = instantiate(NodeKind.LLM_GENERATOR, "gemma-gen-1")
    nodes = [
        instantiate(NodeKind.PDF_INPUT, "pdf-input-1"),
        instantiate(NodeKind.PDF_TEXT_EXTRACTOR, "pdf-extractor-1"),
        instantiate(NodeKind.TEXT_CHUNKER, "text-chunker-1"),
        instantiate(NodeKind.EMBEDDING_GENERATOR, "embedding-gen-1"),
        instantiate(NodeKind.VECTOR_STORE, "vector-store-1"),
        replace(
            instantiate(NodeKind.TEXT_INPUT, "query-input-1",
                        placeholder="Enter your question here...", maxLength=1000),
            description="User question input",
        ),
        # Scores and retrieved context aren't wired in this layout.
        replace(search, outputs=search.outputs[:1]),
        instantiate(NodeKind.PROMPT_BUILDER, "prompt-builder-1"),
        replace(gemma, inputs=gemma.inputs[:1]),
        instantiate(NodeKind.TEXT_RESPONSE, "text-response-1"),
    ]
    edges = _wire(nodes, [
        ("pdf-input-1",       "pdf",        "pdf-extractor-1",   "pdf"),
        ("pdf-extractor-1",   "text",       "text-chunker-1",    "text"),
        ("text-chunker-1",    "chunks",     "embedding-gen-1",   "chunks"),
        ("embedding-gen-1",   "embeddings", "vector-store-1",    "embeddings"),
        ("query-input-1",     "text",       "semantic-search-1", "query"),
        ("query-input-1",     "text",       "prompt-builder-1",  "query"),
        ("semantic-search-1", "results",    "prompt-builder-1",  "context"),
        ("prompt-builder-1",  "prompt",     "gemma-gen-1",       "prompt"),
        ("gemma-gen-1",       "response",   "text-response-1",   "text"),
    ])
    return Pipeline(
        nodes=nodes,
        edges=edges,
        name="Document Q&A Pipeline",
        description="Complete RAG pipeline for document-based question answering",
    )


# ── Quick answer ──────────────────────────────────────────────────────────────
#
#   Text Input → Prompt Builder → Gemma → Conditional Branch ─true→ Text Response
#                                                            └false→ Data Merger → Text Response

def _quick_answer() -> Pipeline:
    nodes = [
        instantiate(NodeKind.TEXT_INPUT, "question-1", label="Question"),
        instantiate(NodeKind.PROMPT_BUILDER, "prompt-builder-1",
                    template="Answer briefly.\n\nQuestion: {query}"),
        instantiate(NodeKind.LLM_GENERATOR, "gemma-gen-1", temperature=0.2, maxTokens=256),
        instantiate(NodeKind.CONDITIONAL_BRANCH, "has-answer-1", label="Has Answer"),
        instantiate(NodeKind.TEXT_RESPONSE, "answer-1", label="Answer"),
        instantiate(NodeKind.DATA_MERGER, "fallback-1", label="Fallback Note"),
        instantiate(NodeKind.TEXT_RESPONSE, "fallback-out-1", label="Fallback"),
    ]
    edges = _wire(nodes, [
        ("question-1",       "text",     "prompt-builder-1", "query"),
        ("prompt-builder-1", "prompt",   "gemma-gen-1",      "prompt"),
        ("gemma-gen-1",      "response", "has-answer-1",     "input"),
        ("has-answer-1",     "true",     "answer-1",         "text"),
        ("has-answer-1",     "false",    "fallback-1",       "input1"),
        ("question-1",       "text",     "fallback-1",       "input2"),
        ("fallback-1",       "merged",   "fallback-out-1",   "text"),
    ])
    return Pipeline(
        nodes=nodes,
        edges=edges,
        name="Quick Answer Pipeline",
        description="Single-prompt answer with an empty-response fallback",
    )


DOCUMENT_QA = _document_qa()
QUICK_ANSWER = _quick_answer()

PIPELINE_TEMPLATES: Dict[str, Pipeline] = {
    "document-qa": DOCUMENT_QA,
    "quick-answer": QUICK_ANSWER,
}


__all__ = ["DOCUMENT_QA", "PIPELINE_TEMPLATES", "QUICK_ANSWER"]
