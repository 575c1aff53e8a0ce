"""
pipegraph compiler — Node Code Templates
========================================
A NodeTemplate is the code-generation strategy for one kind of node.  Every
node becomes one top-level procedure in the generated file plus one call
inside ``run_pipeline()``:

    def node_text_chunker_1(rag: Any, text: Any = None) -> Any:
        # Text Chunker [Processing / text-chunker]
        config = NODE_CONFIGS['text-chunker-1']
        _chunks = rag.chunk_text(...)
        return _chunks

    ...
    text_chunker_1_chunks = node_text_chunker_1(rag, text=pdf_extractor_1_text)

Hooks
-----
  emit_body(node, writer) -> {port_id: expr}
      Emits the node's logic and returns the expression written to each
      declared output port.  The base class wraps it with the ``def`` line,
      the config lookup and the ``return``.

  emit_procedure(node, writer)
      The whole procedure.  Rarely overridden (Output nodes do).

  emit_call(node, writer)
      The call site inside ``run_pipeline()``.

Fixed parameters come from the node's category, not the template:

    Input                                   inputs   (the caller's mapping)
    Processing / Retrieval / LanguageModel  rag      (runtime facade)
    Logic / Output                          —

Locals inside procedures start with an underscore; parameters never do, so
the two can't collide.

Adding a node kind
------------------
1. Subclass the category's base template and override ``emit_body``.
2. Register: TEMPLATE_REGISTRY[(NodeCategory.X, NodeKind.Y)] = MyTemplate()

A node without a kind, or whose kind has no template, falls back to its
category's generic template at ``(category, None)``.  If that is missing too,
lookup raises StrategyError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from pipegraph.core.GraphPrimitives import Node
from pipegraph.core.Types import NodeCategory, NodeKind

from .context import RESULT_PORT
from .diagnostics import Diagnostic, StrategyError

if TYPE_CHECKING:
    from .context import BoundNode


# ── Code writer ───────────────────────────────────────────────────────────────

class CodeWriter:
    """Simple indented string accumulator."""

    def __init__(self, indent: int = 0):
        self._lines: List[str] = []
        self._indent = indent

    def writeln(self, line: str = "") -> "CodeWriter":
        if line:
            self._lines.append("    " * self._indent + line)
        else:
            self._lines.append("")
        return self

    def blank(self) -> "CodeWriter":
        return self.writeln()

    def comment(self, text: str) -> "CodeWriter":
        return self.writeln(f"# {one_line(text)}")

    def push(self) -> "CodeWriter":
        self._indent += 1
        return self

    def pop(self) -> "CodeWriter":
        self._indent = max(0, self._indent - 1)
        return self

    def lines(self) -> List[str]:
        return self._lines


def one_line(text: str) -> str:
    """Collapse free text so it can't break out of a comment."""
    return " ".join(str(text).split())


# ── Category requirements ─────────────────────────────────────────────────────
# Fixed per category, never per node instance.

RUNTIME_CATEGORIES: frozenset = frozenset({
    NodeCategory.PROCESSING,
    NodeCategory.RETRIEVAL,
    NodeCategory.LANGUAGE_MODEL,
})

CATEGORY_DEPENDENCIES: Dict[NodeCategory, Tuple[str, ...]] = {
    NodeCategory.INPUT:          (),
    NodeCategory.PROCESSING:     ("pipegraph-runtime[documents]>=1.0",),
    NodeCategory.RETRIEVAL:      ("pipegraph-runtime[vectors]>=1.0",),
    NodeCategory.LANGUAGE_MODEL: ("pipegraph-runtime[llm]>=1.0",),
    NodeCategory.LOGIC:          (),
    NodeCategory.OUTPUT:         (),
}


def _fixed_params(category: NodeCategory) -> List[str]:
    if category is NodeCategory.INPUT:
        return ["inputs: Dict[str, Any]"]
    if category in RUNTIME_CATEGORIES:
        return ["rag: Any"]
    return []


def _fixed_args(category: NodeCategory) -> List[str]:
    if category is NodeCategory.INPUT:
        return ["inputs"]
    if category in RUNTIME_CATEGORIES:
        return ["rag"]
    return []


# ── Base template ─────────────────────────────────────────────────────────────

class NodeTemplate:
    """
    Base class — subclass and override ``emit_body``.
    The default body forwards the node's first input to every output.
    """

    def emit_procedure(self, node: "BoundNode", writer: CodeWriter) -> None:
        self._emit_def(node, writer)
        outputs = self.emit_body(node, writer)
        self._emit_return(node, outputs, writer)
        writer.pop()

    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        writer.comment("Forwards its input unchanged")
        return self.all_outputs(node, node.first_param())

    def emit_call(self, node: "BoundNode", writer: CodeWriter) -> None:
        args = _fixed_args(node.node.category) + [
            f"{node.params[port_id]}={var}"
            for port_id, var in node.input_vars.items()
            if var is not None
        ]
        call = f"{node.function_name}({', '.join(args)})"

        writer.comment(f"{node.label} ({node.id})")
        targets = list(node.output_vars.values())
        if node.result_var is not None:
            writer.writeln(f"{node.result_var} = {call}")
            # Declared outputs of an Output node alias its registered result.
            for var in targets:
                if var != node.result_var:
                    writer.writeln(f"{var} = {node.result_var}")
        elif not targets:
            writer.writeln(call)
        else:
            writer.writeln(f"{', '.join(targets)} = {call}")

    # ── Helpers ───────────────────────────────────────────────────────────

    def _emit_def(self, node: "BoundNode", writer: CodeWriter) -> None:
        params = _fixed_params(node.node.category) + [
            f"{name}: Any = None" for name in node.params.values()
        ]
        writer.writeln(f"def {node.function_name}({', '.join(params)}) -> Any:")
        writer.push()
        kind = f" / {node.node.kind.value}" if node.node.kind else ""
        writer.comment(f"{node.label} [{node.node.category.display_name}{kind}]")
        writer.writeln(f"config = NODE_CONFIGS[{node.id!r}]")

    def _emit_return(self, node: "BoundNode", outputs: Dict[str, str], writer: CodeWriter) -> None:
        exprs = [outputs.get(p.id, "None") for p in node.node.outputs]
        if not exprs:
            writer.writeln("return None")
        elif len(exprs) == 1:
            writer.writeln(f"return {exprs[0]}")
        else:
            writer.writeln(f"return {', '.join(exprs)}")

    @staticmethod
    def all_outputs(node: "BoundNode", expr: str) -> Dict[str, str]:
        return {p.id: expr for p in node.node.outputs}

    @staticmethod
    def text_of(expr: str) -> str:
        return f'("" if {expr} is None else str({expr}))'


# ── Input ─────────────────────────────────────────────────────────────────────

class InputTemplate(NodeTemplate):
    """Reads each output port's value from the caller's ``inputs`` mapping."""

    def input_key(self, node: "BoundNode", port_id: str) -> str:
        # A single-output node may rename its key; multi-output nodes use port ids.
        key = node.node.config.get("inputKey")
        if isinstance(key, str) and key and len(node.node.outputs) == 1:
            return key
        return port_id

    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        return {
            p.id: f"inputs.get({self.input_key(node, p.id)!r}, config.get('defaultValue'))"
            for p in node.node.outputs
        }


class TextInputTemplate(InputTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        return {
            p.id: f"inputs.get({self.input_key(node, p.id)!r}, config.get('defaultText', ''))"
            for p in node.node.outputs
        }


class PdfInputTemplate(InputTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        outputs: Dict[str, str] = {}
        for p in node.node.outputs:
            key = self.input_key(node, p.id)
            writer.writeln(f"if {key!r} not in inputs:")
            writer.push()
            message = f"PDF input required: inputs[{key!r}]"
            writer.writeln(f"raise ValueError({message!r})")
            writer.pop()
            outputs[p.id] = f"inputs[{key!r}]"
        return outputs


# ── Processing ────────────────────────────────────────────────────────────────

class ProcessingTemplate(NodeTemplate):
    """Generic processing step: forwards its input unchanged."""


class PdfTextExtractorTemplate(ProcessingTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        pdf = node.param("pdf", node.first_param())
        writer.writeln("_text = rag.extract_text_from_pdf(")
        writer.push()
        writer.writeln(f"{pdf},")
        writer.writeln("strip_formatting=bool(config.get('stripFormatting', True)),")
        writer.writeln("preserve_line_breaks=bool(config.get('preserveLineBreaks', False)),")
        writer.pop()
        writer.writeln(")")
        return self.all_outputs(node, "_text")


class TextChunkerTemplate(ProcessingTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        text = node.param("text", node.first_param())
        writer.writeln("_chunks = rag.chunk_text(")
        writer.push()
        writer.writeln(f"{self.text_of(text)},")
        writer.writeln("chunk_size=int(config.get('chunkSize', 512)),")
        writer.writeln("overlap=int(config.get('overlap', 64)),")
        writer.writeln("method=config.get('method', 'fixed-size'),")
        writer.pop()
        writer.writeln(")")
        return self.all_outputs(node, "_chunks")


class EmbeddingGeneratorTemplate(ProcessingTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        chunks = node.param("chunks", node.first_param())
        writer.writeln("_embeddings = rag.generate_embeddings(")
        writer.push()
        writer.writeln(f"list({chunks} or []),")
        writer.writeln("model=config.get('model', 'gecko'),")
        writer.writeln("dimensions=int(config.get('dimensions', 768)),")
        writer.writeln("use_gpu=bool(config.get('useGpu', True)),")
        writer.pop()
        writer.writeln(")")
        return self.all_outputs(node, "_embeddings")


# ── Retrieval ─────────────────────────────────────────────────────────────────

class RetrievalTemplate(NodeTemplate):
    """Generic retrieval step: forwards its input unchanged."""


class VectorStoreTemplate(RetrievalTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        embeddings = node.param("embeddings", node.first_param())
        metadata = node.param("metadata")
        writer.writeln("_stored = rag.store_embeddings(")
        writer.push()
        writer.writeln(f"list({embeddings} or []),")
        writer.writeln(f"metadata={metadata},")
        writer.writeln("table_name=config.get('tableName', 'embeddings'),")
        writer.writeln("index_type=config.get('indexType', 'cosine'),")
        writer.writeln("persistent=bool(config.get('persistent', True)),")
        writer.pop()
        writer.writeln(")")
        return self.all_outputs(node, "_stored")


class SemanticSearchTemplate(RetrievalTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        query = node.param("query", node.first_param())
        writer.writeln("_results, _scores = rag.search_similar(")
        writer.push()
        writer.writeln(f"{self.text_of(query)},")
        writer.writeln("top_k=int(config.get('topK', 3)),")
        writer.writeln("threshold=float(config.get('minSimilarity', config.get('threshold', 0.0))),")
        writer.writeln("rerank=bool(config.get('rerankResults', False)),")
        writer.pop()
        writer.writeln(")")
        return {
            p.id: "_scores" if p.id == "scores" else "_results"
            for p in node.node.outputs
        }


# ── Language model ────────────────────────────────────────────────────────────

DEFAULT_PROMPT_TEMPLATE = (
    "You are a helpful assistant. Use the following information to answer the "
    "user's question. If the answer is not in the context, say you don't know."
    "\n\nContext: {context}\n\nQuestion: {query}"
)


class LanguageModelTemplate(NodeTemplate):
    """Generates a response from the first input, with no retrieved context."""

    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        prompt = node.param("prompt", node.first_param())
        context = node.param("context")
        writer.writeln(f"_prompt = {prompt} if {prompt} is not None else config.get('defaultPrompt', '')")
        writer.writeln("_response = rag.generate_response(")
        writer.push()
        writer.writeln("str(_prompt),")
        writer.writeln(f"context=list({context} or []),")
        writer.writeln("model=config.get('model', 'gemma-3b-1b-int4'),")
        writer.writeln("temperature=float(config.get('temperature', 0.8)),")
        writer.writeln("top_p=float(config.get('topP', 0.95)),")
        writer.writeln("top_k=int(config.get('topK', 40)),")
        writer.writeln("max_tokens=int(config.get('maxTokens', 2048)),")
        writer.pop()
        writer.writeln(")")
        return self.all_outputs(node, "_response")


class LlmGeneratorTemplate(LanguageModelTemplate):
    pass


class PromptBuilderTemplate(LanguageModelTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        query = node.param("query", node.first_param())
        context = node.param("context")
        writer.writeln(f"_query = {query} if {query} is not None else config.get('defaultQuery', '')")
        writer.writeln("_prompt = rag.build_prompt(")
        writer.push()
        writer.writeln("str(_query),")
        writer.writeln(f"list({context} or []),")
        writer.writeln(f"template=config.get('template', {DEFAULT_PROMPT_TEMPLATE!r}),")
        writer.writeln("separator=config.get('contextSeparator', '\\n\\n'),")
        writer.writeln("max_context_length=int(config.get('maxContextLength', 4000)),")
        writer.pop()
        writer.writeln(")")
        return self.all_outputs(node, "_prompt")


# ── Logic ─────────────────────────────────────────────────────────────────────

class LogicTemplate(NodeTemplate):
    """Generic logic step: forwards its input unchanged."""


class ConditionalBranchTemplate(LogicTemplate):
    """
    Evaluates a string condition on the input.  The value is forwarded on the
    ``true`` port when the condition holds and on every other port otherwise
    (``false`` in the stock node); the port not taken receives None.
    """

    _OPERATORS = [
        ("('contains',)",                  "_expected in _value"),
        ("('equals',)",                    "_value == _expected"),
        ("('startsWith', 'starts_with')",  "_value.startswith(_expected)"),
        ("('endsWith', 'ends_with')",      "_value.endswith(_expected)"),
        ("('greater_than',)",              "len(_value) > int(_expected or 0)"),
        ("('not_empty',)",                 "bool(_value)"),
    ]

    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        value = node.param("input", node.first_param())
        writer.writeln(f"_value = {self.text_of(value)}")
        writer.writeln("_operator = config.get('operator', config.get('condition', 'contains'))")
        writer.writeln("_expected = str(config.get('value', ''))")
        for i, (names, test) in enumerate(self._OPERATORS):
            writer.writeln(f"{'if' if i == 0 else 'elif'} _operator in {names}:")
            writer.push()
            writer.writeln(f"_matched = {test}")
            writer.pop()
        writer.writeln("else:")
        writer.push()
        writer.writeln("_matched = False")
        writer.pop()
        return {
            p.id: ("None if _matched else _value" if p.id == "false"
                   else "_value if _matched else None")
            for p in node.node.outputs
        }


class DataMergerTemplate(LogicTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        values = "".join(f"{name}, " for name in node.params.values()).rstrip()
        writer.writeln(f"_parts = [str(_v) for _v in ({values}) if _v is not None]")
        writer.writeln("if config.get('mergeMethod', 'concatenate') == 'list':")
        writer.push()
        writer.writeln("_merged = _parts")
        writer.pop()
        writer.writeln("else:")
        writer.push()
        writer.writeln("_merged = config.get('separator', '\\n').join(_parts)")
        writer.pop()
        return self.all_outputs(node, "_merged")


# ── Output ────────────────────────────────────────────────────────────────────

class OutputTemplate(NodeTemplate):
    """
    Returns the value of the node's first input; run_pipeline() registers it
    under the node's label.
    """

    def emit_procedure(self, node: "BoundNode", writer: CodeWriter) -> None:
        self._emit_def(node, writer)
        outputs = self.emit_body(node, writer)
        writer.writeln(f"return {outputs[RESULT_PORT]}")
        writer.pop()

    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        return {RESULT_PORT: node.first_param()}


class TextResponseTemplate(OutputTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        text = node.param("text", node.first_param())
        return {RESULT_PORT: self.text_of(text)}


class JsonExportTemplate(OutputTemplate):
    def emit_body(self, node: "BoundNode", writer: CodeWriter) -> Dict[str, str]:
        data = node.param("data", node.first_param())
        # Round-trip through JSON so the registered value is plain data.
        writer.writeln(f"_data = json.loads(json.dumps({data}, default=str))")
        return {RESULT_PORT: "_data"}


# ── Registry ──────────────────────────────────────────────────────────────────

TemplateKey = Tuple[NodeCategory, Optional[NodeKind]]

TEMPLATE_REGISTRY: Dict[TemplateKey, NodeTemplate] = {
    (NodeCategory.INPUT,          None):                          InputTemplate(),
    (NodeCategory.INPUT,          NodeKind.PDF_INPUT):            PdfInputTemplate(),
    (NodeCategory.INPUT,          NodeKind.TEXT_INPUT):           TextInputTemplate(),
    (NodeCategory.PROCESSING,     None):                          ProcessingTemplate(),
    (NodeCategory.PROCESSING,     NodeKind.PDF_TEXT_EXTRACTOR):   PdfTextExtractorTemplate(),
    (NodeCategory.PROCESSING,     NodeKind.TEXT_CHUNKER):         TextChunkerTemplate(),
    (NodeCategory.PROCESSING,     NodeKind.EMBEDDING_GENERATOR):  EmbeddingGeneratorTemplate(),
    (NodeCategory.RETRIEVAL,      None):                          RetrievalTemplate(),
    (NodeCategory.RETRIEVAL,      NodeKind.VECTOR_STORE):         VectorStoreTemplate(),
    (NodeCategory.RETRIEVAL,      NodeKind.SEMANTIC_SEARCH):      SemanticSearchTemplate(),
    (NodeCategory.LANGUAGE_MODEL, None):                          LanguageModelTemplate(),
    (NodeCategory.LANGUAGE_MODEL, NodeKind.LLM_GENERATOR):        LlmGeneratorTemplate(),
    (NodeCategory.LANGUAGE_MODEL, NodeKind.PROMPT_BUILDER):       PromptBuilderTemplate(),
    (NodeCategory.LOGIC,          None):                          LogicTemplate(),
    (NodeCategory.LOGIC,          NodeKind.CONDITIONAL_BRANCH):   ConditionalBranchTemplate(),
    (NodeCategory.LOGIC,          NodeKind.DATA_MERGER):          DataMergerTemplate(),
    (NodeCategory.OUTPUT,         None):                          OutputTemplate(),
    (NodeCategory.OUTPUT,         NodeKind.TEXT_RESPONSE):        TextResponseTemplate(),
    (NodeCategory.OUTPUT,         NodeKind.JSON_EXPORT):          JsonExportTemplate(),
}


class TemplateRegistry:
    """Strategy table: (category, kind) → NodeTemplate."""

    def __init__(self, templates: Optional[Mapping[TemplateKey, NodeTemplate]] = None):
        self._templates: Dict[TemplateKey, NodeTemplate] = dict(
            TEMPLATE_REGISTRY if templates is None else templates
        )

    def register(self, category: NodeCategory, template: NodeTemplate,
                 kind: Optional[NodeKind] = None) -> "TemplateRegistry":
        self._templates[(category, kind)] = template
        return self

    def without(self, category: NodeCategory) -> "TemplateRegistry":
        """A copy of this registry with every template for ``category`` removed."""
        return TemplateRegistry({k: v for k, v in self._templates.items() if k[0] is not category})

    def lookup(self, node: Node) -> NodeTemplate:
        template = self._templates.get((node.category, node.kind))
        if template is None:
            template = self._templates.get((node.category, None))
        if template is None:
            raise StrategyError(Diagnostic.strategy(
                f"No code generation strategy registered for node '{node.id}' "
                f"(category: {node.category.display_name})",
                node_id=node.id,
            ))
        return template

    def __contains__(self, key: Any) -> bool:
        return key in self._templates


DEFAULT_REGISTRY = TemplateRegistry()
