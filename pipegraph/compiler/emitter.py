"""
pipegraph compiler — Python Source Emitter
==========================================
Converts a validated Pipeline plus its execution order into a complete,
standalone Python source file.

Output structure
----------------
    #!/usr/bin/env python3
    \"\"\"
    Compiled pipeline: <name>
    Nodes: N
    Edges: M
    Generated at: <ISO timestamp>        ← the only non-deterministic line
    \"\"\"
    from __future__ import annotations
    import json, sys
    from typing import Any, Dict, Optional
    from pipegraph_runtime import RagPipeline   (only if a runtime category is used)

    NODE_CONFIGS = {...}                 ← every node's config, in order

    # ── Node procedures ────
    def node_<id>(...): ...             ← one per node, in order

    def run_pipeline(inputs=None):
        rag = RagPipeline.get_instance()
        <one call per node, in order>
        return {"<Output label>": <result symbol>, ...}

    if __name__ == "__main__":
        sys.exit(main())

Binding
-------
Variables are allocated in a fresh SymbolTable while walking ``order``.  An
input port is bound to the symbol of the first edge (declaration order) that
targets it; an unwired port is passed as its default (None).
"""

from __future__ import annotations

import datetime
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pipegraph.core.GraphPrimitives import Edge, Node, Pipeline
from pipegraph.core.Types import NodeCategory

from .config import CompilerConfig
from .context import RESERVED_NAMES, RESULT_PORT, BoundNode, SymbolTable, param_name
from .templates import (
    CATEGORY_DEPENDENCIES,
    RUNTIME_CATEGORIES,
    CodeWriter,
    TemplateRegistry,
    DEFAULT_REGISTRY,
    one_line,
)

logger = logging.getLogger(__name__)

TIMESTAMP_PREFIX = "Generated at: "
_TIMESTAMP_LINE = re.compile(rf"^{TIMESTAMP_PREFIX}.*$", re.MULTILINE)


@dataclass(frozen=True)
class EmitResult:
    source_text: str
    dependency_manifest: List[str]


def strip_timestamp(source: str) -> str:
    """Blank out the header timestamp so two emissions can be compared."""
    return _TIMESTAMP_LINE.sub(f"{TIMESTAMP_PREFIX}<timestamp>", source, count=1)


# ── Literals ──────────────────────────────────────────────────────────────────

def _literal(value: Any) -> str:
    """Python literal for a config value.  Unknown objects become strings."""
    if value is None or isinstance(value, (bool, int, str)):
        return repr(value)
    if isinstance(value, float):
        return repr(value) if math.isfinite(value) else repr(str(value))
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_literal(v) for v in value) + "]"
    if isinstance(value, dict) or hasattr(value, "items"):
        return "{" + ", ".join(f"{_literal(str(k))}: {_literal(v)}" for k, v in value.items()) + "}"
    return repr(str(value))


def _docstring_text(text: str) -> str:
    return one_line(text).replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


# ── File sections ─────────────────────────────────────────────────────────────

def _header(pipeline: Pipeline, timestamp: str) -> List[str]:
    lines = [
        "#!/usr/bin/env python3",
        '"""',
        f"Compiled pipeline: {_docstring_text(pipeline.name)}",
        f"Nodes: {len(pipeline.nodes)}",
        f"Edges: {len(pipeline.edges)}",
        f"{TIMESTAMP_PREFIX}{timestamp}",
    ]
    if pipeline.description:
        lines += ["", _docstring_text(pipeline.description)]
    lines += [
        "",
        "This file was produced by pipegraph.compiler.",
        "Do not edit by hand - re-run compile_pipeline() to regenerate.",
        '"""',
    ]
    return lines


def _imports(uses_runtime: bool, config: CompilerConfig) -> List[str]:
    lines = [
        "from __future__ import annotations",
        "",
        "import json",
        "import sys",
        "from typing import Any, Dict, Optional",
    ]
    if uses_runtime:
        lines += ["", f"from {config.runtime_module} import {config.runtime_class}"]
    return lines


def _node_configs(bound: Sequence[BoundNode]) -> List[str]:
    lines = ["NODE_CONFIGS: Dict[str, Dict[str, Any]] = {"]
    for b in bound:
        lines.append(f"    {b.id!r}: {_literal(b.node.config)},")
    lines.append("}")
    return lines


def _run_function(bound: Sequence[BoundNode], registry: TemplateRegistry,
                  uses_runtime: bool, config: CompilerConfig) -> List[str]:
    w = CodeWriter()
    w.writeln("def run_pipeline(inputs: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:")
    w.push()
    w.writeln('"""Run every node in dependency order and return the results by output label."""')
    w.writeln("inputs = dict(inputs or {})")
    if uses_runtime:
        w.writeln(f"rag = {config.runtime_class}.get_instance()")

    for b in bound:
        w.blank()
        registry.lookup(b.node).emit_call(b, w)

    results = [b for b in bound if b.result_var is not None]
    w.blank()
    if results:
        w.writeln("return {")
        w.push()
        for b in results:
            w.writeln(f"{b.label!r}: {b.result_var},")
        w.pop()
        w.writeln("}")
    else:
        w.writeln("return {}")
    return w.lines()


def _entrypoint() -> List[str]:
    return [
        "def main(argv=None) -> int:",
        "    argv = sys.argv[1:] if argv is None else argv",
        "    inputs = json.loads(argv[0]) if argv else {}",
        "    print(json.dumps(run_pipeline(inputs), indent=2, default=str))",
        "    return 0",
        "",
        "",
        'if __name__ == "__main__":',
        "    sys.exit(main())",
    ]


# ── Binding ───────────────────────────────────────────────────────────────────

def _first_edges(edges: Sequence[Edge]) -> Dict[Tuple[str, str], Edge]:
    """(target node, target port) → the first edge in declaration order feeding it."""
    first: Dict[Tuple[str, str], Edge] = {}
    for edge in edges:
        first.setdefault((edge.target_node_id, edge.target_port_id), edge)
    return first


def _bind(node: Node, symbols: SymbolTable, incoming: Dict[Tuple[str, str], Edge]) -> BoundNode:
    bound = BoundNode(node=node, function_name=symbols.allocate(f"node_{node.id}"))

    taken: set = set()
    for port in node.inputs:
        bound.params[port.id] = param_name(port.id, taken)
        edge = incoming.get((node.id, port.id))
        bound.input_vars[port.id] = (
            symbols.resolve(edge.source_node_id, edge.source_port_id) if edge else None
        )

    if node.category is NodeCategory.OUTPUT:
        bound.result_var = symbols.define(node.id, RESULT_PORT)
        for port in node.outputs:
            bound.output_vars[port.id] = symbols.define(node.id, port.id, name=bound.result_var)
    else:
        for port in node.outputs:
            bound.output_vars[port.id] = symbols.define(node.id, port.id)

    logger.debug(f"Bound {node.id}: in={bound.input_vars} out={bound.output_vars}")
    return bound


# ── Public API ────────────────────────────────────────────────────────────────

def emit(
    pipeline: Pipeline,
    order: Sequence[str],
    *,
    registry: Optional[TemplateRegistry] = None,
    timestamp: Union[datetime.datetime, str, None] = None,
    config: Optional[CompilerConfig] = None,
) -> EmitResult:
    """
    Generate the Python source for ``pipeline`` executed in ``order``.

    Args:
        pipeline:  A pipeline that passed validation.
        order:     Every node id exactly once, as returned by ``schedule``.
        registry:  Strategy table; defaults to the built-in templates.
        timestamp: Value for the ``Generated at:`` header line.  Defaults to now (UTC).
        config:    Runtime import names.

    Raises:
        StrategyError:          a node has no registered strategy.
        UnresolvedSymbolError:  ``order`` puts a consumer before its supplier.
        ValueError:             ``order`` is not a permutation of the node ids.
    """
    registry = registry or DEFAULT_REGISTRY
    config = config or CompilerConfig()
    nodes = pipeline.node_map()

    if sorted(order) != sorted(nodes):
        raise ValueError("order must list every node id of the pipeline exactly once")

    if timestamp is None:
        timestamp = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
    if isinstance(timestamp, datetime.datetime):
        timestamp = timestamp.isoformat()

    # Resolve every strategy up front so a missing one fails before any output.
    templates = [(nodes[nid], registry.lookup(nodes[nid])) for nid in order]

    symbols = SymbolTable(RESERVED_NAMES | {config.runtime_class, config.runtime_module.split(".")[0]})
    incoming = _first_edges(pipeline.edges)
    bound = [_bind(node, symbols, incoming) for node, _ in templates]

    categories = {node.category for node, _ in templates}
    uses_runtime = bool(categories & RUNTIME_CATEGORIES)

    procedures = CodeWriter()
    for b, (_, template) in zip(bound, templates):
        template.emit_procedure(b, procedures)
        procedures.blank()
        procedures.blank()

    sections = [
        _header(pipeline, str(timestamp)),
        _imports(uses_runtime, config),
        ["", ""] + _node_configs(bound),
        ["", "", "# ── Node procedures " + "─" * 59, ""] + procedures.lines(),
        _run_function(bound, registry, uses_runtime, config),
        ["", ""] + _entrypoint(),
    ]
    source = "\n".join(line for section in sections for line in section) + "\n"

    manifest = sorted({dep for c in categories for dep in CATEGORY_DEPENDENCIES.get(c, ())})
    logger.debug(f"Emitted '{pipeline.name}': {len(bound)} procedures, "
                 f"{len(symbols)} symbols, manifest={manifest}")
    return EmitResult(source_text=source, dependency_manifest=manifest)


__all__ = ["EmitResult", "TIMESTAMP_PREFIX", "emit", "strip_timestamp"]
