"""
pipegraph compiler — Compilation Context
========================================
Per-compilation state shared between the emitter and the node templates.

SymbolTable
-----------
Maps a ``(node_id, port_id)`` binding key to the Python variable that holds
that port's value inside the generated ``run_pipeline()``:

    ("text-chunker-1", "chunks")  →  text_chunker_1_chunks

The table is created fresh for every ``emit()`` call and filled strictly in
scheduler order, so a node can only resolve symbols its suppliers already
defined.  Resolving anything else is an internal error.

Identifiers
-----------
Node ids and port ids are free text in the editor.  ``safe_identifier``
lower-cases them and replaces anything that isn't a word character:

    "pdf-input-1"  →  pdf_input_1
    "2nd pass"     →  n_2nd_pass
    "class"        →  class_

Collisions after sanitising get a numeric suffix (``_2``, ``_3`` ...), handed
out in scheduler order so the output stays deterministic.
"""

from __future__ import annotations

import builtins
import keyword
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set, Tuple

from pipegraph.core.GraphPrimitives import Node

from .diagnostics import Diagnostic, UnresolvedSymbolError

# Names the generated module defines or imports at top level / inside run_pipeline(),
# plus the builtins its code calls (str, len, dict ...).
RESERVED_NAMES: frozenset = frozenset({
    "annotations", "json", "sys", "Any", "Dict", "Optional",
    "NODE_CONFIGS", "run_pipeline", "inputs", "config", "rag", "main",
}) | frozenset(dir(builtins))

# Key under which an Output node's registered value is bound.
RESULT_PORT = "__result__"

BindingKey = Tuple[str, str]


def safe_identifier(text: str) -> str:
    """Convert free text to a Python identifier fragment."""
    ident = re.sub(r"\W+", "_", str(text).strip().lower()).strip("_")
    if not ident:
        ident = "n"
    if ident[0].isdigit():
        ident = f"n_{ident}"
    if keyword.iskeyword(ident):
        ident = f"{ident}_"
    return ident


class SymbolTable:
    def __init__(self, reserved: Iterable[str] = RESERVED_NAMES):
        self._symbols: Dict[BindingKey, str] = {}
        self._taken: Set[str] = set(reserved).union(dir(builtins))

    # ── Name allocation ───────────────────────────────────────────────────

    def allocate(self, hint: str) -> str:
        """Reserve and return a unique identifier based on ``hint``."""
        base = safe_identifier(hint)
        name, n = base, 1
        while name in self._taken:
            n += 1
            name = f"{base}_{n}"
        self._taken.add(name)
        return name

    # ── Bindings ──────────────────────────────────────────────────────────

    def define(self, node_id: str, port_id: str, name: Optional[str] = None) -> str:
        """
        Bind ``(node_id, port_id)`` to a variable.  Allocates a fresh name
        unless ``name`` (an already-allocated variable) is given, which lets
        several keys alias one variable.
        """
        key = (node_id, port_id)
        if key in self._symbols:
            raise ValueError(f"Symbol for {node_id}.{port_id} is already defined")
        if name is None:
            hint = f"{node_id}_result" if port_id == RESULT_PORT else f"{node_id}_{port_id}"
            name = self.allocate(hint)
        self._symbols[key] = name
        return name

    def resolve(self, node_id: str, port_id: str) -> str:
        try:
            return self._symbols[(node_id, port_id)]
        except KeyError:
            raise UnresolvedSymbolError(Diagnostic.strategy(
                f"Symbol for {node_id}.{port_id} referenced before it was defined",
                node_id=node_id,
            )) from None

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, key: BindingKey) -> bool:
        return key in self._symbols


# ── Bound node (resolved reference) ─────────────────────────────────────────

@dataclass
class BoundNode:
    """A node together with every name the templates need to emit it."""
    node: Node
    function_name: str

    # input port id → parameter name inside the node's procedure
    params: Dict[str, str] = field(default_factory=dict)

    # input port id → run_pipeline() variable feeding it (None when unwired)
    input_vars: Dict[str, Optional[str]] = field(default_factory=dict)

    # output port id → run_pipeline() variable receiving it
    output_vars: Dict[str, str] = field(default_factory=dict)

    # Output nodes only: variable holding the registered result
    result_var: Optional[str] = None

    @property
    def id(self) -> str:
        return self.node.id

    @property
    def label(self) -> str:
        return self.node.label

    def param(self, port_id: str, default: str = "None") -> str:
        """Parameter name for ``port_id``, or ``default`` if the port isn't declared."""
        return self.params.get(port_id, default)

    def first_param(self, default: str = "None") -> str:
        return next(iter(self.params.values()), default)


def param_name(port_id: str, taken: Set[str]) -> str:
    """Procedure parameter for an input port; never shadows a reserved name or builtin."""
    base = safe_identifier(port_id)
    name, n = base, 1
    while name in taken or name in RESERVED_NAMES:
        n += 1
        name = f"{base}_{n}"
    taken.add(name)
    return name


__all__ = [
    "BoundNode",
    "RESERVED_NAMES",
    "RESULT_PORT",
    "SymbolTable",
    "param_name",
    "safe_identifier",
]
