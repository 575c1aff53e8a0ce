"""
pipegraph compiler — Diagnostics
================================
Every problem the compiler can report is a ``Diagnostic``.

    ┌────────────────┬──────────────────────────────────────────┬────────────┐
    │ kind           │ raised by                                │ collected? │
    ├────────────────┼──────────────────────────────────────────┼────────────┤
    │ StructuralError│ validator: missing input / output node   │ yes        │
    │ ReferenceError │ validator: edge points nowhere           │ yes        │
    │ TypeError      │ validator: incompatible port data types  │ yes        │
    │ CycleError     │ scheduler: dependency cycle              │ no, aborts │
    │ StrategyError  │ emitter: no template for a node category │ no, aborts │
    └────────────────┴──────────────────────────────────────────┴────────────┘

Validator-level diagnostics are returned as a list. The scheduler and emitter
discover their problems one at a time and raise a ``CompilationError``
subclass that carries the diagnostic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DiagnosticKind(Enum):
    STRUCTURAL = "StructuralError"
    REFERENCE = "ReferenceError"
    TYPE = "TypeError"
    CYCLE = "CycleError"
    STRATEGY = "StrategyError"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    # ── Constructors ──────────────────────────────────────────────────────

    @classmethod
    def structural(cls, message: str) -> "Diagnostic":
        return cls(DiagnosticKind.STRUCTURAL, message)

    @classmethod
    def reference(cls, message: str, edge_id: str) -> "Diagnostic":
        return cls(DiagnosticKind.REFERENCE, message, edge_id=edge_id)

    @classmethod
    def type_mismatch(cls, message: str, edge_id: str) -> "Diagnostic":
        return cls(DiagnosticKind.TYPE, message, edge_id=edge_id)

    @classmethod
    def cycle(cls, message: str, node_id: Optional[str] = None) -> "Diagnostic":
        return cls(DiagnosticKind.CYCLE, message, node_id=node_id)

    @classmethod
    def strategy(cls, message: str, node_id: str) -> "Diagnostic":
        return cls(DiagnosticKind.STRATEGY, message, node_id=node_id)


# ── Exceptions ────────────────────────────────────────────────────────────────

class CompilationError(Exception):
    """Base class for errors that abort a compilation."""

    def __init__(self, diagnostic: Diagnostic):
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic


class CycleError(CompilationError):
    """Raised by the scheduler when the pipeline's edges form a cycle."""


class StrategyError(CompilationError):
    """Raised by the emitter when a node category has no generation routine."""


class UnresolvedSymbolError(CompilationError):
    """Raised when a node reads a symbol its dependencies never defined."""


__all__ = [
    "CompilationError",
    "CycleError",
    "Diagnostic",
    "DiagnosticKind",
    "StrategyError",
    "UnresolvedSymbolError",
]
