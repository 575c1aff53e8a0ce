"""
pipegraph compiler
==================
Compiles a Pipeline (typed nodes + typed edges) into a standalone Python
source file.

Pipeline:
    Pipeline         →  [validator]  →  diagnostics   (any → REJECTED)
    Pipeline         →  [scheduler]  →  order         (cycle → REJECTED)
    Pipeline, order  →  [emitter]    →  source text   (no strategy → REJECTED)

States:
    BUILT → VALIDATED → SCHEDULED → EMITTED
      └──────────┴───────────┴──────→ REJECTED

Public API
----------
    from pipegraph.compiler import compile_pipeline

    result = compile_pipeline(pipeline)
    if result.success:
        with open("output.py", "w") as f:
            f.write(result.source_text)
    else:
        for error in result.errors:
            print(error)
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pipegraph.core.Compatibility import CompatibilityMatrix
from pipegraph.core.GraphPrimitives import Pipeline

from .config import CompilerConfig
from .diagnostics import CycleError, Diagnostic, StrategyError
from .emitter import emit, strip_timestamp
from .scheduler import schedule
from .templates import TemplateRegistry
from .validator import validate
from .warnings import collect_warnings

logger = logging.getLogger(__name__)


class CompilationState(Enum):
    BUILT = "built"
    VALIDATED = "validated"
    SCHEDULED = "scheduled"
    EMITTED = "emitted"
    REJECTED = "rejected"


@dataclass
class CompilationResult:
    state: CompilationState
    source_text: Optional[str] = None
    dependency_manifest: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    order: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state is CompilationState.EMITTED

    @property
    def errors(self) -> List[str]:
        return [str(d) for d in self.diagnostics]

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape: success and failure carry different keys."""
        if self.success:
            return {
                "sourceText": self.source_text,
                "dependencyManifest": list(self.dependency_manifest),
                "warnings": list(self.warnings),
            }
        return {"errors": self.errors, "warnings": list(self.warnings)}


def _reject(pipeline: Pipeline, diagnostics: List[Diagnostic], warnings: List[str]) -> CompilationResult:
    for d in diagnostics:
        logger.error(f"'{pipeline.name}': {d}")
    logger.info(f"'{pipeline.name}': REJECTED with {len(diagnostics)} error(s)")
    return CompilationResult(CompilationState.REJECTED, diagnostics=list(diagnostics), warnings=warnings)


def compile_pipeline(
    pipeline: Pipeline,
    *,
    config: Optional[CompilerConfig] = None,
    matrix: Optional[CompatibilityMatrix] = None,
    registry: Optional[TemplateRegistry] = None,
    timestamp: Union[datetime.datetime, str, None] = None,
) -> CompilationResult:
    """
    Compile ``pipeline`` into standalone Python source.

    Never raises for problems in the pipeline itself; those come back as a
    REJECTED result carrying every diagnostic.  The pipeline is not modified.

    Args:
        pipeline:  The pipeline to compile.
        config:    Compiler knobs (complexity threshold, runtime import names).
        matrix:    Compatibility relation; defaults to the built-in one.
        registry:  Code-generation strategies; defaults to the built-in ones.
        timestamp: Value for the generated header's ``Generated at:`` line.

    Returns:
        A CompilationResult in state EMITTED or REJECTED.
    """
    config = config or CompilerConfig()
    logger.info(f"'{pipeline.name}': BUILT ({len(pipeline.nodes)} nodes, {len(pipeline.edges)} edges)")
    warnings = collect_warnings(pipeline, config)

    diagnostics = validate(pipeline, matrix)
    if diagnostics:
        return _reject(pipeline, diagnostics, warnings)
    logger.info(f"'{pipeline.name}': VALIDATED")

    try:
        order = schedule(pipeline)
        logger.info(f"'{pipeline.name}': SCHEDULED")
        emitted = emit(pipeline, order, registry=registry, timestamp=timestamp, config=config)
    except (CycleError, StrategyError) as exc:
        return _reject(pipeline, [exc.diagnostic], warnings)

    logger.info(f"'{pipeline.name}': EMITTED ({len(emitted.source_text.splitlines())} lines)")
    return CompilationResult(
        CompilationState.EMITTED,
        source_text=emitted.source_text,
        dependency_manifest=emitted.dependency_manifest,
        warnings=warnings,
        order=order,
    )


__all__ = [
    "CompilationResult",
    "CompilationState",
    "CompilerConfig",
    "compile_pipeline",
    "strip_timestamp",
]
