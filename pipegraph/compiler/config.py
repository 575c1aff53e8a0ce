"""
pipegraph compiler — Configuration
==================================
Knobs that change compiler output without changing the pipeline.

Values come from keyword arguments or, via ``CompilerConfig.from_env()``,
from environment variables (entry points load a ``.env`` file first):

    PIPEGRAPH_COMPLEXITY_THRESHOLD   processing-node count above which a
                                     complexity warning is produced (10)
    PIPEGRAPH_RUNTIME_MODULE         module the generated code imports
                                     its runtime facade from
    PIPEGRAPH_RUNTIME_CLASS          name of that facade class
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_COMPLEXITY_THRESHOLD = 10
DEFAULT_RUNTIME_MODULE = "pipegraph_runtime"
DEFAULT_RUNTIME_CLASS = "RagPipeline"


@dataclass(frozen=True)
class CompilerConfig:
    complexity_threshold: int = DEFAULT_COMPLEXITY_THRESHOLD
    runtime_module: str = DEFAULT_RUNTIME_MODULE
    runtime_class: str = DEFAULT_RUNTIME_CLASS

    def __post_init__(self):
        if self.complexity_threshold < 0:
            raise ValueError("complexity_threshold must be >= 0")
        if not all(part.isidentifier() for part in self.runtime_module.split(".")):
            raise ValueError(f"runtime_module must be a dotted Python identifier, got {self.runtime_module!r}")
        if not self.runtime_class.isidentifier():
            raise ValueError(f"runtime_class must be a Python identifier, got {self.runtime_class!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CompilerConfig":
        """Build a config from ``PIPEGRAPH_*`` variables.  Raises ValueError on bad values."""
        env = os.environ if environ is None else environ
        threshold = env.get("PIPEGRAPH_COMPLEXITY_THRESHOLD")
        try:
            complexity_threshold = int(threshold) if threshold else DEFAULT_COMPLEXITY_THRESHOLD
        except ValueError:
            raise ValueError(
                f"PIPEGRAPH_COMPLEXITY_THRESHOLD must be an integer, got {threshold!r}"
            ) from None
        return cls(
            complexity_threshold=complexity_threshold,
            runtime_module=env.get("PIPEGRAPH_RUNTIME_MODULE") or DEFAULT_RUNTIME_MODULE,
            runtime_class=env.get("PIPEGRAPH_RUNTIME_CLASS") or DEFAULT_RUNTIME_CLASS,
        )


__all__ = ["CompilerConfig", "DEFAULT_COMPLEXITY_THRESHOLD"]
