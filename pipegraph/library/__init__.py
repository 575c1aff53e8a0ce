"""
pipegraph library
=================
Node palette (``nodes``) and pre-built pipelines (``pipelines``).
"""

from .nodes import NODE_TEMPLATES, NodeSpec, instantiate
from .pipelines import PIPELINE_TEMPLATES

__all__ = ["NODE_TEMPLATES", "NodeSpec", "PIPELINE_TEMPLATES", "instantiate"]
