"""
Compile REST routes — the editor's "generate code" backend.

All routes are mounted under /api by main.py.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pipegraph.compiler import CompilerConfig, compile_pipeline
from pipegraph.compiler.deserialiser import pipeline_from_dict, pipeline_to_dict
from pipegraph.compiler.schema import SchemaError
from pipegraph.core.Compatibility import DEFAULT_MATRIX
from pipegraph.library.nodes import NODE_TEMPLATES
from pipegraph.library.pipelines import PIPELINE_TEMPLATES

logger = logging.getLogger(__name__)

router = APIRouter()


def get_config() -> CompilerConfig:
    try:
        return CompilerConfig.from_env()
    except ValueError as exc:
        logger.error(f"Invalid compiler configuration: {exc}")
        raise HTTPException(status_code=500, detail=f"Invalid compiler configuration: {exc}")


# ── GET /templates ────────────────────────────────────────────────────────────

class TemplateSummary(BaseModel):
    key: str
    name: str
    description: str
    nodeCount: int
    edgeCount: int


@router.get("/templates", response_model=List[TemplateSummary])
async def list_templates() -> List[TemplateSummary]:
    return [
        TemplateSummary(
            key=key,
            name=p.name,
            description=p.description,
            nodeCount=len(p.nodes),
            edgeCount=len(p.edges),
        )
        for key, p in PIPELINE_TEMPLATES.items()
    ]


# ── GET /templates/:key ───────────────────────────────────────────────────────

@router.get("/templates/{key}")
async def get_template(key: str) -> Dict[str, Any]:
    pipeline = PIPELINE_TEMPLATES.get(key)
    if pipeline is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return pipeline_to_dict(pipeline)


# ── GET /node-templates ───────────────────────────────────────────────────────

@router.get("/node-templates")
async def list_node_templates() -> List[Dict[str, Any]]:
    return [spec.to_dict() for spec in NODE_TEMPLATES.values()]


# ── GET /compatibility ────────────────────────────────────────────────────────

@router.get("/compatibility")
async def compatibility() -> Dict[str, List[str]]:
    """Source data type → target types it may feed, besides itself."""
    return DEFAULT_MATRIX.as_dict()


# ── POST /compile ─────────────────────────────────────────────────────────────

@router.post("/compile")
async def compile_route(
    body: Dict[str, Any] = Body(...),
    threshold: Optional[int] = Query(None, ge=0),
    config: CompilerConfig = Depends(get_config),
) -> JSONResponse:
    try:
        pipeline = pipeline_from_dict(body)
    except SchemaError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if threshold is not None:
        config = dataclasses.replace(config, complexity_threshold=threshold)

    result = compile_pipeline(pipeline, config=config)
    logger.info(f"POST /compile '{pipeline.name}' → {result.state.value}")
    return JSONResponse(status_code=200 if result.success else 422, content=result.to_dict())
