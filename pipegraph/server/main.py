"""
Python FastAPI server — compile endpoint for the pipeline editor.

Start with:
    python -m pipegraph.server.main

Or via uvicorn directly:
    uvicorn pipegraph.server.main:app --port 3001 --reload

Environment (a .env file in the working directory is loaded first):
    PIPEGRAPH_CORS_ORIGINS   comma-separated origins allowed to call the API (*)
    PIPEGRAPH_HOST           bind address when run as a script (0.0.0.0)
    PIPEGRAPH_PORT           port when run as a script (3001)
"""
from __future__ import annotations

import logging
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pipegraph.server.routes.compile_routes import router

logger = logging.getLogger(__name__)


def _cors_origins() -> List[str]:
    raw = os.environ.get("PIPEGRAPH_CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


# ── Application ───────────────────────────────────────────────────────────────

app = FastAPI(title="pipegraph API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": app.version}


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    host = os.environ.get("PIPEGRAPH_HOST", "0.0.0.0")
    port = int(os.environ.get("PIPEGRAPH_PORT", "3001"))
    logger.info(f"Serving pipegraph API on {host}:{port}")
    uvicorn.run("pipegraph.server.main:app", host=host, port=port, reload=True)
