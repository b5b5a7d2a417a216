"""FastAPI Application Entry Point.

Configures the app, lifespan, CORS, and includes all route modules.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from figma_builder import config
from figma_builder.logging_config import configure_logging

from .sessions import get_session_registry

configure_logging()
logger = logging.getLogger("figma_builder.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn about missing credentials; drop all sessions on shutdown."""
    if not config.FIGMA_TOKEN:
        logger.warning(
            "FIGMA_TOKEN not set; loading files and generating components will fail. "
            "Set FIGMA_TOKEN in the environment to enable Figma integration."
        )
    if not config.HF_TOKEN:
        logger.warning(
            "HF_TOKEN not set; code generation will fail and /api/models "
            "will serve the fallback list."
        )

    yield
    get_session_registry().clear()


app = FastAPI(title="Figma Component Builder API", version="1.0.0", lifespan=lifespan)

# CORS configuration: configurable via CORS_ORIGINS env var (comma-separated)
CORS_ORIGINS = [o.strip() for o in config.CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Include routers
from .routes.builder import router as builder_router  # noqa: E402
from .routes.figma import router as figma_router  # noqa: E402

app.include_router(builder_router)
app.include_router(figma_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "ok"}
