"""Collaborator proxy endpoints.

Thin pass-throughs to the Figma REST API, the completion service and the
local artifact store. Errors are returned as {"error": "..."} bodies so
browser clients can show them directly.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from figma_builder import config
from figma_builder.integrations.completion_client import (
    CompletionClient,
    CompletionClientError,
    list_models,
)
from figma_builder.integrations.figma_client import FigmaClient, FigmaClientError
from figma_builder.pipeline.errors import ValidationError
from figma_builder.pipeline.storage import save_component
from figma_builder.pipeline.url_parser import parse_figma_url

from app.routes.builder_schemas import (
    FigmaFetchRequest,
    FigmaImagesRequest,
    GenerateCodeRequest,
    SaveComponentRequest,
)

logger = logging.getLogger("figma_builder.routes.figma")

router = APIRouter(prefix="/api", tags=["proxy"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _figma_error(e: FigmaClientError) -> JSONResponse:
    logger.warning(f"Figma proxy error: {e}")
    return _error(f"Figma API error: {e}", e.status_code or 500)


@router.post("/figma")
async def fetch_figma(payload: FigmaFetchRequest):
    """Fetch a whole file, or a node batch when nodeIds is non-empty.

    A url that parses takes precedence over fileKey.
    """
    file_key = payload.file_key
    if payload.url:
        parsed = parse_figma_url(payload.url)
        if parsed is not None:
            file_key = parsed.file_id

    if not file_key:
        return _error("Invalid Figma URL or missing fileKey", 400)
    if not config.FIGMA_TOKEN:
        return _error("Missing FIGMA_TOKEN", 500)

    client = FigmaClient(token=config.FIGMA_TOKEN)
    try:
        if payload.node_ids:
            return await client.get_file_nodes(file_key, payload.node_ids)
        return await client.get_file(file_key)
    except FigmaClientError as e:
        return _figma_error(e)
    finally:
        await client.close()


@router.post("/figma-images")
async def fetch_figma_images(payload: FigmaImagesRequest):
    """Render SVG previews; returns the node id → image URL map."""
    if not payload.file_key or not payload.node_ids:
        return _error("Missing fileKey or nodeIds", 400)
    if not config.FIGMA_TOKEN:
        return _error("Missing FIGMA_TOKEN", 500)

    client = FigmaClient(token=config.FIGMA_TOKEN)
    try:
        return await client.get_node_images(payload.file_key, payload.node_ids)
    except FigmaClientError as e:
        return _figma_error(e)
    finally:
        await client.close()


@router.post("/generate-code")
async def generate_code(payload: GenerateCodeRequest):
    """Generate component code for one node sub-document."""
    if not payload.figma_json:
        return _error("Missing figmaJson", 400)
    if not config.HF_TOKEN:
        return _error("Missing HF_TOKEN", 500)

    client = CompletionClient(token=config.HF_TOKEN)
    try:
        code = await client.generate_code(payload.figma_json, model=payload.model)
    except CompletionClientError as e:
        logger.error(f"generate-code failed: {e}")
        return _error(f"Code generation failed: {e}", 500)
    finally:
        await client.close()
    return {"code": code}


@router.get("/models")
async def get_models():
    """List selectable models; falls back to a fixed list, never fails."""
    models = await list_models(token=config.HF_TOKEN or None)
    return {"models": models}


@router.post("/save-component")
async def save_component_file(payload: SaveComponentRequest):
    """Write one component to GENERATED_DIR/<projectName>/<componentName>.tsx."""
    try:
        save_component(
            payload.project_name or "",
            payload.component_name or "",
            payload.code or "",
        )
    except ValidationError as e:
        return _error(e.message, 400)
    except OSError as e:
        logger.error(f"save-component failed: {e}")
        return _error("Component save failed", 500)
    return {"message": "Component saved"}
