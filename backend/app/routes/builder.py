"""Builder session API endpoints.

One session per user context: point it at a Figma URL, load the node
catalogue, pick nodes, generate components, then download or save them.

Status transitions are streamed over SSE via EventBus:
  GET /api/builder/sessions/{session_id}/stream
"""

from __future__ import annotations

import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response, StreamingResponse

from figma_builder import config
from figma_builder.integrations.completion_client import CompletionClient, CompletionClientError
from figma_builder.integrations.figma_client import FigmaClient, FigmaClientError
from figma_builder.pipeline import packager
from figma_builder.pipeline.errors import (
    PipelineBusyError,
    PipelineError,
    RunCancelledError,
    UpstreamError,
)
from figma_builder.pipeline.session import BuilderSession

from app.event_bus import format_sse, subscribe_events
from app.routes.builder_schemas import (
    CancelResponse,
    GenerateRequest,
    GenerateResponse,
    ModelRequest,
    ProjectNameRequest,
    SaveResponse,
    SelectionResponse,
    SessionCreateRequest,
    SessionState,
    SetUrlRequest,
    SetUrlResponse,
    ToggleRequest,
    ToggleResponse,
)
from app.sessions import get_session_registry

logger = logging.getLogger("figma_builder.routes.builder")

router = APIRouter(prefix="/api/builder/sessions", tags=["builder"])


# --- Helpers ---


def _get_session(session_id: str) -> BuilderSession:
    session = get_session_registry().get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return session


def _raise_http(error: PipelineError) -> NoReturn:
    """Map a pipeline error onto an HTTP status code."""
    if isinstance(error, (PipelineBusyError, RunCancelledError)):
        status_code = 409
    elif isinstance(error, UpstreamError):
        status_code = 502
    else:
        status_code = 400
    raise HTTPException(status_code=status_code, detail=error.message) from error


def _figma_client() -> FigmaClient:
    if not config.FIGMA_TOKEN:
        raise HTTPException(
            status_code=500,
            detail=(
                "Figma integration not configured. "
                "Set FIGMA_TOKEN environment variable with a valid Figma Personal Access Token."
            ),
        )
    try:
        return FigmaClient(token=config.FIGMA_TOKEN)
    except FigmaClientError as e:
        raise HTTPException(status_code=500, detail=str(e))


def _completion_client() -> CompletionClient:
    if not config.HF_TOKEN:
        raise HTTPException(
            status_code=500,
            detail="Code generation not configured. Set HF_TOKEN environment variable.",
        )
    try:
        return CompletionClient(token=config.HF_TOKEN)
    except CompletionClientError as e:
        raise HTTPException(status_code=500, detail=str(e))


def _state(session: BuilderSession) -> SessionState:
    return SessionState(**session.to_dict())


# --- Session lifecycle ---


@router.post("", response_model=SessionState, status_code=201)
async def create_session(payload: Optional[SessionCreateRequest] = None):
    """Create a builder session, optionally pointed at a Figma URL."""
    payload = payload or SessionCreateRequest()
    session = get_session_registry().create(
        project_name=payload.project_name, model=payload.model,
    )
    if payload.url:
        session.set_url(payload.url)
    return _state(session)


@router.get("/{session_id}", response_model=SessionState)
async def get_session_state(session_id: str):
    return _state(_get_session(session_id))


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str):
    """Delete a session; an in-flight run is cancelled and its stream closed."""
    if not get_session_registry().delete(session_id):
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return Response(status_code=204)


# --- Configuration ---


@router.put("/{session_id}/url", response_model=SetUrlResponse)
async def set_session_url(session_id: str, payload: SetUrlRequest):
    """Point the session at a new URL.

    Always accepted: an unparseable URL yields valid=false and disables
    loading. Catalogue, thumbnails, selection and generated artifacts from
    the previous URL are discarded.
    """
    session = _get_session(session_id)
    parsed = session.set_url(payload.url)
    if parsed is None:
        return SetUrlResponse(valid=False)
    return SetUrlResponse(
        valid=True,
        parsed={"file_id": parsed.file_id, "target_node_id": parsed.target_node_id},
    )


@router.put("/{session_id}/project", response_model=SessionState)
async def set_session_project(session_id: str, payload: ProjectNameRequest):
    session = _get_session(session_id)
    session.project_name = payload.project_name
    return _state(session)


@router.put("/{session_id}/model", response_model=SessionState)
async def set_session_model(session_id: str, payload: ModelRequest):
    session = _get_session(session_id)
    session.model = payload.model
    return _state(session)


# --- Load ---


@router.post("/{session_id}/load", response_model=SessionState)
async def load_session_file(session_id: str):
    """Fetch the Figma file, build the catalogue and correlate thumbnails.

    Requires FIGMA_TOKEN environment variable.
    """
    session = _get_session(session_id)
    if session.parsed is None:
        raise HTTPException(status_code=400, detail="Invalid Figma URL")

    figma = _figma_client()
    try:
        await session.load_file(figma)
    except PipelineError as e:
        _raise_http(e)
    finally:
        await figma.close()
    return _state(session)


# --- Selection ---


@router.post("/{session_id}/selection/toggle", response_model=ToggleResponse)
async def toggle_selection(session_id: str, payload: ToggleRequest):
    session = _get_session(session_id)
    selected = session.toggle(payload.node_id)
    return ToggleResponse(
        node_id=payload.node_id,
        selected=selected,
        selected_ids=session.selection.ordered(),
    )


@router.post("/{session_id}/selection/all", response_model=SelectionResponse)
async def select_all(session_id: str):
    session = _get_session(session_id)
    session.select_all()
    return SelectionResponse(selected_ids=session.selection.ordered())


@router.delete("/{session_id}/selection", response_model=SelectionResponse)
async def clear_selection(session_id: str):
    session = _get_session(session_id)
    session.clear_selection()
    return SelectionResponse(selected_ids=[])


# --- Generate ---


@router.post("/{session_id}/generate", response_model=GenerateResponse)
async def generate_components(session_id: str, payload: Optional[GenerateRequest] = None):
    """Generate one component per selected node.

    Requires FIGMA_TOKEN and HF_TOKEN environment variables.

    SSE events (GET /{session_id}/stream):
      - status: every status transition ("Generating Button (1/3)...")
      - run_done: the run finished (successfully or not)
    """
    payload = payload or GenerateRequest()
    session = _get_session(session_id)
    if session.parsed is None or len(session.selection) == 0:
        raise HTTPException(status_code=400, detail="No components selected")

    figma = _figma_client()
    try:
        completion = _completion_client()
    except HTTPException:
        await figma.close()
        raise

    try:
        result = await session.generate(
            figma,
            completion,
            failure_policy=payload.failure_policy,
            concurrency=payload.concurrency,
        )
    except PipelineError as e:
        _raise_http(e)
    finally:
        await figma.close()
        await completion.close()

    return GenerateResponse(status=session.status, **result.to_dict())


@router.post("/{session_id}/cancel", response_model=CancelResponse)
async def cancel_run(session_id: str):
    """Cancel the in-flight load/generate run; it will not write its results."""
    session = _get_session(session_id)
    return CancelResponse(cancelled=session.cancel())


# --- Output ---


@router.get("/{session_id}/archive")
async def download_archive(session_id: str):
    """Download every generated artifact as <project>.zip."""
    session = _get_session(session_id)
    if not session.generated:
        raise HTTPException(status_code=400, detail="Nothing generated yet")

    return Response(
        content=session.archive(),
        media_type=packager.ARCHIVE_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{session.archive_file_name()}"',
        },
    )


@router.get("/{session_id}/artifacts/{name}")
async def download_artifact(session_id: str, name: str):
    """Download one generated artifact as plain text."""
    session = _get_session(session_id)
    artifact = session.get_artifact(name)
    if artifact is None:
        raise HTTPException(status_code=404, detail=f"Artifact '{name}' not found")

    return Response(
        content=packager.to_single_file(artifact),
        media_type=packager.SINGLE_FILE_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{artifact.name}"'},
    )


@router.post("/{session_id}/save", response_model=SaveResponse)
async def save_artifacts(session_id: str):
    """Write every generated artifact under GENERATED_DIR/<project>/."""
    session = _get_session(session_id)
    try:
        paths = session.save_artifacts()
    except UpstreamError as e:
        raise HTTPException(status_code=500, detail=e.message) from e
    except PipelineError as e:
        _raise_http(e)
    return SaveResponse(status=session.status, paths=paths)


# --- SSE ---


async def _session_sse_generator(session_id: str, initial_state: dict):
    yield format_sse({"event": "session_state", "data": initial_state})
    async for event_str in subscribe_events(session_id):
        yield event_str


@router.get("/{session_id}/stream")
async def stream_session_status(session_id: str):
    """Stream status updates for a session via SSE.

    Events:
    - session_state: Snapshot of the session when connected
    - run_started: A load/generate run began
    - status: Status text changed
    - run_done: The run finished; the stream closes

    Usage:
        const sse = new EventSource('/api/builder/sessions/{id}/stream');
        sse.addEventListener('status', (e) => console.log(JSON.parse(e.data).status));
    """
    session = _get_session(session_id)
    initial_state = {
        "session_id": session.session_id,
        "status": session.status,
        "loading": session.loading,
    }
    return StreamingResponse(
        _session_sse_generator(session_id, initial_state),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
