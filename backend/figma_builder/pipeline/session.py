"""Builder session: the per-user context that owns all pipeline state.

State (URL, parsed reference, catalogue, thumbnails, selection, generated
artifacts, status text) lives on one BuilderSession object and is mutated
only by its methods. Load and generate runs are exclusive per session:
starting one while another is in flight raises PipelineBusyError.

Every status change is forwarded to an optional listener as
("status", {...}); each load/generate run is bracketed by ("run_started", {...})
and ("run_done", {...}).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import pydantic

from .. import config, settings
from ..integrations.completion_client import CompletionClient
from ..integrations.figma_client import FigmaClient, FigmaClientError
from . import packager, storage
from .catalogue import build_catalogue
from .errors import (
    EmptyResultError,
    NoSelectionError,
    PipelineBusyError,
    PipelineError,
    RunCancelledError,
    UpstreamError,
    ValidationError,
)
from .models import (
    CatalogueEntry,
    GeneratedArtifact,
    GenerationResult,
    ParsedReference,
    parse_document_tree,
)
from .orchestrator import GenerationOrchestrator
from .selection import SelectionStore
from .thumbnails import fetch_thumbnails
from .url_parser import parse_figma_url

logger = logging.getLogger(__name__)

SessionListener = Callable[[str, Dict[str, Any]], None]


def new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:12]}"


class BuilderSession:
    """Pipeline state for one user.

    Args:
        session_id: Identifier used for events; generated when omitted.
        project_name: Archive folder / save directory name.
        model: Completion model id; defaults to DEFAULT_MODEL.
        listener: Receives (event_type, payload) for status and run_done.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        project_name: str = settings.DEFAULT_PROJECT_NAME,
        model: Optional[str] = None,
        listener: Optional[SessionListener] = None,
    ):
        self.session_id = session_id or new_session_id()
        self.project_name = project_name
        self.model = model or config.DEFAULT_MODEL
        self.listener = listener

        self.url = ""
        self.parsed: Optional[ParsedReference] = None
        self.loaded = False
        self.catalogue: List[CatalogueEntry] = []
        self.thumbnails: Dict[str, str] = {}
        self.selection = SelectionStore()
        self.generated: List[GeneratedArtifact] = []
        self.status = ""
        self.loading = False
        self.cancel_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Status / events
    # ------------------------------------------------------------------

    def _emit(self, event_type: str, data: Dict[str, Any]) -> None:
        if self.listener is not None:
            self.listener(event_type, data)

    def set_status(self, text: str) -> None:
        self.status = text
        self._emit("status", {"status": text, "loading": self.loading})

    @asynccontextmanager
    async def _run(self, name: str) -> AsyncIterator[asyncio.Event]:
        """Exclusive run scope: busy check, loading flag, error → status."""
        if self.loading:
            raise PipelineBusyError("Another operation is already running")
        self.loading = True
        cancel = self.cancel_event
        self._emit("run_started", {"run": name})
        try:
            yield cancel
        except PipelineError as e:
            logger.warning(f"Session {self.session_id}: {name} failed: {e.message}")
            self.set_status(f"Error: {e.message}")
            raise
        finally:
            self.loading = False
            self._emit("run_done", {"run": name, "status": self.status})

    # ------------------------------------------------------------------
    # URL / configuration
    # ------------------------------------------------------------------

    def set_url(self, raw: str) -> Optional[ParsedReference]:
        """Point the session at a new URL and drop everything derived from the old one.

        Any in-flight run is cancelled; it will not write its results.
        """
        self.cancel_event.set()
        self.cancel_event = asyncio.Event()

        self.url = raw
        self.parsed = parse_figma_url(raw)
        self.catalogue = []
        self.thumbnails = {}
        self.selection.clear()
        self.generated = []
        self.loaded = False
        return self.parsed

    def cancel(self) -> bool:
        """Cancel the in-flight run, if any. Returns True when one was running."""
        if not self.loading:
            return False
        self.cancel_event.set()
        self.cancel_event = asyncio.Event()
        return True

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load_file(self, figma: FigmaClient) -> List[CatalogueEntry]:
        """Fetch the file, build the catalogue, correlate thumbnails, seed selection."""
        async with self._run("load") as cancel:
            ref = self.parsed
            if ref is None:
                raise ValidationError("Invalid Figma URL")

            self.set_status("Fetching Figma file...")
            try:
                data = await figma.get_file(ref.file_id)
            except FigmaClientError as e:
                raise UpstreamError(str(e)) from e
            if cancel.is_set():
                raise RunCancelledError("Load cancelled")

            try:
                document = parse_document_tree(data.get("document") or {})
            except pydantic.ValidationError as e:
                raise UpstreamError("Figma file has an unexpected structure") from e

            catalogue = build_catalogue(document)
            if not catalogue:
                self.loaded = True
                self.catalogue = []
                self.thumbnails = {}
                self.selection.clear()
                raise EmptyResultError("No frames/components found")

            thumbnails = await fetch_thumbnails(figma, ref.file_id, [c.id for c in catalogue])
            if cancel.is_set():
                raise RunCancelledError("Load cancelled")

            # Nothing is written until every await has passed the cancel check
            self.loaded = True
            self.catalogue = catalogue
            self.thumbnails = thumbnails
            self.selection.clear()

            if self.selection.seed(ref.target_node_id, (c.id for c in catalogue)):
                logger.info(
                    f"Session {self.session_id}: pre-selected {ref.target_node_id} from URL"
                )

            self.set_status(f"Loaded {len(catalogue)} components")
            return catalogue

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle(self, node_id: str) -> bool:
        return self.selection.toggle(node_id)

    def select_all(self) -> None:
        self.selection.select_all(c.id for c in self.catalogue)

    def clear_selection(self) -> None:
        self.selection.clear()

    # ------------------------------------------------------------------
    # Generate
    # ------------------------------------------------------------------

    async def generate(
        self,
        figma: FigmaClient,
        completion: CompletionClient,
        failure_policy: Optional[str] = None,
        concurrency: Optional[int] = None,
    ) -> GenerationResult:
        """Generate artifacts for the current selection.

        ``generated`` is replaced only when the run succeeds; an aborted run
        leaves it empty and keeps catalogue and selection for a retry.
        """
        async with self._run("generate") as cancel:
            if self.parsed is None or len(self.selection) == 0:
                raise NoSelectionError("No components selected")

            self.generated = []
            orchestrator = GenerationOrchestrator(
                figma,
                completion,
                model=self.model,
                failure_policy=failure_policy,
                concurrency=concurrency,
                on_status=self.set_status,
                cancel_event=cancel,
            )
            result = await orchestrator.generate(
                self.parsed.file_id, self.selection.ordered(), self.catalogue,
            )
            if cancel.is_set():
                raise RunCancelledError(partial=result.artifacts)

            self.generated = list(result.artifacts)
            return result

    # ------------------------------------------------------------------
    # Packaging / persistence
    # ------------------------------------------------------------------

    def get_artifact(self, name: str) -> Optional[GeneratedArtifact]:
        return next((a for a in self.generated if a.name == name), None)

    def archive(self) -> bytes:
        return packager.to_archive(self.project_name, self.generated)

    def archive_file_name(self) -> str:
        return packager.archive_file_name(self.project_name)

    def save_artifacts(self, base_dir: Optional[str] = None) -> List[str]:
        """Write every generated artifact to disk; status reports the outcome."""
        if not self.generated:
            raise NoSelectionError("Nothing generated yet")
        project = packager.archive_root(self.project_name)
        paths: List[str] = []
        try:
            for artifact in self.generated:
                paths.append(storage.save_component(
                    project, artifact.name, artifact.code, base_dir=base_dir,
                ))
        except ValidationError as e:
            self.set_status(f"Error: {e.message}")
            raise
        except OSError as e:
            logger.error(f"Session {self.session_id}: save failed: {e}")
            self.set_status("Error: Component save failed")
            raise UpstreamError("Component save failed") from e
        self.set_status(f"Saved {len(paths)} components")
        return paths

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "url": self.url,
            "parsed": (
                {"file_id": self.parsed.file_id, "target_node_id": self.parsed.target_node_id}
                if self.parsed else None
            ),
            "project_name": self.project_name,
            "model": self.model,
            "status": self.status,
            "loading": self.loading,
            "loaded": self.loaded,
            "catalogue": [c.to_dict() for c in self.catalogue],
            "thumbnails": dict(self.thumbnails),
            "selected_ids": self.selection.ordered(),
            "generated": [a.to_dict() for a in self.generated],
        }
