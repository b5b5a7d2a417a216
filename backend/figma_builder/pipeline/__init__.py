"""Builder pipeline: URL → catalogue → selection → generation → packaging."""

from .catalogue import build_catalogue, collect_selectable
from .errors import (
    EmptyResultError,
    FetchNodesFailedError,
    GenerationFailedError,
    NoSelectionError,
    PipelineBusyError,
    PipelineError,
    RunCancelledError,
    UpstreamError,
    ValidationError,
)
from .models import (
    CatalogueEntry,
    DocumentNode,
    GeneratedArtifact,
    GenerationResult,
    ParsedReference,
)
from .orchestrator import GenerationOrchestrator, artifact_file_name, to_pascal_case
from .packager import to_archive, to_single_file
from .selection import SelectionStore
from .session import BuilderSession
from .storage import save_component
from .thumbnails import fetch_thumbnails
from .url_parser import normalize_node_id, parse_figma_url

__all__ = [
    "BuilderSession",
    "CatalogueEntry",
    "DocumentNode",
    "EmptyResultError",
    "FetchNodesFailedError",
    "GeneratedArtifact",
    "GenerationFailedError",
    "GenerationOrchestrator",
    "GenerationResult",
    "NoSelectionError",
    "ParsedReference",
    "PipelineBusyError",
    "PipelineError",
    "RunCancelledError",
    "SelectionStore",
    "UpstreamError",
    "ValidationError",
    "artifact_file_name",
    "build_catalogue",
    "collect_selectable",
    "fetch_thumbnails",
    "normalize_node_id",
    "parse_figma_url",
    "save_component",
    "to_archive",
    "to_pascal_case",
    "to_single_file",
]
