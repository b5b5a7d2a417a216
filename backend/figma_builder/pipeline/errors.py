"""Pipeline error taxonomy.

Every error carries a human-readable ``message`` that the session shows as
its status text ("Error: <message>").
"""

from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import GeneratedArtifact


class PipelineError(Exception):
    """Base class for recoverable pipeline failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PipelineError):
    """User-correctable input problem (malformed URL, missing field)."""


class PipelineBusyError(PipelineError):
    """Another load/generate operation is already running on the session."""


class UpstreamError(PipelineError):
    """Design-file API or completion service answered with a failure."""


class EmptyResultError(UpstreamError):
    """The fetched file contains no selectable nodes."""


class NoSelectionError(PipelineError):
    """Generate was requested with nothing selected or no active file."""


class FetchNodesFailedError(UpstreamError):
    """The batched node fetch failed; nothing was generated."""


class GenerationFailedError(UpstreamError):
    """A completion call failed and aborted the run.

    ``partial`` holds the artifacts produced before the failure; the session
    discards them, callers may inspect them.
    """

    def __init__(
        self,
        message: str,
        component_name: Optional[str] = None,
        partial: Optional[List["GeneratedArtifact"]] = None,
    ):
        super().__init__(message)
        self.component_name = component_name
        self.partial = list(partial or [])


class RunCancelledError(PipelineError):
    """A load or generation run was cancelled through the session's token."""

    def __init__(
        self,
        message: str = "Generation cancelled",
        partial: Optional[List["GeneratedArtifact"]] = None,
    ):
        super().__init__(message)
        self.partial = list(partial or [])
