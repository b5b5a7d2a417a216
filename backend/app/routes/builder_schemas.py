"""Pydantic schemas for the builder session and proxy API endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Session API ---


def _check_project_name(value: str) -> str:
    """Project names become one archive folder and one directory on disk."""
    value = value.strip()
    if not value:
        raise ValueError("project_name cannot be blank")
    if ".." in value or "/" in value or "\\" in value:
        raise ValueError("project_name cannot contain path separators or '..'")
    return value


class SessionCreateRequest(BaseModel):
    """Request for POST /api/builder/sessions."""
    url: Optional[str] = Field(None, description="Figma URL to start from")
    project_name: Optional[str] = Field(
        None, description="Archive folder / save directory name"
    )
    model: Optional[str] = Field(None, description="Completion model id")

    @field_validator("project_name")
    @classmethod
    def validate_project_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_project_name(value)


class SetUrlRequest(BaseModel):
    """Request for PUT /api/builder/sessions/{id}/url."""
    url: str


class ProjectNameRequest(BaseModel):
    """Request for PUT /api/builder/sessions/{id}/project."""
    project_name: str = Field(..., min_length=1)

    @field_validator("project_name")
    @classmethod
    def validate_project_name(cls, value: str) -> str:
        return _check_project_name(value)


class ModelRequest(BaseModel):
    """Request for PUT /api/builder/sessions/{id}/model."""
    model: str = Field(..., min_length=1)


class ToggleRequest(BaseModel):
    """Request for POST /api/builder/sessions/{id}/selection/toggle."""
    node_id: str = Field(..., min_length=1)


class GenerateRequest(BaseModel):
    """Request for POST /api/builder/sessions/{id}/generate.

    Omitted fields use GENERATION_FAILURE_POLICY / GENERATION_CONCURRENCY.
    """
    failure_policy: Optional[Literal["stop", "skip"]] = None
    concurrency: Optional[int] = Field(default=None, ge=1, le=16)


class ParsedReferenceOut(BaseModel):
    file_id: str
    target_node_id: Optional[str] = None


class CatalogueEntryOut(BaseModel):
    id: str
    name: str


class ArtifactOut(BaseModel):
    name: str
    code: str


class SessionState(BaseModel):
    """Full snapshot of one builder session."""
    session_id: str
    url: str = ""
    parsed: Optional[ParsedReferenceOut] = None
    project_name: str
    model: str
    status: str = ""
    loading: bool = False
    loaded: bool = False
    catalogue: List[CatalogueEntryOut] = []
    thumbnails: Dict[str, str] = {}
    selected_ids: List[str] = []
    generated: List[ArtifactOut] = []


class SetUrlResponse(BaseModel):
    """Response for PUT /api/builder/sessions/{id}/url."""
    valid: bool
    parsed: Optional[ParsedReferenceOut] = None


class ToggleResponse(BaseModel):
    node_id: str
    selected: bool
    selected_ids: List[str] = []


class SelectionResponse(BaseModel):
    selected_ids: List[str] = []


class GenerateResponse(BaseModel):
    """Response for POST /api/builder/sessions/{id}/generate."""
    status: str
    artifacts: List[ArtifactOut] = []
    skipped_ids: List[str] = []
    failed: Dict[str, str] = {}


class CancelResponse(BaseModel):
    cancelled: bool


class SaveResponse(BaseModel):
    status: str
    paths: List[str] = []


# --- Proxy API (camelCase bodies) ---


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class FigmaFetchRequest(_CamelModel):
    """Request for POST /api/figma."""
    url: Optional[str] = None
    file_key: Optional[str] = Field(None, alias="fileKey")
    node_ids: List[str] = Field(default_factory=list, alias="nodeIds")


class FigmaImagesRequest(_CamelModel):
    """Request for POST /api/figma-images."""
    file_key: Optional[str] = Field(None, alias="fileKey")
    node_ids: List[str] = Field(default_factory=list, alias="nodeIds")


class GenerateCodeRequest(_CamelModel):
    """Request for POST /api/generate-code."""
    figma_json: Optional[Dict[str, Any]] = Field(None, alias="figmaJson")
    model: Optional[str] = None


class SaveComponentRequest(_CamelModel):
    """Request for POST /api/save-component."""
    project_name: Optional[str] = Field(None, alias="projectName")
    component_name: Optional[str] = Field(None, alias="componentName")
    code: Optional[str] = None
