"""Artifact persistence: write generated components under GENERATED_DIR.

Layout: {GENERATED_DIR}/{project_name}/{component_name}.tsx
"""

import logging
from pathlib import Path
from typing import Optional

from .. import config, settings
from .errors import ValidationError

logger = logging.getLogger(__name__)


def _check_segment(value: str, field: str) -> str:
    """Reject names that could escape the output directory."""
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"Missing {field}")
    if ".." in value or "/" in value or "\\" in value:
        raise ValidationError(f"Invalid {field}: {value}")
    return value


def save_component(
    project_name: str,
    component_name: str,
    code: str,
    base_dir: Optional[str] = None,
) -> str:
    """Write one component file and return its path.

    Raises ValidationError for missing/unsafe names and OSError when the
    file cannot be written.
    """
    project = _check_segment(project_name, "projectName")
    component = _check_segment(component_name, "componentName")
    if component.endswith(settings.ARTIFACT_EXTENSION):
        component = component[: -len(settings.ARTIFACT_EXTENSION)]

    dir_path = Path(base_dir or config.GENERATED_DIR) / project
    dir_path.mkdir(parents=True, exist_ok=True)

    file_path = dir_path / f"{component}{settings.ARTIFACT_EXTENSION}"
    file_path.write_text(code, encoding="utf-8")

    logger.info(f"save_component: wrote {file_path} ({len(code)} chars)")
    return str(file_path)
