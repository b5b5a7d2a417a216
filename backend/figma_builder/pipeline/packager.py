"""Artifact packaging: zip archive for bulk download, plain text for one file.

Both operations only read artifacts already generated; they never fetch.
"""

import io
import logging
import zipfile
from typing import Iterable, Optional

from .. import settings
from .models import GeneratedArtifact

logger = logging.getLogger(__name__)

ARCHIVE_MEDIA_TYPE = "application/zip"
SINGLE_FILE_MEDIA_TYPE = "text/plain"


def archive_root(project_name: Optional[str]) -> str:
    """Folder name inside the archive: the project name or the fallback."""
    name = (project_name or "").strip()
    return name or settings.ARCHIVE_FALLBACK_NAME


def archive_file_name(project_name: Optional[str]) -> str:
    return f"{archive_root(project_name)}.zip"


def to_archive(project_name: Optional[str], artifacts: Iterable[GeneratedArtifact]) -> bytes:
    """Pack every artifact under a single root folder and return the zip bytes."""
    root = archive_root(project_name)
    buf = io.BytesIO()
    count = 0
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for artifact in artifacts:
            zf.writestr(f"{root}/{artifact.name}", artifact.code)
            count += 1

    logger.info(f"to_archive: {root}.zip with {count} files ({buf.tell()} bytes)")
    return buf.getvalue()


def to_single_file(artifact: GeneratedArtifact) -> bytes:
    """Return the artifact's code as-is, UTF-8 encoded."""
    return artifact.code.encode("utf-8")
