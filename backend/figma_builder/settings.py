"""Builder runtime settings: tunable parameters for pipeline execution.

All values read from environment variables with sensible defaults. Import
from here instead of hardcoding.

Infrastructure config (API host, endpoints, tokens) stays in
figma_builder/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


# =====================================================================
# HTTP Clients (Figma API, completion service, model hub)
# =====================================================================

FIGMA_HTTP_TIMEOUT = _float("FIGMA_HTTP_TIMEOUT", 60.0)
COMPLETION_HTTP_TIMEOUT = _float("COMPLETION_HTTP_TIMEOUT", 120.0)
MODELS_HTTP_TIMEOUT = _float("MODELS_HTTP_TIMEOUT", 10.0)

# Max models requested from the hub listing
MODELS_LIST_LIMIT = _int("MODELS_LIST_LIMIT", 100)

# Render format for preview thumbnails: "svg" | "png" | "jpg"
THUMBNAIL_FORMAT = _str("THUMBNAIL_FORMAT", "svg")


# =====================================================================
# Generation Pipeline
# =====================================================================

# failure_policy for completion-service errors: "stop" (default) | "skip"
#   stop: abort the run on the first failed node, discard partial results
#   skip: log the failed node and continue with the next one
# Nodes missing from the batched node fetch are always skipped.
GENERATION_FAILURE_POLICY = _str("GENERATION_FAILURE_POLICY", "stop")

# Max concurrent completion calls per run (1 = strictly sequential)
GENERATION_CONCURRENCY = _int("GENERATION_CONCURRENCY", 1)

# Name used when a selected node has no catalogue entry
FALLBACK_COMPONENT_NAME = _str("FALLBACK_COMPONENT_NAME", "Component")

# Extension appended to generated artifact file names
ARTIFACT_EXTENSION = _str("ARTIFACT_EXTENSION", ".tsx")


# =====================================================================
# Packaging
# =====================================================================

DEFAULT_PROJECT_NAME = _str("DEFAULT_PROJECT_NAME", "my-figma-app")

# Archive root folder when the project name is blank
ARCHIVE_FALLBACK_NAME = _str("ARCHIVE_FALLBACK_NAME", "figma-components")


# =====================================================================
# Sessions
# =====================================================================

# Idle sessions (no API access, no run in flight) are dropped after this
SESSION_IDLE_TTL_SECS = _int("SESSION_IDLE_TTL_SECS", 3600)

# Max live sessions; the least recently used idle one is evicted beyond this
SESSION_MAX_COUNT = _int("SESSION_MAX_COUNT", 100)
