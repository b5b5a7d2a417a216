"""Figma URL parsing.

Supports:
    https://www.figma.com/design/{fileKey}/{name}?node-id={nodeId}
    https://www.figma.com/file/{fileKey}/{name}?node-id={nodeId}
    https://www.figma.com/proto/{fileKey}/...
    https://www.figma.com/community/file/{fileKey}/...
    https://figma.com/fig/{fileKey}

Node ID format: URL uses '16650-538', API uses '16650:538'.
"""

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from .models import ParsedReference

FIGMA_DOMAIN = "figma.com"

FILE_KEY_LENGTH = 22

_PATH_RE = re.compile(
    r"/(?:file|design|proto|fig|community)/([a-zA-Z0-9]{%d})(?=/|$)" % FILE_KEY_LENGTH
)


def normalize_node_id(node_id: str) -> str:
    """Convert a URL-safe node id ('12-34') to API form ('12:34').

    Idempotent on ids already in colon form.
    """
    return node_id.replace("-", ":")


def _is_figma_host(hostname: str) -> bool:
    host = hostname.lower()
    return host == FIGMA_DOMAIN or host.endswith("." + FIGMA_DOMAIN)


def parse_figma_url(raw: str) -> Optional[ParsedReference]:
    """Parse a Figma URL into a ParsedReference, or None when invalid.

    Invalid means: blank input, not an absolute http(s) URL, a host outside
    figma.com, or a path without a /{file|design|proto|fig|community}/{key}
    segment where key is 22 alphanumeric characters.
    """
    if not raw or not raw.strip():
        return None

    try:
        parsed = urlparse(raw.strip())
        hostname = parsed.hostname or ""
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https") or not hostname:
        return None
    if not _is_figma_host(hostname):
        return None

    match = _PATH_RE.search(parsed.path)
    if not match:
        return None

    # parse_qs decodes percent-encoding (e.g. %3A → :)
    node_values = parse_qs(parsed.query).get("node-id")
    target_node_id = normalize_node_id(node_values[0]) if node_values else None

    return ParsedReference(file_id=match.group(1), target_node_id=target_node_id or None)
