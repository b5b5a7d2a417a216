"""Thumbnail correlation: preview image URLs for catalogue entries.

Previews are display-only. Any failure yields an empty mapping so the
catalogue and selection stay usable without them.
"""

import logging
from typing import Dict, List

from ..integrations.figma_client import FigmaClient, FigmaClientError

logger = logging.getLogger(__name__)


async def fetch_thumbnails(
    figma: FigmaClient,
    file_id: str,
    ids: List[str],
) -> Dict[str, str]:
    """Fetch preview URLs for ``ids`` in one batched request.

    Returns a sparse id → URL mapping: ids Figma failed to render, or did
    not return, are simply absent.
    """
    if not ids:
        return {}

    try:
        images = await figma.get_node_images(file_id, ids)
    except FigmaClientError as e:
        logger.warning(f"fetch_thumbnails: previews unavailable for {file_id}: {e}")
        return {}

    wanted = set(ids)
    thumbnails = {
        node_id: url
        for node_id, url in images.items()
        if url and node_id in wanted
    }
    if len(thumbnails) < len(ids):
        logger.info(
            f"fetch_thumbnails: {len(ids) - len(thumbnails)}/{len(ids)} nodes without preview"
        )
    return thumbnails
