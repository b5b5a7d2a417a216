"""Node catalogue: flat, ordered list of selectable nodes in a Figma file.

A node is selectable when it is a FRAME, COMPONENT or COMPONENT_SET, is not
hidden, has children and its name does not start with "_". Hidden nodes are
skipped together with their whole subtree; every other node is descended
into, so selectable nodes nested inside selectable or plain containers are
all listed, in document pre-order.
"""

import logging
from typing import Any, Dict, List, Mapping, Union

from .models import CatalogueEntry, DocumentNode, parse_document_tree

logger = logging.getLogger(__name__)

UNNAMED_NODE = "Unnamed"


def _as_node(node: Union[DocumentNode, Mapping[str, Any]]) -> DocumentNode:
    if isinstance(node, DocumentNode):
        return node
    return parse_document_tree(node)


def collect_selectable(node: DocumentNode) -> List[CatalogueEntry]:
    """Walk one subtree depth-first (pre-order) and collect selectable nodes.

    Uses an explicit stack so arbitrarily deep trees cannot exhaust the
    interpreter's recursion limit.
    """
    result: List[CatalogueEntry] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.is_hidden:
            continue
        if current.is_selectable:
            result.append(CatalogueEntry(id=current.id, name=current.name or UNNAMED_NODE))
        # Reverse so the first child is visited first
        stack.extend(reversed(current.children))
    return result


def build_catalogue(document: Union[DocumentNode, Mapping[str, Any]]) -> List[CatalogueEntry]:
    """Build the catalogue for a document node, visiting each page in order.

    ``document`` is the ``document`` member of a GET /v1/files/:key response
    (either raw JSON or an already-validated DocumentNode). An empty result is
    returned as-is; the caller decides whether that is an error.
    """
    root = _as_node(document)
    entries: List[CatalogueEntry] = []
    for page in root.children:
        entries.extend(collect_selectable(page))

    logger.info(
        f"build_catalogue: pages={len(root.children)}, selectable={len(entries)}"
    )
    return entries


def catalogue_names(entries: List[CatalogueEntry]) -> Dict[str, str]:
    """Index entry names by node id."""
    return {entry.id: entry.name for entry in entries}
