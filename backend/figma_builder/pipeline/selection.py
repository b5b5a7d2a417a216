"""Selection store: which catalogue entries the user picked.

Membership keeps insertion order: generation iterates selected ids in the
order they were selected (select_all uses catalogue order).
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional


class SelectionStore:
    """Ordered set of selected node ids."""

    def __init__(self, ids: Optional[Iterable[str]] = None):
        self._ids: Dict[str, None] = dict.fromkeys(ids or ())

    def toggle(self, node_id: str) -> bool:
        """Flip membership of one id. Returns True when it is now selected."""
        if node_id in self._ids:
            del self._ids[node_id]
            return False
        self._ids[node_id] = None
        return True

    def select_all(self, all_ids: Iterable[str]) -> None:
        """Replace the selection with exactly ``all_ids`` (not additive)."""
        self._ids = dict.fromkeys(all_ids)

    def clear(self) -> None:
        self._ids = {}

    def seed(self, target_node_id: Optional[str], catalogue_ids: Iterable[str]) -> bool:
        """Pre-select the URL's target node when it is in the catalogue.

        Returns True when the selection was seeded.
        """
        if target_node_id and target_node_id in set(catalogue_ids):
            self._ids = {target_node_id: None}
            return True
        return False

    def has(self, node_id: str) -> bool:
        return node_id in self._ids

    def ordered(self) -> List[str]:
        return list(self._ids)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)
