"""Pipeline data types.

DocumentNode mirrors the subset of the Figma node schema the pipeline reads;
unknown fields are kept so a node can be handed back to the completion
service unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

# Node types that may become catalogue entries
SELECTABLE_TYPES = frozenset({"FRAME", "COMPONENT", "COMPONENT_SET"})

# Names starting with this prefix are private by Figma convention
PRIVATE_NAME_PREFIX = "_"


class DocumentNode(BaseModel):
    """One node of a Figma document tree (read-only input)."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    name: str = ""
    type: str = ""
    visible: Optional[bool] = None
    children: List["DocumentNode"] = Field(default_factory=list)

    @property
    def is_hidden(self) -> bool:
        # Absent means visible
        return self.visible is False

    @property
    def is_selectable(self) -> bool:
        return (
            self.type in SELECTABLE_TYPES
            and not self.is_hidden
            and len(self.children) > 0
            and not self.name.startswith(PRIVATE_NAME_PREFIX)
        )


DocumentNode.model_rebuild()


def parse_document_tree(data: Any) -> DocumentNode:
    """Validate a raw node tree of any depth into DocumentNode objects.

    Each node is validated without its children and then attached to its
    parent, walking with an explicit stack, so depth is not bounded by
    pydantic-core's recursion guard.

    Raises pydantic.ValidationError on a malformed node.
    """
    roots: List[DocumentNode] = []
    stack: List[tuple] = [(data, roots)]
    while stack:
        raw, siblings = stack.pop()
        children: List[Any] = []
        if isinstance(raw, Mapping):
            children = raw.get("children") or []
            if not isinstance(children, list):
                # Let pydantic report the bad field
                DocumentNode.model_validate(raw)
            raw = {k: v for k, v in raw.items() if k != "children"}
        node = DocumentNode.model_validate(raw)
        siblings.append(node)
        # Reverse so children are attached in document order
        stack.extend((child, node.children) for child in reversed(children))
    return roots[0]


@dataclass(frozen=True)
class ParsedReference:
    """A validated Figma URL: file key plus optional target node id (API form)."""

    file_id: str
    target_node_id: Optional[str] = None


@dataclass(frozen=True)
class CatalogueEntry:
    """One selectable node of the loaded file."""

    id: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class GeneratedArtifact:
    """One generated code file."""

    name: str
    code: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "code": self.code}


@dataclass
class GenerationResult:
    """Outcome of one generation run.

    ``skipped_ids`` lists selected nodes absent from the batched fetch;
    ``failed`` lists nodes whose completion call failed under the "skip"
    failure policy (node id → error message).
    """

    artifacts: List[GeneratedArtifact] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifacts": [a.to_dict() for a in self.artifacts],
            "skipped_ids": list(self.skipped_ids),
            "failed": dict(self.failed),
        }
