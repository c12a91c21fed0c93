"""Annotation tree data model.

AnnotationNode / AnnotationSnapshot are pydantic models so snapshots
round-trip through JSON with the camelCase keys the editor persists
(dslNodeId, ftaComponent, absoluteX, ...). Python code uses snake_case;
both spellings are accepted on input.

Operation results are plain dataclasses.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .geometry import Box
from .settings import ANNOTATION_SCHEMA_VERSION, VIRTUAL_ANNOTATION_PREFIX

logger = logging.getLogger(__name__)

DropPosition = Literal["before", "inside", "after"]


def now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Tree model
# ---------------------------------------------------------------------------


class AnnotationNode(BaseModel):
    """One node of the annotation tree.

    `id` equals the backing DSL node id for real annotations, and carries the
    virtual prefix for synthetic groupings (which have no `dsl_node`).
    `children` is the only place a node is referenced from.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    dsl_node_id: Optional[str] = None
    dsl_node: Optional[Dict[str, Any]] = None
    fta_component: str
    is_root: bool = False
    is_main_page: bool = False
    is_container: bool = False
    name: Optional[str] = None
    comment: Optional[str] = None
    props: Optional[Dict[str, Any]] = None
    layout: Optional[Dict[str, Any]] = None
    children: List["AnnotationNode"] = Field(default_factory=list)
    absolute_x: float = 0
    absolute_y: float = 0
    width: float = 0
    height: float = 0
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    @property
    def is_virtual(self) -> bool:
        return self.id.startswith(VIRTUAL_ANNOTATION_PREFIX)

    @property
    def box(self) -> Box:
        return Box(self.absolute_x, self.absolute_y, self.width, self.height)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot form (camelCase keys)."""
        return self.model_dump(by_alias=True)


class AnnotationSnapshot(BaseModel):
    """Persisted form of a whole tree."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    root_annotation: Optional[AnnotationNode] = None
    saved_at: int = Field(default_factory=now_ms)
    version: str = ANNOTATION_SCHEMA_VERSION


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class NodeType(str, Enum):
    ANNOTATION = "annotation"  # already annotated node
    DSL = "dsl"  # raw, not yet annotated DSL node


@dataclass(frozen=True)
class SelectedNodeItem:
    id: str
    type: NodeType


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass
class PendingOperation:
    """A destructive create/update awaiting host confirmation.

    Bound to the store revision it was computed against; any commit in
    between makes it stale.
    """
    token: str
    kind: Literal["create", "update"]
    reason: str
    revision: int
    annotation_id: str
    affected_ids: List[str] = field(default_factory=list)


@dataclass
class MutationResult:
    success: bool
    reason: Optional[str] = None
    annotation_id: Optional[str] = None
    pending: Optional[PendingOperation] = None

    @property
    def requires_confirmation(self) -> bool:
        return self.pending is not None

    def __bool__(self) -> bool:
        return self.success


@dataclass
class MoveValidation:
    valid: bool
    reason: Optional[str] = None


@dataclass
class MoveResult:
    success: bool
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Snapshot normalization
# ---------------------------------------------------------------------------


def normalize_snapshot(raw: Any) -> Optional[AnnotationSnapshot]:
    """Coerce a stored snapshot (model, mapping or JSON text) into AnnotationSnapshot.

    Unknown keys are ignored, savedAt/version fall back to now / the current
    schema version. Returns None for anything that is not a mapping carrying
    a rootAnnotation key.
    """
    if raw is None:
        return None
    if isinstance(raw, AnnotationSnapshot):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            logger.warning(f"normalize_snapshot: invalid JSON content: {e}")
            return None
    if not isinstance(raw, dict):
        return None

    if "rootAnnotation" in raw:
        root = raw["rootAnnotation"]
    elif "root_annotation" in raw:
        root = raw["root_annotation"]
    else:
        return None

    saved_at = raw.get("savedAt", raw.get("saved_at"))
    version = raw.get("version")
    try:
        return AnnotationSnapshot(
            root_annotation=AnnotationNode.model_validate(root) if root is not None else None,
            saved_at=saved_at if isinstance(saved_at, int) and not isinstance(saved_at, bool) else now_ms(),
            version=version if isinstance(version, str) else ANNOTATION_SCHEMA_VERSION,
        )
    except ValidationError as e:
        logger.warning(f"normalize_snapshot: rootAnnotation does not match the tree model: {e}")
        return None
