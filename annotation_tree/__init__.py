"""Annotation tree engine package.

Modules:
- geometry: DSL tree absolute-position resolution and bounding boxes
- components: Component category lookup table
- models: Annotation tree data model (pydantic)
- ordering: Child ordering, flattening and flat-list reconstruction
- detach: Copy-on-write subtree detach/reattach primitives
- moves: Drag-reparent validation and commit
- selection: Multi-select set with ancestor/descendant exclusion
- store: AnnotationTreeStore, the mutation entry point
- summary: Annotation tree outline for code generation
- validation: Whole-tree invariant checks for loaded snapshots
- cli: Command line access to snapshot files and stored trees
- persistence: Snapshot storage (async SQLAlchemy + local cache)
"""

from .exceptions import (
    AnnotationNotFoundError,
    AnnotationTreeError,
    InvalidMoveError,
    StalePendingOperationError,
    TreeNotInitializedError,
)
from .models import (
    AnnotationNode,
    AnnotationSnapshot,
    DropPosition,
    MoveResult,
    MoveValidation,
    MutationResult,
    NodeType,
    PendingOperation,
    SelectedNodeItem,
)
from .store import AnnotationTreeStore

__all__ = [
    "AnnotationNode",
    "AnnotationNotFoundError",
    "AnnotationSnapshot",
    "AnnotationTreeError",
    "AnnotationTreeStore",
    "DropPosition",
    "InvalidMoveError",
    "MoveResult",
    "MoveValidation",
    "MutationResult",
    "NodeType",
    "PendingOperation",
    "SelectedNodeItem",
    "StalePendingOperationError",
    "TreeNotInitializedError",
]
