"""Exceptions raised for structural impossibilities inside the engine.

Expected no-ops (already annotated, declined confirmation, invalid move)
are never raised; they come back as result objects.
"""


class AnnotationTreeError(Exception):
    """Base class for internal annotation tree invariant violations."""


class TreeNotInitializedError(AnnotationTreeError):
    """Raised when a mutation runs before initialize()/load_annotations()."""


class AnnotationNotFoundError(AnnotationTreeError):
    """Raised when an annotation id cannot be located during a commit."""

    def __init__(self, annotation_id: str):
        super().__init__(f"Annotation '{annotation_id}' not found")
        self.annotation_id = annotation_id


class InvalidMoveError(AnnotationTreeError):
    """Raised when a move cannot be applied to the tree."""


class StalePendingOperationError(AnnotationTreeError):
    """Raised when a pending operation no longer matches the committed tree."""
