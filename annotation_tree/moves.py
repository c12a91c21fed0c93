"""Drag-reparent validation and commit.

validate_move() is a pure predicate evaluated before any drag commit.
apply_move() performs the structural rewrite on a copy of the tree.

Escape moves: placing a node before/after a node whose parent is an
ancestor of the node's current parent takes it out of that parent. When the
parent has more than one child, only an edge child may escape, and only
through its own edge: the first child goes `before`, the last child goes
`after`. A middle child has to be reordered to an edge first.
"""

from __future__ import annotations

import logging
from typing import Optional

from .detach import insert_relative, prune_empty_virtual, recompute_container_bounds, remove_subtree
from .models import AnnotationNode, DropPosition, MoveValidation, now_ms
from .ordering import build_index, build_parent_map, is_ancestor, sort_children

logger = logging.getLogger(__name__)

_POSITIONS = ("before", "inside", "after")


def validate_move(
    root: Optional[AnnotationNode],
    source_id: str,
    target_id: str,
    position: DropPosition,
) -> MoveValidation:
    """Check whether `source_id` may be dropped at `position` relative to `target_id`."""
    if root is None:
        return MoveValidation(False, "Annotation tree is not initialized")
    if position not in _POSITIONS:
        return MoveValidation(False, f"Unknown drop position '{position}'")

    index = build_index(root)
    source = index.get(source_id)
    target = index.get(target_id)
    if source is None or target is None:
        return MoveValidation(False, "Annotation not found")

    if source.is_root:
        return MoveValidation(False, "The root annotation cannot be moved")

    if source_id == target_id:
        return MoveValidation(False, "Cannot drop an annotation onto itself")

    if is_ancestor(root, source_id, target_id):
        return MoveValidation(False, "Cannot move an annotation into its own descendant")

    if position == "inside" and not target.is_container:
        return MoveValidation(False, f"'{target.fta_component}' does not accept children")

    if position != "inside" and target.is_root:
        return MoveValidation(False, "Cannot place an annotation beside the root")

    if position == "inside":
        return MoveValidation(True)

    parents = build_parent_map(root)
    source_parent = parents.get(source_id)
    target_parent = parents.get(target_id)
    if source_parent is None or target_parent is None:
        return MoveValidation(True)

    escaping = target_parent.id != source_parent.id and is_ancestor(
        root, target_parent.id, source_parent.id
    )
    siblings = source_parent.children
    if escaping and len(siblings) > 1:
        source_index = next(i for i, c in enumerate(siblings) if c.id == source_id)
        is_first = source_index == 0
        is_last = source_index == len(siblings) - 1

        if not is_first and not is_last:
            return MoveValidation(
                False,
                "Annotation sits in the middle of its parent; move it to the first or last slot first",
            )
        if is_first and position == "after":
            return MoveValidation(False, "The first child can only be moved out upwards (before)")
        if is_last and position == "before":
            return MoveValidation(False, "The last child can only be moved out downwards (after)")

    return MoveValidation(True)


def apply_move(
    root: AnnotationNode,
    source_id: str,
    target_id: str,
    position: DropPosition,
    now: Optional[int] = None,
) -> AnnotationNode:
    """Return a new tree with `source_id` reinserted at `position` of `target_id`.

    Container boxes are refit bottom-up, emptied virtual containers are
    pruned and children are re-sorted. Raises AnnotationNotFoundError /
    InvalidMoveError when the tree does not allow the move; callers are
    expected to have run validate_move() first.
    """
    now = now if now is not None else now_ms()

    new_root, source = remove_subtree(root, source_id)
    new_root = insert_relative(new_root, target_id, source, position, updated_at=now)
    new_root = prune_empty_virtual(new_root)
    new_root = recompute_container_bounds(new_root, updated_at=now)

    logger.debug(f"apply_move: '{source_id}' {position} '{target_id}'")
    return sort_children(new_root)
