"""Copy-on-write detach/reattach primitives for the annotation tree.

Every function returns a new tree and leaves its input untouched. Nodes
that are not on a rewritten path may be shared between the old and the new
tree; they are never mutated in place, so sharing is safe.

Used by create (shadowed descendants), combine (grouping a selection) and
move (drag reparenting).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Collection, List, Optional, Tuple

from .exceptions import AnnotationNotFoundError, InvalidMoveError
from .geometry import Box
from .models import AnnotationNode, DropPosition

logger = logging.getLogger(__name__)


def clone_tree(node: AnnotationNode, updated_at: Optional[int] = None) -> AnnotationNode:
    """Fresh copy of every node in the subtree, optionally restamping updated_at."""
    update = {"children": [clone_tree(c, updated_at) for c in node.children]}
    if updated_at is not None:
        update["updated_at"] = updated_at
    return node.model_copy(update=update)


# ---------------------------------------------------------------------------
# Detach
# ---------------------------------------------------------------------------


@dataclass
class DetachResult:
    node: AnnotationNode
    detached: List[AnnotationNode] = field(default_factory=list)


def detach_descendants(
    root: AnnotationNode,
    ids_to_remove: Collection[str],
    preserve_ids: Collection[str] = (),
) -> DetachResult:
    """Remove every node whose id is in `ids_to_remove`.

    Removed subtrees are collected in traversal order. A virtual container
    left without children is pruned unless its id is in `preserve_ids`.
    The root itself is never removed.
    """
    remove = set(ids_to_remove)
    preserve = set(preserve_ids)

    def _walk(node: AnnotationNode) -> DetachResult:
        detached: List[AnnotationNode] = []
        remaining: List[AnnotationNode] = []
        for child in node.children:
            if child.id in remove:
                detached.append(child)
                continue
            result = _walk(child)
            detached.extend(result.detached)
            emptied = result.node.is_virtual and not result.node.children
            if emptied and result.node.id not in preserve:
                logger.debug(f"detach_descendants: pruned empty virtual '{result.node.id}'")
                continue
            remaining.append(result.node)
        if not detached and len(remaining) == len(node.children):
            return DetachResult(node=node)
        return DetachResult(node=node.model_copy(update={"children": remaining}), detached=detached)

    return _walk(root)


def remove_subtree(root: AnnotationNode, node_id: str) -> Tuple[AnnotationNode, AnnotationNode]:
    """Cut one subtree out of the tree; returns (new_root, removed_subtree)."""
    if root.id == node_id:
        raise InvalidMoveError("the root annotation cannot be detached")
    result = detach_descendants(root, {node_id}, preserve_ids=_all_virtual_ids(root))
    if not result.detached:
        raise AnnotationNotFoundError(node_id)
    return result.node, result.detached[0]


def _all_virtual_ids(root: AnnotationNode) -> List[str]:
    ids: List[str] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_virtual:
            ids.append(node.id)
        stack.extend(node.children)
    return ids


def prune_empty_virtual(root: AnnotationNode, preserve_ids: Collection[str] = ()) -> AnnotationNode:
    """Drop virtual containers with no children, bottom-up."""
    preserve = set(preserve_ids)

    def _walk(node: AnnotationNode) -> AnnotationNode:
        kept: List[AnnotationNode] = []
        for child in node.children:
            cleaned = _walk(child)
            if cleaned.is_virtual and not cleaned.children and cleaned.id not in preserve:
                continue
            kept.append(cleaned)
        return node.model_copy(update={"children": kept})

    return _walk(root)


# ---------------------------------------------------------------------------
# Reattach
# ---------------------------------------------------------------------------


def insert_child(root: AnnotationNode, parent_id: str, child: AnnotationNode) -> AnnotationNode:
    """Append `child` to the children of `parent_id`."""
    found = False

    def _walk(node: AnnotationNode) -> AnnotationNode:
        nonlocal found
        if node.id == parent_id:
            found = True
            return node.model_copy(update={"children": [*node.children, child]})
        if not node.children:
            return node
        return node.model_copy(update={"children": [_walk(c) for c in node.children]})

    new_root = _walk(root)
    if not found:
        raise AnnotationNotFoundError(parent_id)
    return new_root


def insert_relative(
    root: AnnotationNode,
    target_id: str,
    node: AnnotationNode,
    position: DropPosition,
    updated_at: Optional[int] = None,
) -> AnnotationNode:
    """Insert `node` before/after `target_id` among its siblings, or inside it."""
    if position == "inside":
        new_root = insert_child(root, target_id, node)
        if updated_at is None:
            return new_root
        return _touch(new_root, target_id, updated_at)

    if root.id == target_id:
        raise InvalidMoveError(f"cannot insert {position} the root annotation")

    found = False

    def _walk(current: AnnotationNode) -> AnnotationNode:
        nonlocal found
        new_children: List[AnnotationNode] = []
        for child in current.children:
            if child.id == target_id:
                found = True
                if position == "before":
                    new_children.extend([node, child])
                else:
                    new_children.extend([child, node])
            else:
                new_children.append(_walk(child))
        return current.model_copy(update={"children": new_children})

    new_root = _walk(root)
    if not found:
        raise AnnotationNotFoundError(target_id)
    return new_root


def replace_node(root: AnnotationNode, node_id: str, replacement: AnnotationNode) -> AnnotationNode:
    """Swap the node `node_id` for `replacement`, rebuilding only its ancestor path."""
    found = False

    def _walk(node: AnnotationNode) -> AnnotationNode:
        nonlocal found
        if node.id == node_id:
            found = True
            return replacement
        if not node.children:
            return node
        return node.model_copy(update={"children": [_walk(c) for c in node.children]})

    new_root = _walk(root)
    if not found:
        raise AnnotationNotFoundError(node_id)
    return new_root


def splice_out(root: AnnotationNode, node_id: str, delete_children: bool = False) -> AnnotationNode:
    """Remove one node from the tree.

    With delete_children=False its children take its slot in the parent,
    keeping their relative order; otherwise the whole subtree goes.
    """
    if root.id == node_id:
        raise InvalidMoveError("the root annotation cannot be removed")
    found = False

    def _walk(node: AnnotationNode) -> AnnotationNode:
        nonlocal found
        new_children: List[AnnotationNode] = []
        for child in node.children:
            if child.id == node_id:
                found = True
                if not delete_children:
                    new_children.extend(child.children)
                continue
            new_children.append(_walk(child))
        return node.model_copy(update={"children": new_children})

    new_root = _walk(root)
    if not found:
        raise AnnotationNotFoundError(node_id)
    return new_root


def _touch(root: AnnotationNode, node_id: str, updated_at: int) -> AnnotationNode:
    def _walk(node: AnnotationNode) -> AnnotationNode:
        if node.id == node_id:
            return node.model_copy(update={"updated_at": updated_at})
        if not node.children:
            return node
        return node.model_copy(update={"children": [_walk(c) for c in node.children]})

    return _walk(root)


# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------


def recompute_container_bounds(root: AnnotationNode, updated_at: Optional[int] = None) -> AnnotationNode:
    """Refit container boxes to their children, bottom-up.

    Virtual containers take exactly the union of their children. Real
    containers only grow to include their children and never shrink below
    their own box.
    """

    def _walk(node: AnnotationNode) -> AnnotationNode:
        if not node.children:
            return node
        children = [_walk(c) for c in node.children]
        update = {"children": children}
        if node.is_container:
            union = Box.union(c.box for c in children)
            if node.is_virtual:
                update.update(
                    absolute_x=union.x,
                    absolute_y=union.y,
                    width=union.width,
                    height=union.height,
                )
            else:
                grown = Box.union([node.box, union])
                update.update(
                    absolute_x=grown.x,
                    absolute_y=grown.y,
                    width=grown.width,
                    height=grown.height,
                )
            if updated_at is not None:
                update["updated_at"] = updated_at
        return node.model_copy(update=update)

    return _walk(root)
