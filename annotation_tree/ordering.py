"""Canonical ordering and flattening of the annotation tree.

Siblings are ordered top-to-bottom, then left-to-right. Two siblings whose
absolute Y differ by no more than ROW_TOLERANCE are treated as the same row
and ordered by X.

Flattening is always recomputed from the root after a structural
mutation; it is never maintained incrementally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .exceptions import AnnotationTreeError
from .models import AnnotationNode
from .settings import ROW_TOLERANCE

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def compare_position(a: AnnotationNode, b: AnnotationNode) -> float:
    """Negative if `a` comes before `b` in reading order."""
    y_diff = a.absolute_y - b.absolute_y
    if abs(y_diff) > ROW_TOLERANCE:
        return y_diff
    return a.absolute_x - b.absolute_x


def _insertion_sort(nodes: List[AnnotationNode]) -> List[AnnotationNode]:
    # Stable; leaves every adjacent pair with compare <= 0, so a second pass is a no-op.
    result: List[AnnotationNode] = []
    for node in nodes:
        idx = len(result)
        while idx > 0 and compare_position(result[idx - 1], node) > 0:
            idx -= 1
        result.insert(idx, node)
    return result


def sort_children(node: AnnotationNode) -> AnnotationNode:
    """Return a copy of `node` with every level of children in reading order."""
    ordered = _insertion_sort(node.children)
    return node.model_copy(update={"children": [sort_children(c) for c in ordered]})


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


def flatten(root: Optional[AnnotationNode]) -> List[AnnotationNode]:
    """Pre-order list of every node in the tree, root first."""
    result: List[AnnotationNode] = []
    if root is None:
        return result
    stack = [root]
    while stack:
        node = stack.pop()
        result.append(node)
        stack.extend(reversed(node.children))
    return result


def build_index(root: Optional[AnnotationNode]) -> Dict[str, AnnotationNode]:
    """id -> node lookup over the whole tree."""
    return {node.id: node for node in flatten(root)}


def build_parent_map(root: Optional[AnnotationNode]) -> Dict[str, AnnotationNode]:
    """child id -> parent node, for every non-root node."""
    parents: Dict[str, AnnotationNode] = {}
    for node in flatten(root):
        for child in node.children:
            parents[child.id] = node
    return parents


@dataclass
class FlatAnnotation:
    """A flattened node with the parent id needed to rebuild the tree."""
    node: AnnotationNode
    parent_id: Optional[str]
    index: int  # position among the parent's children


def flatten_with_parents(root: Optional[AnnotationNode]) -> List[FlatAnnotation]:
    """Pre-order records carrying parent ids; children are kept on each node."""
    records: List[FlatAnnotation] = []
    if root is None:
        return records

    def _visit(node: AnnotationNode, parent_id: Optional[str], index: int) -> None:
        records.append(FlatAnnotation(node=node, parent_id=parent_id, index=index))
        for i, child in enumerate(node.children):
            _visit(child, node.id, i)

    _visit(root, None, 0)
    return records


def rebuild_from_flat(records: List[FlatAnnotation]) -> Optional[AnnotationNode]:
    """Inverse of flatten_with_parents: reassemble the tree from parent ids.

    Raises AnnotationTreeError if the records do not describe exactly one
    rooted tree.
    """
    if not records:
        return None

    children_of: Dict[Optional[str], List[FlatAnnotation]] = {}
    for record in records:
        children_of.setdefault(record.parent_id, []).append(record)

    roots = children_of.get(None, [])
    if len(roots) != 1:
        raise AnnotationTreeError(f"expected exactly one root record, got {len(roots)}")

    seen: set = set()

    def _build(record: FlatAnnotation) -> AnnotationNode:
        if record.node.id in seen:
            raise AnnotationTreeError(f"annotation '{record.node.id}' appears twice")
        seen.add(record.node.id)
        kids = sorted(children_of.get(record.node.id, []), key=lambda r: r.index)
        return record.node.model_copy(update={"children": [_build(k) for k in kids]})

    root = _build(roots[0])
    if len(seen) != len(records):
        raise AnnotationTreeError(
            f"{len(records) - len(seen)} record(s) are not reachable from the root"
        )
    return root


def find_node(root: Optional[AnnotationNode], node_id: str) -> Optional[AnnotationNode]:
    """Depth-first lookup by annotation id."""
    for node in flatten(root):
        if node.id == node_id:
            return node
    return None


def is_ancestor(root: Optional[AnnotationNode], ancestor_id: str, descendant_id: str) -> bool:
    """True if `descendant_id` lies in the subtree of `ancestor_id` (itself included)."""
    ancestor = find_node(root, ancestor_id)
    if ancestor is None:
        return False
    return any(node.id == descendant_id for node in flatten(ancestor))
