"""DSL tree geometry: absolute positions and bounding boxes.

DSL nodes are plain mappings exported by the design tool:

    {"id": "12:3", "type": "FRAME", "name": "Header",
     "layoutStyle": {"width": 375, "height": 44, "relativeX": 0, "relativeY": 20},
     "children": [...]}

Relative coordinates are relative to the immediate parent, so an absolute
position is only obtainable by walking down from the root. Every function
here is pure; missing or null geometry is read as 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Set, Tuple

logger = logging.getLogger(__name__)

DSLNode = Dict[str, Any]


# ---------------------------------------------------------------------------
# Bounding box
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Box:
    """Axis-aligned box in absolute design coordinates."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, other: "Box") -> bool:
        """True if `other` lies fully inside this box (edges inclusive)."""
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    @classmethod
    def union(cls, boxes: Iterable["Box"]) -> Optional["Box"]:
        """Smallest box enclosing all `boxes`, or None for an empty input."""
        boxes = list(boxes)
        if not boxes:
            return None
        min_x = min(b.x for b in boxes)
        min_y = min(b.y for b in boxes)
        max_x = max(b.right for b in boxes)
        max_y = max(b.bottom for b in boxes)
        return cls(min_x, min_y, max_x - min_x, max_y - min_y)


# ---------------------------------------------------------------------------
# Layout style access
# ---------------------------------------------------------------------------


def _layout_value(node: DSLNode, key: str) -> float:
    style = node.get("layoutStyle") or {}
    return style.get(key) or 0


def node_size(node: DSLNode) -> Tuple[float, float]:
    """(width, height) of a DSL node, 0 when absent."""
    return _layout_value(node, "width"), _layout_value(node, "height")


def node_offset(node: DSLNode) -> Tuple[float, float]:
    """(relativeX, relativeY) of a DSL node, 0 when absent."""
    return _layout_value(node, "relativeX"), _layout_value(node, "relativeY")


def resolve_dsl_root(document: Optional[DSLNode]) -> Optional[DSLNode]:
    """Return the DSL root node from either a bare node or an export envelope.

    Accepts:
        - a node mapping with an "id"
        - {"dsl": {"styles": {...}, "nodes": [root, ...]}}
        - {"nodes": [root, ...]}
    """
    if not isinstance(document, dict):
        return None
    if "dsl" in document and isinstance(document["dsl"], dict):
        document = document["dsl"]
    nodes = document.get("nodes")
    if isinstance(nodes, list):
        return nodes[0] if nodes else None
    if "id" in document:
        return document
    return None


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


def iter_dsl_with_position(
    root: Optional[DSLNode],
) -> Iterator[Tuple[DSLNode, float, float]]:
    """Pre-order walk yielding (node, absolute_x, absolute_y)."""
    if root is None:
        return
    stack = [(root, 0.0, 0.0)]
    while stack:
        node, parent_x, parent_y = stack.pop()
        rel_x, rel_y = node_offset(node)
        abs_x, abs_y = parent_x + rel_x, parent_y + rel_y
        yield node, abs_x, abs_y
        children = node.get("children") or []
        for child in reversed(children):
            stack.append((child, abs_x, abs_y))


def find_dsl_node(root: Optional[DSLNode], node_id: str) -> Optional[DSLNode]:
    """Depth-first lookup of a DSL node by id."""
    for node, _, _ in iter_dsl_with_position(root):
        if node.get("id") == node_id:
            return node
    return None


def calculate_dsl_node_absolute_position(
    root: Optional[DSLNode],
    target_id: str,
) -> Tuple[float, float]:
    """Absolute (x, y) of `target_id`, summing relative offsets from the root.

    Returns (0, 0) when the target is not in the tree: no geometry, not an error.
    """
    for node, abs_x, abs_y in iter_dsl_with_position(root):
        if node.get("id") == target_id:
            return abs_x, abs_y
    logger.debug(f"calculate_dsl_node_absolute_position: '{target_id}' not found")
    return 0, 0


def dsl_node_box(root: Optional[DSLNode], node: DSLNode) -> Box:
    """Absolute bounding box of a DSL node."""
    x, y = calculate_dsl_node_absolute_position(root, node.get("id", ""))
    width, height = node_size(node)
    return Box(x, y, width, height)


def collect_descendant_ids(node: Optional[DSLNode]) -> Set[str]:
    """Ids of every DSL descendant of `node` (the node itself excluded)."""
    ids: Set[str] = set()
    if node is None:
        return ids
    stack = list(node.get("children") or [])
    while stack:
        current = stack.pop()
        ids.add(current.get("id", ""))
        stack.extend(current.get("children") or [])
    return ids


def is_dsl_ancestor(root: Optional[DSLNode], ancestor_id: str, descendant_id: str) -> bool:
    """True if `ancestor_id` is a strict DSL ancestor of `descendant_id`."""
    if not ancestor_id or ancestor_id == descendant_id:
        return False
    ancestor = find_dsl_node(root, ancestor_id)
    return descendant_id in collect_descendant_ids(ancestor)
