"""Structural checks over a whole annotation tree.

Used on trees loaded from storage, which bypass the store's mutators, and
by the `validate` CLI command.
"""

from __future__ import annotations

from collections import Counter
from typing import List, Optional

from .models import AnnotationNode
from .ordering import compare_position, flatten


def find_invariant_violations(root: Optional[AnnotationNode]) -> List[str]:
    """Human-readable list of violated tree invariants; empty when the tree is sound."""
    if root is None:
        return []

    problems: List[str] = []
    nodes = flatten(root)

    if not root.is_root:
        problems.append(f"top node '{root.id}' is not flagged as root")
    extra_roots = [n.id for n in nodes[1:] if n.is_root]
    if extra_roots:
        problems.append(f"nested root flags on {extra_roots}")

    for node_id, count in Counter(n.id for n in nodes).items():
        if count > 1:
            problems.append(f"annotation '{node_id}' appears {count} times")

    bound = Counter(n.dsl_node_id for n in nodes if n.dsl_node_id and not n.is_virtual)
    for dsl_id, count in bound.items():
        if count > 1:
            problems.append(f"DSL node '{dsl_id}' is bound by {count} annotations")

    for node in nodes:
        if node.children and not node.is_container:
            problems.append(f"non-container '{node.id}' has {len(node.children)} children")
        if node.is_virtual and not node.children:
            problems.append(f"virtual container '{node.id}' is empty")
        for before, after in zip(node.children, node.children[1:]):
            if compare_position(before, after) > 0:
                problems.append(f"children of '{node.id}' are out of order at '{after.id}'")
                break

    return problems
