"""Annotation tree outline for code generation prompts.

summarize_annotation_tree() flattens the tree keeping depth, and
format_annotation_summary() renders it as an indented bullet list:

    - [root] Component <View> (container) (size: 720x1560, children: 1)
    - [12:3] Header <NavBar> (container) (size: 375x44, children: 1)
      - [12:4] Title <Text> (size: 120x20)

The root and its direct children share the first indentation level.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .models import AnnotationNode

EMPTY_TREE_NOTICE = (
    "The annotation tree is empty; derive the component structure from the design description."
)
UNNAMED_LABEL = "unnamed"


@dataclass
class AnnotationSummary:
    id: str
    depth: int
    child_count: int
    name: Optional[str] = None
    component: Optional[str] = None
    is_container: bool = False
    width: Optional[float] = None
    height: Optional[float] = None


def summarize_annotation_tree(root: Optional[AnnotationNode]) -> List[AnnotationSummary]:
    """Pre-order summaries; the root has depth 0."""
    summaries: List[AnnotationSummary] = []
    if root is None:
        return summaries

    def _visit(node: AnnotationNode, depth: int) -> None:
        summaries.append(AnnotationSummary(
            id=node.id or node.dsl_node_id or f"node-{len(summaries)}",
            depth=depth,
            child_count=len(node.children),
            name=node.name or None,
            component=node.fta_component or None,
            is_container=node.is_container,
            width=node.width,
            height=node.height,
        ))
        for child in node.children:
            _visit(child, depth + 1)

    _visit(root, 0)
    return summaries


def format_annotation_summary(summaries: List[AnnotationSummary]) -> str:
    if not summaries:
        return EMPTY_TREE_NOTICE

    lines: List[str] = []
    for item in summaries:
        indent = "  " * max(item.depth - 1, 0)
        label = [f"[{item.id}]", item.name or UNNAMED_LABEL]
        if item.component:
            label.append(f"<{item.component}>")
        if item.is_container:
            label.append("(container)")

        info = []
        if item.width and item.height:
            info.append(f"size: {round(item.width)}x{round(item.height)}")
        if item.child_count:
            info.append(f"children: {item.child_count}")
        suffix = f" ({', '.join(info)})" if info else ""
        lines.append(f"{indent}- {' '.join(label)}{suffix}")
    return "\n".join(lines)
