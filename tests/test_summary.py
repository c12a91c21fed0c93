"""Tests for summary.py outline rendering."""

from __future__ import annotations

from annotation_tree.models import AnnotationNode
from annotation_tree.summary import (
    EMPTY_TREE_NOTICE,
    AnnotationSummary,
    format_annotation_summary,
    summarize_annotation_tree,
)


def _tree():
    return AnnotationNode.model_validate({
        "id": "root", "name": "Component", "ftaComponent": "View",
        "isRoot": True, "isContainer": True, "width": 720, "height": 1560,
        "children": [{
            "id": "12:3", "name": "Header", "ftaComponent": "NavBar",
            "isContainer": True, "width": 375, "height": 44,
            "children": [
                {"id": "12:4", "name": "Title", "ftaComponent": "Text", "width": 120.4, "height": 20},
                {"id": "12:5", "ftaComponent": "Icon"},
            ],
        }],
    })


class TestSummarize:

    def test_depths_in_pre_order(self):
        summaries = summarize_annotation_tree(_tree())
        assert [(s.id, s.depth) for s in summaries] == [
            ("root", 0), ("12:3", 1), ("12:4", 2), ("12:5", 2),
        ]
        assert summaries[1].child_count == 2

    def test_empty_tree(self):
        assert summarize_annotation_tree(None) == []


class TestFormat:

    def test_outline(self):
        text = format_annotation_summary(summarize_annotation_tree(_tree()))
        assert text.splitlines() == [
            "- [root] Component <View> (container) (size: 720x1560, children: 1)",
            "- [12:3] Header <NavBar> (container) (size: 375x44, children: 2)",
            "  - [12:4] Title <Text> (size: 120x20)",
            "  - [12:5] unnamed <Icon>",
        ]

    def test_empty(self):
        assert format_annotation_summary([]) == EMPTY_TREE_NOTICE

    def test_missing_component(self):
        line = format_annotation_summary([AnnotationSummary(id="x", depth=3, child_count=0)])
        assert line == "    - [x] unnamed"
