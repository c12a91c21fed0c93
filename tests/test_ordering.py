"""Tests for ordering.py: reading-order sort, flattening and rebuild."""

from __future__ import annotations

import pytest

from annotation_tree.exceptions import AnnotationTreeError
from annotation_tree.models import AnnotationNode
from annotation_tree.ordering import (
    FlatAnnotation,
    build_index,
    build_parent_map,
    compare_position,
    find_node,
    flatten,
    flatten_with_parents,
    is_ancestor,
    rebuild_from_flat,
    sort_children,
)


def _node(node_id, x=0, y=0, w=10, h=10, children=None, component="Text", **kw):
    return AnnotationNode(
        id=node_id,
        dsl_node_id=node_id,
        fta_component=component,
        is_container=bool(children) or component != "Text",
        absolute_x=x,
        absolute_y=y,
        width=w,
        height=h,
        children=children or [],
        created_at=1,
        updated_at=1,
        **kw,
    )


def _tree():
    return _node("root", 0, 0, 400, 800, is_root=True, component="View", children=[
        _node("b", 100, 200, children=[_node("b2", 150, 210), _node("b1", 110, 210)]),
        _node("a", 300, 10),
        _node("c", 10, 200.5),
    ])


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


class TestCompare:

    def test_rows_ordered_by_y(self):
        assert compare_position(_node("a", 100, 10), _node("b", 0, 50)) < 0

    def test_same_row_within_tolerance_ordered_by_x(self):
        assert compare_position(_node("a", 100, 10.8), _node("b", 0, 10)) > 0

    def test_beyond_tolerance_is_a_new_row(self):
        assert compare_position(_node("a", 100, 11.5), _node("b", 0, 10)) > 0
        assert compare_position(_node("a", 0, 11.5), _node("b", 100, 10)) > 0


class TestSortChildren:

    def test_reading_order(self):
        root = sort_children(_tree())
        assert [c.id for c in root.children] == ["a", "c", "b"]
        assert [c.id for c in root.children[2].children] == ["b1", "b2"]

    def test_idempotent(self):
        once = sort_children(_tree())
        assert sort_children(once) == once

    def test_input_untouched(self):
        tree = _tree()
        sort_children(tree)
        assert [c.id for c in tree.children] == ["b", "a", "c"]

    def test_stable_for_identical_positions(self):
        root = _node("root", component="View", children=[_node("x", 5, 5), _node("y", 5, 5)])
        assert [c.id for c in sort_children(root).children] == ["x", "y"]


# ---------------------------------------------------------------------------
# Flattening
# ---------------------------------------------------------------------------


class TestFlatten:

    def test_pre_order(self):
        assert [n.id for n in flatten(_tree())] == ["root", "b", "b2", "b1", "a", "c"]

    def test_empty(self):
        assert flatten(None) == []

    def test_index_and_parents(self):
        tree = _tree()
        assert set(build_index(tree)) == {"root", "b", "b1", "b2", "a", "c"}
        parents = build_parent_map(tree)
        assert parents["b1"].id == "b"
        assert parents["a"].id == "root"
        assert "root" not in parents

    def test_find_and_ancestry(self):
        tree = _tree()
        assert find_node(tree, "b2").id == "b2"
        assert find_node(tree, "zz") is None
        assert is_ancestor(tree, "b", "b1")
        assert is_ancestor(tree, "b", "b")
        assert not is_ancestor(tree, "b1", "b")


class TestRoundTrip:

    def test_rebuild_restores_tree(self):
        tree = sort_children(_tree())
        assert rebuild_from_flat(flatten_with_parents(tree)) == tree

    def test_rebuild_ignores_record_order(self):
        tree = _tree()
        records = list(reversed(flatten_with_parents(tree)))
        assert rebuild_from_flat(records) == tree

    def test_rebuild_empty(self):
        assert rebuild_from_flat([]) is None

    def test_two_roots_rejected(self):
        records = [
            FlatAnnotation(_node("r1"), None, 0),
            FlatAnnotation(_node("r2"), None, 0),
        ]
        with pytest.raises(AnnotationTreeError):
            rebuild_from_flat(records)

    def test_orphans_rejected(self):
        records = [
            FlatAnnotation(_node("root", component="View"), None, 0),
            FlatAnnotation(_node("lost"), "missing-parent", 0),
        ]
        with pytest.raises(AnnotationTreeError):
            rebuild_from_flat(records)
