"""Tests for detach.py copy-on-write primitives."""

from __future__ import annotations

import pytest

from annotation_tree.detach import (
    clone_tree,
    detach_descendants,
    insert_child,
    insert_relative,
    prune_empty_virtual,
    recompute_container_bounds,
    remove_subtree,
    replace_node,
    splice_out,
)
from annotation_tree.exceptions import AnnotationNotFoundError, InvalidMoveError
from annotation_tree.geometry import Box
from annotation_tree.models import AnnotationNode
from annotation_tree.ordering import build_index, flatten

VIRTUAL_ID = "virtual-annotation-1700000000000-abc123"


def _node(node_id, x=0, y=0, w=10, h=10, children=None, container=False, **kw):
    return AnnotationNode(
        id=node_id,
        dsl_node_id=None if node_id.startswith("virtual-") else node_id,
        fta_component="Container" if container else "Text",
        is_container=container,
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
    #   root
    #   ├── card (container)
    #   │   ├── t1
    #   │   └── t2
    #   └── virtual
    #       └── t3
    return _node("root", 0, 0, 400, 800, container=True, is_root=True, children=[
        _node("card", 10, 10, 200, 100, container=True, children=[
            _node("t1", 20, 20),
            _node("t2", 60, 20),
        ]),
        _node(VIRTUAL_ID, 10, 300, 50, 50, container=True, children=[
            _node("t3", 10, 300),
        ]),
    ])


def _ids(root):
    return [n.id for n in flatten(root)]


# ---------------------------------------------------------------------------
# Detach
# ---------------------------------------------------------------------------


class TestDetachDescendants:

    def test_collects_in_traversal_order(self):
        result = detach_descendants(_tree(), {"t2", "t1"})
        assert [n.id for n in result.detached] == ["t1", "t2"]
        assert _ids(result.node) == ["root", "card", VIRTUAL_ID, "t3"]

    def test_input_untouched(self):
        tree = _tree()
        before = tree.model_dump()
        detach_descendants(tree, {"t1", "t3"})
        assert tree.model_dump() == before

    def test_removed_subtree_travels_whole(self):
        result = detach_descendants(_tree(), {"card"})
        assert [c.id for c in result.detached[0].children] == ["t1", "t2"]

    def test_emptied_virtual_is_pruned(self):
        result = detach_descendants(_tree(), {"t3"})
        assert VIRTUAL_ID not in _ids(result.node)

    def test_preserved_virtual_survives(self):
        result = detach_descendants(_tree(), {"t3"}, preserve_ids={VIRTUAL_ID})
        assert VIRTUAL_ID in _ids(result.node)

    def test_untouched_branches_are_shared(self):
        tree = _tree()
        result = detach_descendants(tree, {"t3"})
        assert result.node.children[0] is tree.children[0]

    def test_nothing_matched(self):
        tree = _tree()
        result = detach_descendants(tree, {"nope"})
        assert result.node is tree
        assert result.detached == []


class TestRemoveSubtree:

    def test_returns_removed_node(self):
        new_root, removed = remove_subtree(_tree(), "t3")
        assert removed.id == "t3"
        # emptied virtual containers are left for the caller to prune
        assert VIRTUAL_ID in _ids(new_root)

    def test_root_cannot_be_removed(self):
        with pytest.raises(InvalidMoveError):
            remove_subtree(_tree(), "root")

    def test_missing_node(self):
        with pytest.raises(AnnotationNotFoundError):
            remove_subtree(_tree(), "nope")


class TestPrune:

    def test_prunes_bottom_up(self):
        inner = _node("virtual-annotation-2-inner1", container=True)
        outer = _node("virtual-annotation-3-outer1", container=True, children=[inner])
        root = _node("root", container=True, is_root=True, children=[outer, _node("keep")])
        assert _ids(prune_empty_virtual(root)) == ["root", "keep"]

    def test_real_empty_containers_stay(self):
        root = _node("root", container=True, is_root=True, children=[_node("box", container=True)])
        assert _ids(prune_empty_virtual(root)) == ["root", "box"]


# ---------------------------------------------------------------------------
# Reattach
# ---------------------------------------------------------------------------


class TestInsert:

    def test_insert_child_appends(self):
        root = insert_child(_tree(), "card", _node("t9"))
        assert [c.id for c in build_index(root)["card"].children] == ["t1", "t2", "t9"]

    def test_insert_child_missing_parent(self):
        with pytest.raises(AnnotationNotFoundError):
            insert_child(_tree(), "nope", _node("t9"))

    @pytest.mark.parametrize("position, expected", [
        ("before", ["t9", "t1", "t2"]),
        ("after", ["t1", "t9", "t2"]),
    ])
    def test_insert_relative_siblings(self, position, expected):
        root = insert_relative(_tree(), "t1", _node("t9"), position)
        assert [c.id for c in build_index(root)["card"].children] == expected

    def test_insert_relative_inside_touches_target(self):
        root = insert_relative(_tree(), "card", _node("t9"), "inside", updated_at=99)
        card = build_index(root)["card"]
        assert card.children[-1].id == "t9"
        assert card.updated_at == 99

    def test_cannot_insert_beside_root(self):
        with pytest.raises(InvalidMoveError):
            insert_relative(_tree(), "root", _node("t9"), "before")

    def test_missing_target(self):
        with pytest.raises(AnnotationNotFoundError):
            insert_relative(_tree(), "nope", _node("t9"), "after")


class TestReplaceAndSplice:

    def test_replace_node(self):
        replacement = _node("t1", 20, 20, name="Title")
        root = replace_node(_tree(), "t1", replacement)
        assert build_index(root)["t1"].name == "Title"

    def test_splice_promotes_children_in_place(self):
        root = _node("root", container=True, is_root=True, children=[
            _node("a"),
            _node("mid", container=True, children=[_node("m1"), _node("m2")]),
            _node("z"),
        ])
        assert [c.id for c in splice_out(root, "mid").children] == ["a", "m1", "m2", "z"]

    def test_splice_with_children(self):
        root = splice_out(_tree(), "card", delete_children=True)
        assert _ids(root) == ["root", VIRTUAL_ID, "t3"]

    def test_splice_root_rejected(self):
        with pytest.raises(InvalidMoveError):
            splice_out(_tree(), "root")


# ---------------------------------------------------------------------------
# Bounds / cloning
# ---------------------------------------------------------------------------


class TestRecomputeBounds:

    def test_virtual_fits_children_exactly(self):
        virtual = _node(VIRTUAL_ID, 0, 0, 500, 500, container=True, children=[
            _node("a", 100, 100, 10, 10),
            _node("b", 150, 120, 20, 30),
        ])
        root = _node("root", 0, 0, 800, 800, container=True, is_root=True, children=[virtual])
        fitted = build_index(recompute_container_bounds(root))[VIRTUAL_ID]
        assert fitted.box == Box(100, 100, 70, 50)

    def test_real_container_only_grows(self):
        card = _node("card", 50, 50, 100, 100, container=True, children=[
            _node("inside", 60, 60, 10, 10),
            _node("outside", 10, 200, 20, 20),
        ])
        root = _node("root", 0, 0, 800, 800, container=True, is_root=True, children=[card])
        grown = build_index(recompute_container_bounds(root, updated_at=42))["card"]
        assert grown.box == Box(10, 50, 140, 170)
        assert grown.updated_at == 42

    def test_real_container_never_shrinks(self):
        card = _node("card", 0, 0, 300, 300, container=True, children=[_node("a", 10, 10)])
        root = _node("root", 0, 0, 800, 800, container=True, is_root=True, children=[card])
        assert build_index(recompute_container_bounds(root))["card"].box == Box(0, 0, 300, 300)


class TestCloneTree:

    def test_fresh_copies_with_timestamp(self):
        tree = _tree()
        clone = clone_tree(tree, updated_at=7)
        assert clone is not tree
        assert all(n.updated_at == 7 for n in flatten(clone))
        assert all(n.updated_at == 1 for n in flatten(tree))
