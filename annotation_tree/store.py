"""AnnotationTreeStore: the single entry point for annotation tree mutations.

The store owns one DSL document and the annotation tree overlaid on it.
Every mutator works on a copy of the tree and publishes the result through
_commit(), which re-sorts, re-flattens and bumps `revision`. Readers only
ever see committed trees.

Destructive create/update (a non-container component that would swallow
existing annotations) is not applied immediately. The mutator returns a
MutationResult carrying a PendingOperation; the host commits or drops it
with resolve_pending(). A pending operation is bound to the revision it was
computed against and goes stale on the next commit.

Usage:
    store = AnnotationTreeStore()
    store.initialize(dsl_document)
    store.create_annotation(dsl_node, "Card")
    result = store.create_annotation(other_node, "Button")
    if result.requires_confirmation:
        store.resolve_pending(result.pending.token, accepted=True)
"""

from __future__ import annotations

import logging
import random
import string
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from pydantic.alias_generators import to_camel

from .components import get_component_category, is_container_component, is_non_container_category
from .detach import (
    clone_tree,
    detach_descendants,
    insert_child,
    prune_empty_virtual,
    replace_node,
    splice_out,
)
from .exceptions import AnnotationTreeError, StalePendingOperationError, TreeNotInitializedError
from .geometry import (
    Box,
    DSLNode,
    calculate_dsl_node_absolute_position,
    collect_descendant_ids,
    dsl_node_box,
    find_dsl_node,
    is_dsl_ancestor,
    iter_dsl_with_position,
    node_size,
    resolve_dsl_root,
)
from .models import (
    AnnotationNode,
    AnnotationSnapshot,
    DropPosition,
    MoveResult,
    MoveValidation,
    MutationResult,
    NodeType,
    PendingOperation,
    SelectedNodeItem,
    normalize_snapshot,
    now_ms,
)
from .moves import apply_move, validate_move
from .ordering import build_index, build_parent_map, flatten, is_ancestor, sort_children
from .selection import SelectionSet
from .settings import (
    ROOT_ANNOTATION_ID,
    ROOT_COMPONENT,
    ROOT_DEFAULT_HEIGHT,
    ROOT_DEFAULT_WIDTH,
    ROOT_NAME,
    VIRTUAL_ANNOTATION_PREFIX,
    VIRTUAL_CONTAINER_COMMENT,
)

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]

# Fields a host may change through update_annotation() / create extras
_UPDATABLE_FIELDS = ("fta_component", "name", "comment", "props", "layout", "is_main_page")
_EXTRA_FIELDS = ("name", "comment", "props", "layout", "is_main_page")
_FIELD_ALIASES = {to_camel(f): f for f in _UPDATABLE_FIELDS}

_BASE36 = string.digits + string.ascii_lowercase


def generate_virtual_id(now: Optional[int] = None) -> str:
    """virtual-annotation-<ms>-<6 base36 chars>"""
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"{VIRTUAL_ANNOTATION_PREFIX}{now if now is not None else now_ms()}-{suffix}"


def _pick_fields(values: Optional[Dict[str, Any]], allowed: Tuple[str, ...]) -> Dict[str, Any]:
    picked: Dict[str, Any] = {}
    for key, value in (values or {}).items():
        name = _FIELD_ALIASES.get(key, key)
        if name in allowed:
            picked[name] = value
    return picked


@dataclass
class _PendingCommit:
    operation: PendingOperation
    accepted_root: AnnotationNode
    op_name: str


class AnnotationTreeStore:
    """Annotation tree over one DSL document, plus the current selection."""

    def __init__(self, dsl_document: Optional[DSLNode] = None):
        self._dsl_root: Optional[DSLNode] = None
        self._root: Optional[AnnotationNode] = None
        self._annotations: List[AnnotationNode] = []
        self._index: Dict[str, AnnotationNode] = {}
        self._revision = 0
        self._pending: Optional[_PendingCommit] = None
        self._selection = SelectionSet(self._selection_is_ancestor)
        if dsl_document is not None:
            self.initialize(dsl_document)

    # ------------------------------------------------------------------
    # Published state
    # ------------------------------------------------------------------

    @property
    def root(self) -> Optional[AnnotationNode]:
        return self._root

    @property
    def annotations(self) -> List[AnnotationNode]:
        """Pre-order flattened tree, root first."""
        return list(self._annotations)

    @property
    def annotation_index(self) -> Dict[str, AnnotationNode]:
        return dict(self._index)

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def dsl_root(self) -> Optional[DSLNode]:
        return self._dsl_root

    @property
    def selection(self) -> SelectionSet:
        return self._selection

    @property
    def pending(self) -> Optional[PendingOperation]:
        return self._pending.operation if self._pending else None

    def _commit(self, new_root: Optional[AnnotationNode], op_name: str) -> None:
        sorted_root = sort_children(new_root) if new_root is not None else None
        self._root = sorted_root
        self._annotations = flatten(sorted_root)
        self._index = build_index(sorted_root)
        self._revision += 1
        # Selected annotations that no longer exist drop out of the selection
        self._selection.replace(
            item for item in self._selection
            if item.type == NodeType.DSL or item.id in self._index
        )
        logger.info(
            f"{op_name}: committed revision {self._revision} ({len(self._annotations)} annotations)"
        )

    # ------------------------------------------------------------------
    # Load / export
    # ------------------------------------------------------------------

    def initialize(self, dsl_document: DSLNode) -> AnnotationNode:
        """Start a fresh tree for a DSL document (root node or export envelope)."""
        dsl_root = resolve_dsl_root(dsl_document)
        if dsl_root is None:
            raise AnnotationTreeError("DSL document has no root node")

        width, height = node_size(dsl_root)
        now = now_ms()
        root = AnnotationNode(
            id=ROOT_ANNOTATION_ID,
            dsl_node_id=dsl_root.get("id"),
            fta_component=ROOT_COMPONENT,
            name=ROOT_NAME,
            is_root=True,
            is_container=True,
            children=[],
            absolute_x=0,
            absolute_y=0,
            width=width or ROOT_DEFAULT_WIDTH,
            height=height or ROOT_DEFAULT_HEIGHT,
            created_at=now,
            updated_at=now,
        )
        self._dsl_root = dsl_root
        self._pending = None
        self._selection.clear()
        self._commit(root, "initialize")
        return root

    def set_dsl_document(self, dsl_document: Optional[DSLNode]) -> None:
        """Swap the DSL document without touching the annotation tree."""
        self._dsl_root = resolve_dsl_root(dsl_document)

    def load_annotations(self, root: Optional[Union[AnnotationNode, Dict[str, Any]]]) -> None:
        """Replace the tree with an already-validated one (None clears it)."""
        if isinstance(root, dict):
            root = AnnotationNode.model_validate(root)
        self._pending = None
        self._selection.clear()
        self._commit(root, "load_annotations")

    def load_snapshot(self, snapshot: Any) -> bool:
        """Load a stored snapshot; returns False when it holds no tree."""
        normalized = normalize_snapshot(snapshot)
        if normalized is None or normalized.root_annotation is None:
            logger.warning("load_snapshot: snapshot carries no rootAnnotation")
            return False
        self.load_annotations(normalized.root_annotation)
        return True

    def export_snapshot(self) -> AnnotationSnapshot:
        return AnnotationSnapshot(root_annotation=self._root, saved_at=now_ms())

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_by_id(self, annotation_id: str) -> Optional[AnnotationNode]:
        return self._index.get(annotation_id)

    def find_by_dsl_node_id(self, dsl_node_id: str) -> Optional[AnnotationNode]:
        if not dsl_node_id:
            return None
        for node in self._annotations:
            if node.dsl_node_id == dsl_node_id:
                return node
        return None

    def find_parent(self, annotation_id: str) -> Optional[AnnotationNode]:
        return build_parent_map(self._root).get(annotation_id)

    def is_ancestor(self, ancestor_id: str, descendant_id: str) -> bool:
        return is_ancestor(self._root, ancestor_id, descendant_id)

    def find_dsl_node_by_id(self, dsl_node_id: str) -> Optional[DSLNode]:
        return find_dsl_node(self._dsl_root, dsl_node_id)

    def calculate_dsl_node_absolute_position(self, node_or_id: Union[DSLNode, str]) -> Tuple[float, float]:
        target_id = node_or_id if isinstance(node_or_id, str) else node_or_id.get("id", "")
        return calculate_dsl_node_absolute_position(self._dsl_root, target_id)

    def find_best_parent(self, box: Box, root: Optional[AnnotationNode] = None) -> AnnotationNode:
        """Smallest-area container annotation fully enclosing `box`; the root otherwise.

        Only containers that enclose the box are descended into. On equal
        area the deeper container wins.
        """
        root = root if root is not None else self._root
        if root is None:
            raise TreeNotInitializedError("annotation tree is not initialized")

        best = root
        smallest = root.box.area

        def _search(node: AnnotationNode) -> None:
            nonlocal best, smallest
            if not node.is_container or not node.box.contains(box):
                return
            if node.box.area <= smallest:
                best, smallest = node, node.box.area
            for child in node.children:
                _search(child)

        for child in root.children:
            _search(child)
        return best

    # ------------------------------------------------------------------
    # Create / delete / update
    # ------------------------------------------------------------------

    def _resolve_dsl_node(self, dsl_node: Union[DSLNode, str]) -> Optional[DSLNode]:
        if isinstance(dsl_node, str):
            return self.find_dsl_node_by_id(dsl_node)
        return dsl_node

    def create_annotation(
        self,
        dsl_node: Union[DSLNode, str],
        component_type: str,
        extra: Optional[Dict[str, Any]] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> MutationResult:
        """Annotate one DSL node as `component_type`.

        Existing annotations on DSL descendants of the node are detached and
        become its children when the component can contain children. For a
        non-container component they would be discarded, which needs
        confirmation.
        """
        if self._root is None:
            return MutationResult(False, "Annotation tree is not initialized")
        node = self._resolve_dsl_node(dsl_node)
        if node is None or not node.get("id"):
            return MutationResult(False, "DSL node not found")

        dsl_id = node["id"]
        if self.find_by_dsl_node_id(dsl_id) is not None:
            logger.info(f"create_annotation: '{dsl_id}' is already annotated")
            return MutationResult(False, "This DSL node is already annotated", annotation_id=dsl_id)

        logger.info(f"create_annotation: start dsl_node={dsl_id} component={component_type}")
        descendant_ids = collect_descendant_ids(node)
        shadowed = [
            a for a in self._annotations
            if not a.is_root and a.dsl_node_id in descendant_ids
        ]
        category = get_component_category(component_type)

        try:
            new_root = self._build_created(node, component_type, extra, shadowed)
        except AnnotationTreeError as e:
            logger.error(f"create_annotation: aborted for '{dsl_id}': {e}")
            return MutationResult(False, str(e), annotation_id=dsl_id)

        if shadowed and is_non_container_category(category):
            reason = (
                f"'{dsl_id}' contains {len(shadowed)} annotated node(s); "
                f"creating it as non-container '{component_type}' removes them"
            )
            return self._request_confirmation(
                "create", "create_annotation", reason, dsl_id, new_root,
                [a.id for a in shadowed], confirm,
            )

        self._commit(new_root, "create_annotation")
        return MutationResult(True, annotation_id=dsl_id)

    def _build_created(
        self,
        node: DSLNode,
        component_type: str,
        extra: Optional[Dict[str, Any]],
        shadowed: List[AnnotationNode],
    ) -> AnnotationNode:
        box = dsl_node_box(self._dsl_root, node)
        # The parent picked before detaching survives the detach even if it is
        # a virtual container emptied by it
        candidate = self.find_best_parent(box)
        detached = detach_descendants(self._root, {a.id for a in shadowed}, preserve_ids={candidate.id})
        if detached.detached:
            logger.info(
                f"create_annotation: detached {len(detached.detached)} descendant annotation(s)"
            )

        container_like = is_container_component(component_type)
        now = now_ms()
        annotation = AnnotationNode(
            id=node["id"],
            dsl_node_id=node["id"],
            dsl_node=node,
            fta_component=component_type,
            is_container=container_like,
            children=detached.detached if container_like else [],
            absolute_x=box.x,
            absolute_y=box.y,
            width=box.width,
            height=box.height,
            created_at=now,
            updated_at=now,
            **_pick_fields(extra, _EXTRA_FIELDS),
        )
        if candidate.id in build_index(detached.node):
            parent_id = candidate.id
        else:
            parent_id = self.find_best_parent(box, detached.node).id
        return insert_child(detached.node, parent_id, annotation)

    def delete_annotation(self, annotation_id: str, delete_children: bool = False) -> MutationResult:
        """Remove an annotation; its children are promoted unless delete_children."""
        if self._root is None:
            return MutationResult(False, "Annotation tree is not initialized")
        node = self._index.get(annotation_id)
        if node is None:
            return MutationResult(False, "Annotation not found", annotation_id=annotation_id)
        if node.is_root:
            return MutationResult(False, "The root annotation cannot be deleted", annotation_id=annotation_id)

        try:
            new_root = splice_out(self._root, annotation_id, delete_children=delete_children)
        except AnnotationTreeError as e:
            logger.error(f"delete_annotation: aborted for '{annotation_id}': {e}")
            return MutationResult(False, str(e), annotation_id=annotation_id)

        logger.info(
            f"delete_annotation: '{annotation_id}' "
            f"({'with' if delete_children else 'promoting'} {len(node.children)} children)"
        )
        self._commit(prune_empty_virtual(new_root), "delete_annotation")
        return MutationResult(True, annotation_id=annotation_id)

    def update_annotation(
        self,
        annotation_id: str,
        updates: Dict[str, Any],
        confirm: Optional[ConfirmCallback] = None,
    ) -> MutationResult:
        """Merge allowed field updates into one annotation.

        Geometry, identity, children and timestamps cannot be changed here.
        Turning an annotation with children into a non-container needs
        confirmation; accepting clears its children.
        """
        if self._root is None:
            return MutationResult(False, "Annotation tree is not initialized")
        node = self._index.get(annotation_id)
        if node is None:
            return MutationResult(False, "Annotation not found", annotation_id=annotation_id)

        fields = _pick_fields(updates, _UPDATABLE_FIELDS)
        ignored = sorted(set(updates) - set(fields) - {to_camel(f) for f in fields})
        if ignored:
            logger.debug(f"update_annotation: ignoring fields {ignored}")

        next_component = fields.get("fta_component", node.fta_component)
        # The root stays a container whatever component it is labelled with
        next_is_container = node.is_root or is_container_component(next_component)
        clear_children = bool(node.children) and not next_is_container

        changes: Dict[str, Any] = dict(fields, updated_at=now_ms())
        if ("fta_component" in fields and not node.is_root) or clear_children:
            changes["is_container"] = next_is_container
        if clear_children:
            changes["children"] = []

        try:
            new_root = replace_node(self._root, annotation_id, node.model_copy(update=changes))
        except AnnotationTreeError as e:
            logger.error(f"update_annotation: aborted for '{annotation_id}': {e}")
            return MutationResult(False, str(e), annotation_id=annotation_id)
        new_root = prune_empty_virtual(new_root)

        if clear_children:
            reason = (
                f"'{annotation_id}' has {len(node.children)} child annotation(s); "
                f"changing it to non-container '{next_component}' removes them"
            )
            affected = [n.id for n in flatten(node)[1:]]
            return self._request_confirmation(
                "update", "update_annotation", reason, annotation_id, new_root, affected, confirm,
            )

        logger.info(f"update_annotation: '{annotation_id}' fields={sorted(fields)}")
        self._commit(new_root, "update_annotation")
        return MutationResult(True, annotation_id=annotation_id)

    # ------------------------------------------------------------------
    # Destructive confirmation
    # ------------------------------------------------------------------

    def _request_confirmation(
        self,
        kind: str,
        op_name: str,
        reason: str,
        annotation_id: str,
        accepted_root: AnnotationNode,
        affected_ids: List[str],
        confirm: Optional[ConfirmCallback],
    ) -> MutationResult:
        operation = PendingOperation(
            token=uuid.uuid4().hex,
            kind=kind,
            reason=reason,
            revision=self._revision,
            annotation_id=annotation_id,
            affected_ids=affected_ids,
        )
        if confirm is not None:
            if not confirm(reason):
                logger.info(f"{op_name}: declined for '{annotation_id}'")
                return MutationResult(False, f"Declined: {reason}", annotation_id=annotation_id)
            self._commit(accepted_root, op_name)
            return MutationResult(True, annotation_id=annotation_id)

        if self._pending is not None:
            logger.info(f"{op_name}: replacing pending operation {self._pending.operation.token}")
        self._pending = _PendingCommit(operation, accepted_root, op_name)
        logger.info(f"{op_name}: awaiting confirmation for '{annotation_id}' (token={operation.token})")
        return MutationResult(False, reason, annotation_id=annotation_id, pending=operation)

    def _take_pending(self, token: str) -> _PendingCommit:
        pending = self._pending
        if pending is None or pending.operation.token != token:
            raise StalePendingOperationError(f"no pending operation with token '{token}'")
        self._pending = None
        if pending.operation.revision != self._revision:
            raise StalePendingOperationError(
                f"pending operation is stale: issued at revision {pending.operation.revision}, "
                f"tree is at {self._revision}"
            )
        return pending

    def resolve_pending(self, token: str, accepted: bool) -> MutationResult:
        """Commit (accepted=True) or drop a pending destructive operation."""
        try:
            pending = self._take_pending(token)
        except StalePendingOperationError as e:
            logger.warning(f"resolve_pending: {e}")
            return MutationResult(False, str(e))

        annotation_id = pending.operation.annotation_id
        if not accepted:
            logger.info(f"{pending.op_name}: declined for '{annotation_id}'")
            return MutationResult(False, f"Declined: {pending.operation.reason}", annotation_id=annotation_id)

        self._commit(pending.accepted_root, pending.op_name)
        return MutationResult(True, annotation_id=annotation_id)

    # ------------------------------------------------------------------
    # Combine
    # ------------------------------------------------------------------

    def combine_selected_dsl_nodes(self, component_type: str) -> MutationResult:
        """Group the current selection under one new annotation.

        The new annotation is backed by the smallest free DSL node enclosing
        the selection, or is a virtual container sized to the selection when
        no such node exists. Annotated nodes inside the selection box move
        under it; a virtual container among them is unwrapped.
        """
        if self._root is None:
            return MutationResult(False, "Annotation tree is not initialized")
        if not len(self._selection):
            return MutationResult(False, "Nothing is selected")

        selected_annotations = [
            node for node in (self._index.get(i) for i in self._selection.ids_of(NodeType.ANNOTATION))
            if node is not None and not node.is_root
        ]
        selected_dsl = [
            node for node in (self.find_dsl_node_by_id(i) for i in self._selection.ids_of(NodeType.DSL))
            if node is not None
        ]
        logger.info(
            f"combine_selected_dsl_nodes: start component={component_type} "
            f"annotations={len(selected_annotations)} dsl_nodes={len(selected_dsl)}"
        )
        if not selected_annotations and not selected_dsl:
            return MutationResult(False, "Selection holds no annotations or DSL nodes")

        boxes = [n.box for a in selected_annotations for n in flatten(a)]
        boxes.extend(dsl_node_box(self._dsl_root, n) for n in selected_dsl)
        union = Box.union(boxes)

        now = now_ms()
        parents = build_parent_map(self._root)
        in_bounds = [a for a in self._annotations if not a.is_root and union.contains(a.box)]
        in_bounds_ids = {a.id for a in in_bounds}
        picks = [
            a for a in in_bounds
            if parents.get(a.id) is None or parents[a.id].id not in in_bounds_ids
        ]

        attachments: List[AnnotationNode] = []
        for pick in picks:
            if pick.is_virtual:
                attachments.extend(clone_tree(c, now) for c in pick.children)
            else:
                attachments.append(clone_tree(pick, now))

        if not attachments and not selected_dsl:
            return MutationResult(False, "No annotations fall inside the selection")
        if attachments and not is_container_component(component_type):
            return MutationResult(
                False,
                f"'{component_type}' cannot contain the {len(attachments)} selected annotation(s)",
            )

        containing = self._find_containing_dsl_node(union, {n["id"] for n in selected_dsl})
        if containing is None and not attachments:
            return MutationResult(False, "No DSL node encloses the selection and nothing can be grouped")

        try:
            detached = detach_descendants(self._root, {p.id for p in picks})
            if containing is not None:
                box = dsl_node_box(self._dsl_root, containing)
                new_id, dsl_id, comment = containing["id"], containing["id"], None
            else:
                box = union
                new_id, dsl_id, comment = generate_virtual_id(now), None, VIRTUAL_CONTAINER_COMMENT

            annotation = AnnotationNode(
                id=new_id,
                dsl_node_id=dsl_id,
                dsl_node=containing,
                fta_component=component_type,
                comment=comment,
                is_container=is_container_component(component_type),
                children=attachments,
                absolute_x=box.x,
                absolute_y=box.y,
                width=box.width,
                height=box.height,
                created_at=now,
                updated_at=now,
            )
            parent = self.find_best_parent(box, detached.node)
            new_root = insert_child(detached.node, parent.id, annotation)
        except AnnotationTreeError as e:
            logger.error(f"combine_selected_dsl_nodes: aborted: {e}")
            return MutationResult(False, str(e))

        logger.info(
            f"combine_selected_dsl_nodes: '{new_id}' "
            f"({'virtual' if containing is None else 'dsl-backed'}) under '{parent.id}' "
            f"with {len(attachments)} children"
        )
        self._selection.clear()
        self._commit(new_root, "combine_selected_dsl_nodes")
        return MutationResult(True, annotation_id=new_id)

    def _find_containing_dsl_node(self, box: Box, selected_dsl_ids: Set[str]) -> Optional[DSLNode]:
        """Smallest DSL node enclosing `box` that is neither annotated nor selected."""
        annotated = {a.dsl_node_id for a in self._annotations if a.dsl_node_id}
        best: Optional[DSLNode] = None
        smallest = float("inf")
        for node, abs_x, abs_y in iter_dsl_with_position(self._dsl_root):
            node_id = node.get("id")
            if node_id in annotated or node_id in selected_dsl_ids:
                continue
            width, height = node_size(node)
            candidate = Box(abs_x, abs_y, width, height)
            if candidate.contains(box) and candidate.area < smallest:
                best, smallest = node, candidate.area
        return best

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    def validate_move(self, source_id: str, target_id: str, position: DropPosition) -> MoveValidation:
        return validate_move(self._root, source_id, target_id, position)

    async def move_annotation(self, source_id: str, target_id: str, position: DropPosition) -> MoveResult:
        """Drag `source_id` before/inside/after `target_id`."""
        validation = self.validate_move(source_id, target_id, position)
        if not validation.valid:
            logger.info(f"move_annotation: rejected '{source_id}' {position} '{target_id}': {validation.reason}")
            return MoveResult(False, validation.reason)

        try:
            new_root = apply_move(self._root, source_id, target_id, position)
        except AnnotationTreeError as e:
            logger.error(f"move_annotation: aborted '{source_id}' {position} '{target_id}': {e}")
            return MoveResult(False, str(e))

        self._commit(new_root, "move_annotation")
        return MoveResult(True)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_annotation(self, annotation_id: str, multi: bool = False, select_parent: bool = False) -> bool:
        if annotation_id not in self._index:
            return False
        item = SelectedNodeItem(annotation_id, NodeType.ANNOTATION)
        return self._selection.select(item, multi=multi, select_parent=select_parent)

    def select_dsl_node(self, dsl_node_id: str, multi: bool = False, select_parent: bool = False) -> bool:
        """Select a raw DSL node; an annotated node selects its annotation instead."""
        annotation = self.find_by_dsl_node_id(dsl_node_id)
        if annotation is not None:
            return self.select_annotation(annotation.id, multi=multi, select_parent=select_parent)
        if self.find_dsl_node_by_id(dsl_node_id) is None:
            return False
        item = SelectedNodeItem(dsl_node_id, NodeType.DSL)
        return self._selection.select(item, multi=multi, select_parent=select_parent)

    def clear_selection(self) -> None:
        self._selection.clear()

    def _item_dsl_id(self, item: SelectedNodeItem) -> Optional[str]:
        if item.type == NodeType.DSL:
            return item.id
        node = self._index.get(item.id)
        return node.dsl_node_id if node is not None else None

    def _item_box(self, item: SelectedNodeItem) -> Optional[Box]:
        if item.type == NodeType.ANNOTATION:
            node = self._index.get(item.id)
            return node.box if node is not None else None
        node = self.find_dsl_node_by_id(item.id)
        return dsl_node_box(self._dsl_root, node) if node is not None else None

    def _selection_is_ancestor(self, ancestor: SelectedNodeItem, descendant: SelectedNodeItem) -> bool:
        if ancestor == descendant:
            return False
        if ancestor.type == NodeType.ANNOTATION and descendant.type == NodeType.ANNOTATION:
            outer, inner = self._item_box(ancestor), self._item_box(descendant)
            return outer is not None and inner is not None and outer.contains(inner)

        ancestor_dsl, descendant_dsl = self._item_dsl_id(ancestor), self._item_dsl_id(descendant)
        if ancestor_dsl and descendant_dsl:
            return is_dsl_ancestor(self._dsl_root, ancestor_dsl, descendant_dsl)

        # Virtual annotations have no DSL node; fall back to geometry
        outer, inner = self._item_box(ancestor), self._item_box(descendant)
        return outer is not None and inner is not None and outer.contains(inner)
