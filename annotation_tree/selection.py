"""Selection set manager.

The selection is an ordered, duplicate-free list of SelectedNodeItem.
Multi-select keeps the set free of ancestor/descendant pairs:

- adding a descendant of a selected item is refused (select the parent,
  not the child);
- adding an ancestor of a selected item is refused unless the caller marks
  it as an explicit "select parent" action, in which case the selected
  descendants are dropped in favour of the parent.

Ancestry is decided by an injected predicate so the set stays independent
of the DSL and annotation trees.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, List, Optional

from .models import NodeType, SelectedNodeItem

logger = logging.getLogger(__name__)

AncestorPredicate = Callable[[SelectedNodeItem, SelectedNodeItem], bool]


def _never(_ancestor: SelectedNodeItem, _descendant: SelectedNodeItem) -> bool:
    return False


class SelectionSet:
    """Current multi-select; not part of the persisted tree."""

    def __init__(self, is_ancestor_of: Optional[AncestorPredicate] = None):
        self._items: List[SelectedNodeItem] = []
        self._is_ancestor_of = is_ancestor_of or _never

    # -- read ---------------------------------------------------------------

    @property
    def items(self) -> List[SelectedNodeItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[SelectedNodeItem]:
        return iter(list(self._items))

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def contains(self, item_id: str, item_type: NodeType) -> bool:
        return SelectedNodeItem(item_id, NodeType(item_type)) in self._items

    def ids_of(self, item_type: NodeType) -> List[str]:
        return [item.id for item in self._items if item.type == item_type]

    def last_of(self, item_type: NodeType) -> Optional[SelectedNodeItem]:
        for item in reversed(self._items):
            if item.type == item_type:
                return item
        return None

    # -- write --------------------------------------------------------------

    def clear(self) -> None:
        self._items = []

    def replace(self, items: Iterable[SelectedNodeItem]) -> None:
        """Set the selection verbatim (duplicates dropped, order kept)."""
        self._items = []
        for item in items:
            if item not in self._items:
                self._items.append(item)

    def select(
        self,
        item: SelectedNodeItem,
        multi: bool = False,
        select_parent: bool = False,
    ) -> bool:
        """Apply a click on `item`. Returns True if the selection changed."""
        if not multi:
            if self._items == [item]:
                return False
            self._items = [item]
            return True

        if item in self._items:
            self._items = [i for i in self._items if i != item]
            return True

        descendants = [i for i in self._items if self._is_ancestor_of(item, i)]
        if descendants and not select_parent:
            logger.debug(f"select: refused ancestor '{item.id}' of selected items")
            return False

        if any(self._is_ancestor_of(i, item) for i in self._items):
            logger.debug(f"select: refused descendant '{item.id}' of a selected item")
            return False

        self._items = [i for i in self._items if i not in descendants]
        self._items.append(item)
        return True

    def outermost(self, items: Optional[Iterable[SelectedNodeItem]] = None) -> List[SelectedNodeItem]:
        """Items not contained in any other item of the list (marquee filtering)."""
        pool = list(self._items if items is None else items)
        return [
            item for item in pool
            if not any(other != item and self._is_ancestor_of(other, item) for other in pool)
        ]
