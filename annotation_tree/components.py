"""Component category table.

Categories decide container behaviour:
- atomic: complete leaf components (Button, Text, ...)
- slot: components that expose a content slot (Card, ListItem, ...)
- business: complete composite widgets (Calendar, Cascader, ...)
- container: pure layout boxes (View, Container, Flex, Grid)

slot and container annotations may own children; atomic and business never do.
Unknown component names are treated as atomic.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict


class ComponentCategory(str, Enum):
    ATOMIC = "atomic"
    SLOT = "slot"
    BUSINESS = "business"
    CONTAINER = "container"


ATOMIC_COMPONENTS = {
    "Button", "Icon", "Text", "Avatar", "Badge", "Tag", "Image",
    "ProgressBar", "CircularProgress", "InputNumber", "Radio", "Toggle",
    "Divider", "Loading",
}
SLOT_COMPONENTS = {
    "Card", "ListItem", "NavBar", "FormItem", "Input", "Search", "Collapse",
    "Timeline.Item", "Result", "Modal",
}
BUSINESS_COMPONENTS = {
    "AddressPicker", "CarKeyboard", "ImageUpload", "Calendar", "Cascader",
    "SelectorCore", "InfiniteScroll", "Lottie",
}
CONTAINER_COMPONENTS = {"View", "Container", "Flex", "Grid"}

_CATEGORY_TABLE: Dict[str, ComponentCategory] = {}


def reset_components() -> None:
    """Restore the default category table."""
    _CATEGORY_TABLE.clear()
    for names, category in (
        (ATOMIC_COMPONENTS, ComponentCategory.ATOMIC),
        (SLOT_COMPONENTS, ComponentCategory.SLOT),
        (BUSINESS_COMPONENTS, ComponentCategory.BUSINESS),
        (CONTAINER_COMPONENTS, ComponentCategory.CONTAINER),
    ):
        for name in names:
            _CATEGORY_TABLE[name] = category


reset_components()


def register_component(name: str, category: ComponentCategory) -> None:
    """Add or re-categorize a component name."""
    if not name:
        raise ValueError("component name cannot be empty")
    _CATEGORY_TABLE[name] = ComponentCategory(category)


def get_component_category(component: str) -> ComponentCategory:
    return _CATEGORY_TABLE.get(component, ComponentCategory.ATOMIC)


def is_non_container_category(category: ComponentCategory) -> bool:
    return category in (ComponentCategory.ATOMIC, ComponentCategory.BUSINESS)


def is_container_component(component: str) -> bool:
    """True for slot and basic-container components."""
    return not is_non_container_category(get_component_category(component))
