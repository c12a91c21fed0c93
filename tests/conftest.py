"""Root conftest for annotation engine tests.

Provides:
- A small DSL document with nested frames and text layers
- A store initialized on that document
- Component table reset between tests
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from annotation_tree.components import reset_components
from annotation_tree.store import AnnotationTreeStore


def dsl_node(
    node_id: str,
    x: float = 0,
    y: float = 0,
    width: float = 0,
    height: float = 0,
    children: Optional[List[Dict[str, Any]]] = None,
    node_type: str = "FRAME",
) -> Dict[str, Any]:
    return {
        "id": node_id,
        "type": node_type,
        "name": node_id,
        "layoutStyle": {"relativeX": x, "relativeY": y, "width": width, "height": height},
        "children": children or [],
    }


# ---------------------------------------------------------------------------
# DSL document
# ---------------------------------------------------------------------------
#
#   R  (0,0 400x800)
#   ├── C1 (10,10 200x100)
#   │   └── G1  abs (15,15 50x20)
#   ├── C2 (10,300 200x100)
#   │   ├── G2  abs (20,310 40x20)
#   │   └── G3  abs (110,310 40x20)
#   └── C3 (250,500 100x100)


@pytest.fixture
def dsl_document() -> Dict[str, Any]:
    return dsl_node("R", 0, 0, 400, 800, children=[
        dsl_node("C1", 10, 10, 200, 100, children=[
            dsl_node("G1", 5, 5, 50, 20, node_type="TEXT"),
        ]),
        dsl_node("C2", 10, 300, 200, 100, children=[
            dsl_node("G2", 10, 10, 40, 20, node_type="TEXT"),
            dsl_node("G3", 100, 10, 40, 20, node_type="TEXT"),
        ]),
        dsl_node("C3", 250, 500, 100, 100, node_type="LAYER"),
    ])


@pytest.fixture
def store(dsl_document) -> AnnotationTreeStore:
    s = AnnotationTreeStore()
    s.initialize(dsl_document)
    return s


@pytest.fixture(autouse=True)
def _default_components():
    yield
    reset_components()
