"""Annotation engine runtime settings: tunable parameters for tree operations.

All values read from environment variables with sensible defaults.
Import from here instead of hardcoding.

Infrastructure config (database URL, log dir, cache dir) stays in
annotation_tree/config.py.
"""

from __future__ import annotations

import os


def _int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _str(key: str, default: str) -> str:
    return os.getenv(key, default)


# =====================================================================
# Tree identity
# =====================================================================

# Id of the single root annotation built by initialize()
ROOT_ANNOTATION_ID = _str("ANNOTATION_ROOT_ID", "root")

# Root component tag and display name
ROOT_COMPONENT = _str("ANNOTATION_ROOT_COMPONENT", "View")
ROOT_NAME = _str("ANNOTATION_ROOT_NAME", "Component")

# Root geometry fallback when the DSL root carries no size
ROOT_DEFAULT_WIDTH = _int("ANNOTATION_ROOT_DEFAULT_WIDTH", 720)
ROOT_DEFAULT_HEIGHT = _int("ANNOTATION_ROOT_DEFAULT_HEIGHT", 1560)

# Synthetic grouping ids: <prefix><ms timestamp>-<6 base36 chars>
VIRTUAL_ANNOTATION_PREFIX = "virtual-annotation-"
VIRTUAL_CONTAINER_COMMENT = _str("ANNOTATION_VIRTUAL_COMMENT", "Virtual container")


# =====================================================================
# Ordering
# =====================================================================

# Y difference (in design units) under which two siblings share a row
ROW_TOLERANCE = _float("ANNOTATION_ROW_TOLERANCE", 1.0)


# =====================================================================
# Snapshots
# =====================================================================

# Annotation snapshot protocol version
ANNOTATION_SCHEMA_VERSION = _str("ANNOTATION_SCHEMA_VERSION", "1.0")
