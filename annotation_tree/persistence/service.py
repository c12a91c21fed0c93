"""Save/load entry points for annotation trees.

save_annotation_state() writes the database first and refreshes the local
cache afterwards; database errors propagate. load_annotation_state() reads
the latest database version and falls back to the cache when the database
read fails.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from annotation_tree.models import AnnotationNode, AnnotationSnapshot, normalize_snapshot, now_ms
from annotation_tree.persistence.cache import SnapshotCache
from annotation_tree.persistence.repository import AnnotationSnapshotRepository

logger = logging.getLogger(__name__)

__all__ = ["load_annotation_state", "normalize_snapshot", "save_annotation_state"]


async def save_annotation_state(
    session: AsyncSession,
    design_id: str,
    root: Optional[AnnotationNode],
    cache: Optional[SnapshotCache] = None,
) -> AnnotationSnapshot:
    """Persist `root` as a new version of `design_id`."""
    snapshot = AnnotationSnapshot(root_annotation=root, saved_at=now_ms())
    repo = AnnotationSnapshotRepository(session)
    row = await repo.save(design_id, snapshot)
    logger.info(f"save_annotation_state: design {design_id} saved as version {row.version}")

    if cache is not None:
        try:
            cache.write(design_id, snapshot)
        except OSError as e:
            logger.warning(f"save_annotation_state: cache write failed for {design_id}: {e}")
    return snapshot


async def load_annotation_state(
    session: AsyncSession,
    design_id: str,
    cache: Optional[SnapshotCache] = None,
) -> Optional[AnnotationNode]:
    """Latest saved tree for `design_id`, or None when nothing is stored."""
    try:
        row = await AnnotationSnapshotRepository(session).get_latest(design_id)
    except SQLAlchemyError as e:
        logger.error(f"load_annotation_state: database read failed for {design_id}: {e}")
    else:
        if row is not None:
            snapshot = normalize_snapshot(row.to_snapshot_dict())
            if snapshot is not None:
                return snapshot.root_annotation

    if cache is None:
        return None
    cached = cache.read(design_id)
    if cached is None:
        return None
    logger.info(f"load_annotation_state: using cached snapshot for {design_id}")
    return cached.root_annotation
