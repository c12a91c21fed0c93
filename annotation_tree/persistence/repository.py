"""Repository layer for annotation snapshot persistence.

Provides async versioned CRUD for AnnotationSnapshotModel. Every save adds
a new version; the previously active row for the design is archived.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from annotation_tree.models import AnnotationSnapshot
from annotation_tree.persistence.models import (
    STATUS_ACTIVE,
    STATUS_ARCHIVED,
    AnnotationSnapshotModel,
)


class AnnotationSnapshotRepository:
    """Data access layer for annotation snapshots."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, design_id: str, snapshot: AnnotationSnapshot) -> AnnotationSnapshotModel:
        """Store `snapshot` as the next version of `design_id`.

        Args:
            design_id: Design document identifier
            snapshot: Tree snapshot to persist

        Returns:
            Created AnnotationSnapshotModel (status=active)
        """
        latest_version = await self.session.scalar(
            select(func.max(AnnotationSnapshotModel.version))
            .where(AnnotationSnapshotModel.design_id == design_id)
        )
        await self.session.execute(
            update(AnnotationSnapshotModel)
            .where(
                AnnotationSnapshotModel.design_id == design_id,
                AnnotationSnapshotModel.status == STATUS_ACTIVE,
            )
            .values(status=STATUS_ARCHIVED)
        )

        root = snapshot.root_annotation
        row = AnnotationSnapshotModel(
            design_id=design_id,
            version=(latest_version or 0) + 1,
            root_annotation=root.to_dict() if root is not None else None,
            schema_version=snapshot.version,
            status=STATUS_ACTIVE,
            saved_at=snapshot.saved_at,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_latest(self, design_id: str) -> Optional[AnnotationSnapshotModel]:
        """Highest version saved for a design."""
        result = await self.session.execute(
            select(AnnotationSnapshotModel)
            .where(AnnotationSnapshotModel.design_id == design_id)
            .order_by(AnnotationSnapshotModel.version.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_version(self, design_id: str, version: int) -> Optional[AnnotationSnapshotModel]:
        result = await self.session.execute(
            select(AnnotationSnapshotModel).where(
                AnnotationSnapshotModel.design_id == design_id,
                AnnotationSnapshotModel.version == version,
            )
        )
        return result.scalar_one_or_none()

    async def list_versions(self, design_id: str) -> List[AnnotationSnapshotModel]:
        """All versions of a design, newest first."""
        result = await self.session.execute(
            select(AnnotationSnapshotModel)
            .where(AnnotationSnapshotModel.design_id == design_id)
            .order_by(AnnotationSnapshotModel.version.desc())
        )
        return list(result.scalars().all())

    async def delete_all(self, design_id: str) -> int:
        """Delete every version of a design. Returns the number of rows removed."""
        result = await self.session.execute(
            delete(AnnotationSnapshotModel)
            .where(AnnotationSnapshotModel.design_id == design_id)
        )
        await self.session.flush()
        return result.rowcount or 0
