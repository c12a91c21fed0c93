"""SQLAlchemy ORM models for annotation snapshots.

Tables:
- design_component_annotations: one row per saved version of a design's
  annotation tree; the latest saved row is `active`, older ones `archived`
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import Mapped, mapped_column

from annotation_tree.persistence.database import Base
from annotation_tree.settings import ANNOTATION_SCHEMA_VERSION

STATUS_ACTIVE = "active"
STATUS_ARCHIVED = "archived"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _gen_uuid() -> str:
    return str(uuid.uuid4())


class AnnotationSnapshotModel(Base):
    """Versioned annotation tree of one design document.

    `root_annotation` holds the tree in its snapshot (camelCase) form and
    is treated as an opaque JSON document here.
    """

    __tablename__ = "design_component_annotations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_gen_uuid)
    design_id: Mapped[str] = mapped_column(String(255), nullable=False)
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, comment="Incremented per design on every save",
    )
    root_annotation: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    schema_version: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ANNOTATION_SCHEMA_VERSION,
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=STATUS_ACTIVE,
        comment="active | archived",
    )
    saved_at: Mapped[int] = mapped_column(
        BigInteger, nullable=False, comment="Client save time, epoch ms",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )

    __table_args__ = (
        UniqueConstraint("design_id", "version", name="uq_design_annotation_version"),
        Index("ix_design_component_annotations_design_id", "design_id"),
        Index("ix_design_component_annotations_status", "status"),
    )

    def to_snapshot_dict(self) -> Dict[str, Any]:
        """Row as a stored snapshot mapping (rootAnnotation/savedAt/version)."""
        return {
            "rootAnnotation": self.root_annotation,
            "savedAt": self.saved_at,
            "version": self.schema_version,
        }
