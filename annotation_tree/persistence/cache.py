"""Local JSON cache of the last saved snapshot per design.

Used as the fallback source when the database cannot be read. One file
per design: <cache_dir>/<design_id>.json
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Optional

from annotation_tree import config
from annotation_tree.models import AnnotationSnapshot, normalize_snapshot

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), ".annotation_cache")


class SnapshotCache:
    """Secondary snapshot store on the local filesystem."""

    def __init__(self, directory: Optional[str] = None):
        self.directory = directory or config.SNAPSHOT_CACHE_DIR or DEFAULT_CACHE_DIR

    def path_for(self, design_id: str) -> str:
        safe_id = re.sub(r"[^A-Za-z0-9._-]", "_", design_id)
        return os.path.join(self.directory, f"{safe_id}.json")

    def write(self, design_id: str, snapshot: AnnotationSnapshot) -> str:
        os.makedirs(self.directory, exist_ok=True)
        path = self.path_for(design_id)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(snapshot.model_dump(by_alias=True), f, ensure_ascii=False)
        logger.info(f"SnapshotCache: wrote {path}")
        return path

    def read(self, design_id: str) -> Optional[AnnotationSnapshot]:
        """Cached snapshot, or None when the file is missing or unreadable."""
        path = self.path_for(design_id)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            logger.warning(f"SnapshotCache: failed to read {path}: {e}")
            return None

        snapshot = normalize_snapshot(content)
        if snapshot is None:
            logger.warning(f"SnapshotCache: ignoring corrupt cache file {path}")
        return snapshot

    def clear(self, design_id: str) -> bool:
        path = self.path_for(design_id)
        if not os.path.isfile(path):
            return False
        os.remove(path)
        return True
