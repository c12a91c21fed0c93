"""Annotation engine configuration constants: single source of truth for all env vars."""

import os

# Snapshot database: async SQLAlchemy URL
DATABASE_URL = os.getenv("ANNOTATION_DATABASE_URL", "sqlite+aiosqlite:///./annotations.db")

# Echo SQL statements (debugging only)
DB_ECHO = os.getenv("ANNOTATION_DB_ECHO", "false").lower() in ("true", "1", "yes")

# Log directory: file handlers write here
LOG_DIR = os.getenv("ANNOTATION_LOG_DIR", "")

# Secondary snapshot cache: one JSON file per design document
SNAPSHOT_CACHE_DIR = os.getenv("ANNOTATION_CACHE_DIR", "")
