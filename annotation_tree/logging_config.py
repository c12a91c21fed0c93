"""Unified logging configuration for the annotation engine."""
from __future__ import annotations

import logging
from pathlib import Path

from . import config

# Log directory: configurable via ANNOTATION_LOG_DIR env var
LOG_DIR = Path(config.LOG_DIR or str(Path(__file__).parent.parent / "logs"))

# Prevent duplicate handlers
_configured_loggers: set[str] = set()


def setup_logger(name: str, filename: str) -> logging.Logger:
    """Setup a logger with file and console handlers.

    Args:
        name: Logger name (e.g., 'annotation_tree', 'annotation_tree.persistence')
        filename: Log file name (e.g., 'engine.log')

    Returns:
        Configured logger instance
    """
    if name in _configured_loggers:
        return logging.getLogger(name)

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.propagate = False  # Prevent duplicate logs

    # File handler
    fh = logging.FileHandler(LOG_DIR / filename, encoding='utf-8')
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] [%(levelname)s] %(message)s"
    ))

    # Console handler
    sh = logging.StreamHandler()
    sh.setLevel(logging.INFO)
    sh.setFormatter(logging.Formatter(
        "%(asctime)s [%(name)s] %(message)s"
    ))

    logger.addHandler(fh)
    logger.addHandler(sh)

    _configured_loggers.add(name)
    return logger


# Pre-configured loggers
def get_engine_logger() -> logging.Logger:
    """Logger for tree mutations (create/delete/update/combine/move)."""
    return setup_logger("annotation_tree", "engine.log")


def get_storage_logger() -> logging.Logger:
    """Logger for snapshot persistence."""
    return setup_logger("annotation_tree.persistence", "storage.log")
