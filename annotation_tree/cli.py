"""Command line access to stored annotation trees.

Usage:
    # Print the code-generation outline of a snapshot file
    annotation-tree summary --snapshot annotations.json

    # Check a snapshot file against the tree invariants
    annotation-tree validate --snapshot annotations.json

    # Store a snapshot file as the next version of a design
    annotation-tree save --design-id page-home --snapshot annotations.json

    # Print the latest stored snapshot of a design
    annotation-tree load --design-id page-home

The database comes from ANNOTATION_DATABASE_URL.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from annotation_tree.logging_config import get_engine_logger, get_storage_logger
from annotation_tree.models import AnnotationSnapshot, normalize_snapshot
from annotation_tree.summary import format_annotation_summary, summarize_annotation_tree
from annotation_tree.validation import find_invariant_violations


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Annotation tree snapshot tools")
    sub = parser.add_subparsers(dest="command", required=True)

    summary = sub.add_parser("summary", help="Print the annotation outline of a snapshot")
    summary.add_argument("--snapshot", required=True, help="Snapshot JSON file")

    validate = sub.add_parser("validate", help="Check a snapshot against the tree invariants")
    validate.add_argument("--snapshot", required=True, help="Snapshot JSON file")

    save = sub.add_parser("save", help="Store a snapshot as a new version")
    save.add_argument("--design-id", required=True)
    save.add_argument("--snapshot", required=True, help="Snapshot JSON file")
    save.add_argument("--cache-dir", default=None, help="Also refresh the local cache here")

    load = sub.add_parser("load", help="Print the latest stored snapshot")
    load.add_argument("--design-id", required=True)
    load.add_argument("--cache-dir", default=None, help="Fall back to this local cache")

    return parser.parse_args(argv)


def _read_snapshot(path: str) -> AnnotationSnapshot:
    with open(path, "r", encoding="utf-8") as f:
        snapshot = normalize_snapshot(f.read())
    if snapshot is None:
        raise SystemExit(f"Error: {path} is not an annotation snapshot")
    return snapshot


async def _save(args: argparse.Namespace) -> int:
    from annotation_tree.persistence.cache import SnapshotCache
    from annotation_tree.persistence.database import close_db, get_session_ctx, init_db
    from annotation_tree.persistence.service import save_annotation_state

    snapshot = _read_snapshot(args.snapshot)
    cache = SnapshotCache(args.cache_dir) if args.cache_dir else None
    await init_db()
    try:
        async with get_session_ctx() as session:
            await save_annotation_state(session, args.design_id, snapshot.root_annotation, cache=cache)
    finally:
        await close_db()
    return 0


async def _load(args: argparse.Namespace) -> int:
    from annotation_tree.persistence.cache import SnapshotCache
    from annotation_tree.persistence.database import close_db, get_session_ctx, init_db
    from annotation_tree.persistence.service import load_annotation_state

    cache = SnapshotCache(args.cache_dir) if args.cache_dir else None
    await init_db()
    try:
        async with get_session_ctx() as session:
            root = await load_annotation_state(session, args.design_id, cache=cache)
    finally:
        await close_db()

    if root is None:
        print(f"No annotations stored for {args.design_id}", file=sys.stderr)
        return 1
    print(json.dumps(AnnotationSnapshot(root_annotation=root).model_dump(by_alias=True), ensure_ascii=False, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = get_engine_logger()

    if args.command == "summary":
        snapshot = _read_snapshot(args.snapshot)
        print(format_annotation_summary(summarize_annotation_tree(snapshot.root_annotation)))
        return 0

    if args.command == "validate":
        snapshot = _read_snapshot(args.snapshot)
        problems = find_invariant_violations(snapshot.root_annotation)
        for problem in problems:
            print(f"- {problem}")
        logger.info(f"validate: {args.snapshot}: {len(problems)} problem(s)")
        return 1 if problems else 0

    get_storage_logger()
    if args.command == "save":
        return asyncio.run(_save(args))
    return asyncio.run(_load(args))


if __name__ == "__main__":
    sys.exit(main())
