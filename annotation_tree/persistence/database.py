"""Snapshot database: async SQLite through aiosqlite.

The URL comes from ANNOTATION_DATABASE_URL. One engine and one session
factory are shared by the CLI and any host process.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from annotation_tree import config


def create_snapshot_engine(url: str = config.DATABASE_URL) -> AsyncEngine:
    """Engine for a snapshot store; only sqlite URLs are accepted."""
    if not url.startswith("sqlite"):
        raise ValueError(f"unsupported snapshot database URL '{url}' (expected sqlite+aiosqlite)")
    return create_async_engine(url, echo=config.DB_ECHO)


engine: AsyncEngine = create_snapshot_engine()

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


@asynccontextmanager
async def get_session_ctx() -> AsyncGenerator[AsyncSession, None]:
    """Session scope: commit on success, roll back and re-raise on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create the snapshot table if it does not exist yet."""
    from annotation_tree.persistence import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
