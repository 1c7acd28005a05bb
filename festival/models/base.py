"""Declarative base, async engine and session helpers for the festival database."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

import config


class Base(DeclarativeBase):
    pass


engine = create_async_engine(config.DATABASE_URL, echo=False)

# Objects stay usable after commit; services publish them once the transaction is done.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def new_id(prefix: str = "") -> str:
    """Random string id. Prefixed ids use a short 8-char suffix (e.g. jury-1a2b3c4d)."""
    if prefix:
        return f"{prefix}-{uuid.uuid4().hex[:8]}"
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@asynccontextmanager
async def atomic(session: AsyncSession):
    """Commit everything done in the block, or roll all of it back on error."""
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


async def init_db() -> None:
    """Create missing tables; existing ones are left alone."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db() -> None:
    """Drop every festival table (test isolation)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
