"""Lookup helpers shared by the services."""
from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from festival.models import Jury, Program, Student, Team


async def find_program(session: AsyncSession, program_id: str) -> Optional[Program]:
    return await session.get(Program, program_id)


async def find_jury(session: AsyncSession, jury_id: str) -> Optional[Jury]:
    return await session.get(Jury, jury_id)


async def find_students_by_ids(session: AsyncSession, ids: Iterable[str]) -> dict[str, Student]:
    """Map id -> Student for the ids that exist."""
    ids = list(set(ids))
    if not ids:
        return {}
    result = await session.execute(select(Student).where(Student.id.in_(ids)))
    return {s.id: s for s in result.scalars().all()}


async def find_teams_by_ids(session: AsyncSession, ids: Iterable[str]) -> dict[str, Team]:
    """Map id -> Team for the ids that exist."""
    ids = list(set(ids))
    if not ids:
        return {}
    result = await session.execute(select(Team).where(Team.id.in_(ids)))
    return {t.id: t for t in result.scalars().all()}
