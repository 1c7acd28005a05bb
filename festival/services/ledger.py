"""Score ledger: team and student point totals.

Totals are denormalized and only ever moved by deltas. Each increment is a single
``SET total_points = total_points + :delta`` statement, so concurrent writers never
lose an update on the same row. Callers group increments in one transaction.
"""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from festival.models import Student, Team

logger = logging.getLogger("festival.ledger")


async def increment_team_points(session: AsyncSession, team_id: str, delta: int) -> None:
    if not delta:
        return
    await session.execute(
        update(Team).where(Team.id == team_id).values(total_points=Team.total_points + delta)
    )


async def increment_student_points(session: AsyncSession, student_id: str, delta: int) -> None:
    if not delta:
        return
    await session.execute(
        update(Student).where(Student.id == student_id).values(total_points=Student.total_points + delta)
    )


async def apply_entry_scores(session: AsyncSession, entries: list[dict], direction: int) -> None:
    """Add (direction=1) or remove (direction=-1) entry scores from the owning student and team."""
    for entry in entries:
        delta = entry["score"] * direction
        if entry.get("student_id"):
            await increment_student_points(session, entry["student_id"], delta)
        if entry.get("team_id"):
            await increment_team_points(session, entry["team_id"], delta)


async def apply_penalties(session: AsyncSession, penalties: list[dict] | None, direction: int) -> None:
    """Deduct (direction=1) or restore (direction=-1) penalty points. Team totals only, never students."""
    for penalty in penalties or []:
        if penalty.get("team_id"):
            await increment_team_points(session, penalty["team_id"], -penalty["points"] * direction)


async def reset_scores(session: AsyncSession) -> None:
    """Zero every team and student total."""
    await session.execute(update(Team).values(total_points=0))
    await session.execute(update(Student).values(total_points=0))
    logger.warning("All team and student totals reset to 0")
