"""Persisted public notifications."""
from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from festival.models import Notification, Program
from festival.models.base import new_id


def build_result_published(program: Program, result_id: str) -> Notification:
    """Notification row for a newly published result. Caller adds it to the session."""
    return Notification(
        id=new_id("notif"),
        type="result_published",
        title="New Result Published!",
        message=f'Results for "{program.name}" have been published. Click to view details.',
        program_id=program.id,
        program_name=program.name,
        result_id=result_id,
        read=False,
    )


def notification_to_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "program_id": n.program_id,
        "program_name": n.program_name,
        "result_id": n.result_id,
        "read": n.read,
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


async def list_notifications(session: AsyncSession, limit: int = 50) -> list[Notification]:
    result = await session.execute(
        select(Notification).order_by(Notification.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def unread_count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Notification).where(Notification.read.is_(False)))
    return result.scalar_one()


async def mark_read(session: AsyncSession, notification_id: str) -> bool:
    result = await session.execute(
        update(Notification).where(Notification.id == notification_id).values(read=True)
    )
    await session.commit()
    return bool(result.rowcount)


async def mark_all_read(session: AsyncSession) -> int:
    result = await session.execute(update(Notification).where(Notification.read.is_(False)).values(read=True))
    await session.commit()
    return result.rowcount or 0
