"""Public notifications API."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from festival.models.base import async_session_factory
from festival.services import notifications

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(limit: int = 50):
    """Latest notifications with the unread count."""
    async with async_session_factory() as session:
        rows = await notifications.list_notifications(session, limit=min(max(limit, 1), 200))
        unread = await notifications.unread_count(session)
    return {
        "notifications": [notifications.notification_to_dict(n) for n in rows],
        "unreadCount": unread,
    }


@router.post("/{notification_id}/read")
async def mark_read(notification_id: str):
    async with async_session_factory() as session:
        found = await notifications.mark_read(session, notification_id)
    if not found:
        raise HTTPException(404, "Notification not found")
    return {"ok": True}


@router.post("/read-all")
async def mark_all_read():
    async with async_session_factory() as session:
        count = await notifications.mark_all_read(session)
    return {"ok": True, "updated": count}
