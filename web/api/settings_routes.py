"""Festival settings API: registration window (public read, admin write), backup/restore."""
from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select

from festival.models import Setting
from festival.models.base import async_session_factory, atomic
from festival.services.registrations import (
    get_registration_window,
    is_registration_open,
    put_setting,
    set_registration_window,
)
from web.auth import require_admin_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


class RegistrationWindowResponse(BaseModel):
    start: datetime
    end: datetime
    open: bool


class RegistrationWindowUpdate(BaseModel):
    start: datetime
    end: datetime


async def _window_response() -> RegistrationWindowResponse:
    async with async_session_factory() as session:
        start, end = await get_registration_window(session)
        is_open = await is_registration_open(session)
        await session.commit()
    return RegistrationWindowResponse(start=start, end=end, open=is_open)


@router.get("/registration-window", response_model=RegistrationWindowResponse)
async def get_window():
    """Registration window and whether it is open now (public, for the team portal)."""
    return await _window_response()


@router.patch("/registration-window", response_model=RegistrationWindowResponse)
async def update_window(body: RegistrationWindowUpdate, admin=Depends(require_admin_user)):
    async with async_session_factory() as session:
        await set_registration_window(session, body.start, body.end)
    return await _window_response()


class SettingsBackup(BaseModel):
    settings: dict[str, str]


@router.get("/export", response_model=SettingsBackup)
async def export_settings(admin=Depends(require_admin_user)):
    """Dump every stored setting (admin only)."""
    async with async_session_factory() as session:
        rows = (await session.execute(select(Setting).order_by(Setting.key))).scalars().all()
    return SettingsBackup(settings={row.key: row.value for row in rows})


@router.post("/import")
async def import_settings(body: SettingsBackup, admin=Depends(require_admin_user)):
    """Restore a dump from /export. Keys present in the dump are overwritten, others kept."""
    async with async_session_factory() as session:
        async with atomic(session):
            for key, value in sorted(body.settings.items()):
                await put_setting(session, key, value)
    logger.info("Imported %d settings", len(body.settings))
    return {"ok": True, "restored": len(body.settings)}
