"""One-time startup step: tables, reserved admin jury, registration window. Idempotent."""
from __future__ import annotations

import logging
from typing import Callable

import config
from festival.models import Jury
from festival.models.base import async_session_factory, init_db
from festival.services.participants import JURY_AVATARS
from festival.services.registrations import get_registration_window

logger = logging.getLogger("festival.bootstrap")


async def ensure_admin_jury(session, hash_password: Callable[[str], str]) -> Jury:
    """Jury used when admins enter results themselves."""
    jury = await session.get(Jury, config.ADMIN_JURY_ID)
    if jury is None:
        jury = Jury(
            id=config.ADMIN_JURY_ID,
            name="Admin",
            password_hash=hash_password(config.ADMIN_JURY_PASSWORD),
            avatar=JURY_AVATARS[0],
        )
        session.add(jury)
        logger.info("Created reserved jury %s", config.ADMIN_JURY_ID)
    return jury


async def bootstrap(hash_password: Callable[[str], str]) -> None:
    await init_db()
    async with async_session_factory() as session:
        await ensure_admin_jury(session, hash_password)
        await get_registration_window(session)
        await session.commit()
