"""Result workflow API: jury submission, admin review, published results."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import config
from festival.models import Jury, User
from festival.models.base import async_session_factory
from festival.services import results
from festival.services.results import PenaltyInput, WinnerInput
from festival.services.stores import find_program
from web.auth import require_admin_user, require_jury

router = APIRouter(prefix="/api/results", tags=["results"])


class SubmitResultRequest(BaseModel):
    program_id: str
    winners: list[WinnerInput]
    penalties: list[PenaltyInput] = Field(default_factory=list)


class EditResultRequest(BaseModel):
    winners: list[WinnerInput]
    penalties: list[PenaltyInput] = Field(default_factory=list)


@router.post("")
async def submit(body: SubmitResultRequest, jury: Jury = Depends(require_jury)):
    """Jury submits the winners of an assigned program. Winners must be registered for it."""
    async with async_session_factory() as session:
        record = await results.submit_result(
            session, body.program_id, jury.id, body.winners, body.penalties
        )
    return results.result_to_dict(record)


@router.post("/admin")
async def admin_submit(body: SubmitResultRequest, admin: User = Depends(require_admin_user)):
    """Admin enters a result directly. Skips the registration and assignment checks; still goes through approval."""
    async with async_session_factory() as session:
        record = await results.submit_result(
            session,
            body.program_id,
            config.ADMIN_JURY_ID,
            body.winners,
            body.penalties,
            require_registration=False,
            require_assignment=False,
        )
    return results.result_to_dict(record)


@router.get("/mine")
async def my_results(jury: Jury = Depends(require_jury)):
    async with async_session_factory() as session:
        rows = await results.list_results(session, jury_id=jury.id)
    return [results.result_to_dict(r) for r in rows]


@router.get("/pending")
async def list_pending(admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        rows = await results.list_results(session, status="pending")
    return [results.result_to_dict(r) for r in rows]


@router.get("")
async def list_published(status: Optional[str] = "approved"):
    """Published results. Pending results are only visible to admins via /pending."""
    if status != "approved":
        raise HTTPException(400, "Only approved results are public")
    async with async_session_factory() as session:
        rows = await results.list_results(session, status="approved")
    return [results.result_to_dict(r) for r in rows]


@router.get("/program/{program_id}")
async def program_result(program_id: str):
    async with async_session_factory() as session:
        program = await find_program(session, program_id)
        if not program:
            raise HTTPException(404, "Program not found")
        record = await results.result_for_program(session, program_id)
    if not record:
        raise HTTPException(404, "No published result for this program")
    return results.result_to_dict(record)


@router.post("/{result_id}/approve")
async def approve(result_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        record = await results.approve_result(session, result_id)
    return results.result_to_dict(record)


@router.post("/{result_id}/reject")
async def reject(result_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        await results.reject_result(session, result_id)
    return {"ok": True}


@router.patch("/{result_id}/pending")
async def edit_pending(result_id: str, body: EditResultRequest, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        record = await results.update_pending_result(session, result_id, body.winners, body.penalties)
    return results.result_to_dict(record)


@router.patch("/{result_id}")
async def edit_approved(result_id: str, body: EditResultRequest, admin: User = Depends(require_admin_user)):
    """Replace a published result. Totals end up as if only the new result had ever been applied."""
    async with async_session_factory() as session:
        record = await results.update_approved_result(session, result_id, body.winners, body.penalties)
    return results.result_to_dict(record)


@router.delete("/{result_id}")
async def delete_approved(result_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        await results.delete_approved_result(session, result_id)
    return {"ok": True}
