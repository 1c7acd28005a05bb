"""Program registration API: team portal registrations and replacement requests."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from festival.models import Team, User
from festival.models.base import async_session_factory
from festival.services import registrations
from web.auth import require_admin_user, require_team

router = APIRouter(prefix="/api", tags=["registrations"])


class RegisterRequest(BaseModel):
    program_id: str
    student_ids: list[str]


class AdminRegisterRequest(RegisterRequest):
    team_id: str


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    program_id: str
    student_id: str
    team_id: str
    created_at: Optional[datetime] = None


class ReplacementBody(BaseModel):
    program_id: str
    old_student_id: str
    new_student_id: str
    reason: str = ""


class ReplacementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    program_id: str
    old_student_id: str
    new_student_id: str
    team_id: str
    reason: str
    status: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None


# --- Team portal ---


@router.get("/registrations/mine", response_model=list[RegistrationResponse])
async def my_registrations(program_id: Optional[str] = None, team: Team = Depends(require_team)):
    async with async_session_factory() as session:
        rows = await registrations.list_registrations(session, program_id=program_id, team_id=team.id)
        return [RegistrationResponse.model_validate(r) for r in rows]


@router.post("/registrations", response_model=list[RegistrationResponse])
async def register(body: RegisterRequest, team: Team = Depends(require_team)):
    """Register team members for a program while the registration window is open."""
    async with async_session_factory() as session:
        created = await registrations.register_candidates(session, body.program_id, team.id, body.student_ids)
    return [RegistrationResponse.model_validate(r) for r in created]


@router.delete("/registrations/mine/{registration_id}")
async def remove_mine(registration_id: str, team: Team = Depends(require_team)):
    async with async_session_factory() as session:
        await registrations.remove_registration(session, registration_id, team_id=team.id)
    return {"ok": True}


@router.get("/replacement-requests/mine", response_model=list[ReplacementResponse])
async def my_replacement_requests(team: Team = Depends(require_team)):
    async with async_session_factory() as session:
        rows = await registrations.list_replacement_requests(session, team_id=team.id)
        return [ReplacementResponse.model_validate(r) for r in rows]


@router.post("/replacement-requests", response_model=ReplacementResponse)
async def request_replacement(body: ReplacementBody, team: Team = Depends(require_team)):
    """Ask admins to swap a registered student for another team member."""
    async with async_session_factory() as session:
        request = await registrations.create_replacement_request(
            session, body.program_id, team.id, body.old_student_id, body.new_student_id, body.reason
        )
    return ReplacementResponse.model_validate(request)


# --- Admin ---


@router.get("/registrations", response_model=list[RegistrationResponse])
async def list_all(
    program_id: Optional[str] = None,
    team_id: Optional[str] = None,
    admin: User = Depends(require_admin_user),
):
    async with async_session_factory() as session:
        rows = await registrations.list_registrations(session, program_id=program_id, team_id=team_id)
        return [RegistrationResponse.model_validate(r) for r in rows]


@router.post("/registrations/admin", response_model=list[RegistrationResponse])
async def admin_register(body: AdminRegisterRequest, admin: User = Depends(require_admin_user)):
    """Register on behalf of a team. Limits still apply; the window does not."""
    async with async_session_factory() as session:
        created = await registrations.register_candidates(
            session, body.program_id, body.team_id, body.student_ids, enforce_window=False
        )
    return [RegistrationResponse.model_validate(r) for r in created]


@router.delete("/registrations/{registration_id}")
async def remove_any(registration_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        await registrations.remove_registration(session, registration_id)
    return {"ok": True}


@router.get("/replacement-requests", response_model=list[ReplacementResponse])
async def list_replacement_requests(admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        rows = await registrations.list_replacement_requests(session)
        return [ReplacementResponse.model_validate(r) for r in rows]


@router.post("/replacement-requests/{request_id}/approve", response_model=ReplacementResponse)
async def approve_replacement(request_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        request = await registrations.approve_replacement_request(session, request_id, admin.username)
    return ReplacementResponse.model_validate(request)


@router.post("/replacement-requests/{request_id}/reject", response_model=ReplacementResponse)
async def reject_replacement(request_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        request = await registrations.reject_replacement_request(session, request_id, admin.username)
    return ReplacementResponse.model_validate(request)
