"""API routes for festival master data: programs, teams, students, juries, assignments."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from festival.models import (
    AssignedProgram,
    Jury,
    Program,
    ProgramRegistration,
    ResultRecord,
    Student,
    Team,
    User,
)
from festival.models.base import async_session_factory, new_id
from festival.models.program import CATEGORIES, SECTIONS
from festival.services import assignments, realtime
from festival.services.errors import DuplicateChestNumber, ValidationError
from festival.services.ledger import reset_scores
from festival.services.participants import (
    ensure_chest_available,
    generate_chest_number,
    normalize_chest_no,
    participant_profile,
    random_jury_avatar,
    search_participants,
)
from festival.services.registrations import remove_registrations_by_program
from web.auth import hash_password, require_admin_user

logger = logging.getLogger("festival.api")

router = APIRouter(prefix="/api", tags=["festival"])


# --- Pydantic schemas ---


class ProgramBody(BaseModel):
    name: str
    section: str
    stage: bool = True
    category: str = "none"
    candidate_limit: int = 1

    @field_validator("section")
    @classmethod
    def check_section(cls, v):
        if v not in SECTIONS:
            raise ValueError(f"section must be one of {', '.join(SECTIONS)}")
        return v

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        if v not in CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(CATEGORIES)}")
        return v

    @field_validator("candidate_limit")
    @classmethod
    def check_limit(cls, v):
        if v < 1:
            raise ValueError("candidate_limit must be at least 1")
        return v


class ProgramUpdate(BaseModel):
    name: Optional[str] = None
    section: Optional[str] = None
    stage: Optional[bool] = None
    category: Optional[str] = None
    candidate_limit: Optional[int] = None

    @field_validator("section")
    @classmethod
    def check_section(cls, v):
        if v is not None and v not in SECTIONS:
            raise ValueError(f"section must be one of {', '.join(SECTIONS)}")
        return v

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        if v is not None and v not in CATEGORIES:
            raise ValueError(f"category must be one of {', '.join(CATEGORIES)}")
        return v

    @field_validator("candidate_limit")
    @classmethod
    def check_limit(cls, v):
        if v is not None and v < 1:
            raise ValueError("candidate_limit must be at least 1")
        return v


class ProgramResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    section: str
    stage: bool
    category: str
    candidate_limit: int


class TeamBody(BaseModel):
    name: str
    leader: str = ""
    leader_photo: Optional[str] = None
    color: str = "#888888"
    description: str = ""
    contact: str = ""
    portal_password: Optional[str] = None  # set to enable team portal login


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    leader: Optional[str] = None
    leader_photo: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    contact: Optional[str] = None
    portal_password: Optional[str] = None


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    leader: str
    leader_photo: Optional[str]
    color: str
    description: str
    contact: str
    total_points: int


class StudentBody(BaseModel):
    name: str
    team_id: str
    chest_no: Optional[str] = None  # generated from the team name when omitted
    avatar: Optional[str] = None


class StudentUpdate(BaseModel):
    name: Optional[str] = None
    team_id: Optional[str] = None
    chest_no: Optional[str] = None
    avatar: Optional[str] = None


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    team_id: str
    chest_no: str
    avatar: Optional[str]
    total_points: int


class JuryBody(BaseModel):
    name: str
    password: str
    avatar: Optional[str] = None


class JuryUpdate(BaseModel):
    name: Optional[str] = None
    password: Optional[str] = None


class JuryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    avatar: Optional[str]


class AssignmentBody(BaseModel):
    program_id: str
    jury_id: str


class BulkAssignmentBody(BaseModel):
    program_ids: list[str]
    jury_id: str


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    program_id: str
    jury_id: str
    status: str


# --- Programs ---


@router.get("/programs", response_model=list[ProgramResponse])
async def list_programs(section: Optional[str] = None):
    """List programs, optionally filtered by section."""
    async with async_session_factory() as session:
        query = select(Program).order_by(Program.name)
        if section:
            query = query.where(Program.section == section)
        result = await session.execute(query)
        return [ProgramResponse.model_validate(p) for p in result.scalars().all()]


@router.get("/programs/{program_id}", response_model=ProgramResponse)
async def get_program(program_id: str):
    async with async_session_factory() as session:
        program = await session.get(Program, program_id)
        if not program:
            raise HTTPException(404, "Program not found")
        return ProgramResponse.model_validate(program)


@router.post("/programs", response_model=ProgramResponse)
async def create_program(body: ProgramBody, admin: User = Depends(require_admin_user)):
    """Create a program (admin only)."""
    async with async_session_factory() as session:
        program = Program(id=new_id(), **body.model_dump())
        session.add(program)
        await session.commit()
        return ProgramResponse.model_validate(program)


@router.patch("/programs/{program_id}", response_model=ProgramResponse)
async def update_program(program_id: str, body: ProgramUpdate, admin: User = Depends(require_admin_user)):
    """Edit program metadata. Published results keep the scores they were approved with."""
    async with async_session_factory() as session:
        program = await session.get(Program, program_id)
        if not program:
            raise HTTPException(404, "Program not found")
        for key, value in body.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(program, key, value)
        await session.commit()
        return ProgramResponse.model_validate(program)


@router.delete("/programs/{program_id}")
async def delete_program(program_id: str, admin: User = Depends(require_admin_user)):
    """Delete a program with its registrations and assignments. Programs with a result cannot be deleted."""
    async with async_session_factory() as session:
        program = await session.get(Program, program_id)
        if not program:
            raise HTTPException(404, "Program not found")
        has_result = await session.execute(select(ResultRecord.id).where(ResultRecord.program_id == program_id))
        if has_result.first():
            raise ValidationError("Delete or reject this program's result first.")
        await remove_registrations_by_program(session, program_id)
        await session.execute(delete(AssignedProgram).where(AssignedProgram.program_id == program_id))
        await session.delete(program)
        await session.commit()
        logger.info("Deleted program %s", program_id)
        return {"ok": True}


# --- Teams ---


@router.get("/teams", response_model=list[TeamResponse])
async def list_teams():
    async with async_session_factory() as session:
        result = await session.execute(select(Team).order_by(Team.name))
        return [TeamResponse.model_validate(t) for t in result.scalars().all()]


@router.get("/teams/{team_id}")
async def get_team(team_id: str):
    """Team with its students."""
    async with async_session_factory() as session:
        team = await session.get(Team, team_id)
        if not team:
            raise HTTPException(404, "Team not found")
        result = await session.execute(
            select(Student).where(Student.team_id == team_id).order_by(Student.chest_no)
        )
        students = [StudentResponse.model_validate(s) for s in result.scalars().all()]
        return {**TeamResponse.model_validate(team).model_dump(), "students": students}


@router.post("/teams", response_model=TeamResponse)
async def create_team(body: TeamBody, admin: User = Depends(require_admin_user)):
    data = body.model_dump(exclude={"portal_password"})
    async with async_session_factory() as session:
        team = Team(id=new_id(), total_points=0, **data)
        if body.portal_password:
            team.portal_password_hash = hash_password(body.portal_password)
        session.add(team)
        await session.commit()
    await realtime.get_publisher().publish(realtime.TEAMS, realtime.TEAM_CREATED, {"teamId": team.id})
    return TeamResponse.model_validate(team)


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def update_team(team_id: str, body: TeamUpdate, admin: User = Depends(require_admin_user)):
    """Edit team details. total_points is not editable here."""
    async with async_session_factory() as session:
        team = await session.get(Team, team_id)
        if not team:
            raise HTTPException(404, "Team not found")
        updates = body.model_dump(exclude_unset=True)
        password = updates.pop("portal_password", None)
        for key, value in updates.items():
            if value is not None:
                setattr(team, key, value)
        if password:
            team.portal_password_hash = hash_password(password)
        await session.commit()
    await realtime.get_publisher().publish(realtime.TEAMS, realtime.TEAM_UPDATED, {"teamId": team_id})
    return TeamResponse.model_validate(team)


@router.delete("/teams/{team_id}")
async def delete_team(team_id: str, admin: User = Depends(require_admin_user)):
    """Delete a team and its students. Refused while the team holds points."""
    async with async_session_factory() as session:
        team = await session.get(Team, team_id)
        if not team:
            raise HTTPException(404, "Team not found")
        if team.total_points:
            raise ValidationError("Team has published points. Remove its results first.")
        await session.execute(delete(ProgramRegistration).where(ProgramRegistration.team_id == team_id))
        await session.execute(delete(Student).where(Student.team_id == team_id))
        await session.execute(delete(Team).where(Team.id == team_id))
        await session.commit()
    await realtime.get_publisher().publish(realtime.TEAMS, realtime.TEAM_DELETED, {"teamId": team_id})
    return {"ok": True}


# --- Students ---


@router.get("/students", response_model=list[StudentResponse])
async def list_students(team_id: Optional[str] = None):
    async with async_session_factory() as session:
        query = select(Student).order_by(Student.chest_no)
        if team_id:
            query = query.where(Student.team_id == team_id)
        result = await session.execute(query)
        return [StudentResponse.model_validate(s) for s in result.scalars().all()]


@router.get("/teams/{team_id}/next-chest-number")
async def preview_chest_number(team_id: str):
    """Chest number the next student of this team would get."""
    async with async_session_factory() as session:
        team = await session.get(Team, team_id)
        if not team:
            raise HTTPException(404, "Team not found")
        return {"chest_no": await generate_chest_number(session, team)}


@router.post("/students", response_model=StudentResponse)
async def create_student(body: StudentBody, admin: User = Depends(require_admin_user)):
    """Create a student. Chest number is normalized to uppercase, or generated when omitted."""
    async with async_session_factory() as session:
        team = await session.get(Team, body.team_id)
        if not team:
            raise HTTPException(404, "Team not found")
        if body.chest_no and body.chest_no.strip():
            chest_no = normalize_chest_no(body.chest_no)
            await ensure_chest_available(session, chest_no)
        else:
            chest_no = await generate_chest_number(session, team)
        student = Student(
            id=new_id(),
            name=body.name,
            team_id=team.id,
            chest_no=chest_no,
            avatar=body.avatar,
            total_points=0,
        )
        session.add(student)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise DuplicateChestNumber(f'Chest number "{chest_no}" is already registered.') from None
    await realtime.get_publisher().publish(
        realtime.STUDENTS, realtime.STUDENT_CREATED, {"studentId": student.id, "teamId": student.team_id}
    )
    return StudentResponse.model_validate(student)


@router.patch("/students/{student_id}", response_model=StudentResponse)
async def update_student(student_id: str, body: StudentUpdate, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        student = await session.get(Student, student_id)
        if not student:
            raise HTTPException(404, "Student not found")
        updates = body.model_dump(exclude_unset=True)
        if updates.get("chest_no"):
            updates["chest_no"] = normalize_chest_no(updates["chest_no"])
            await ensure_chest_available(session, updates["chest_no"], exclude_student_id=student_id)
        if updates.get("team_id") and not await session.get(Team, updates["team_id"]):
            raise HTTPException(404, "Team not found")
        for key, value in updates.items():
            if value is not None:
                setattr(student, key, value)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise DuplicateChestNumber(f'Chest number "{updates.get("chest_no")}" is already registered.') from None
    await realtime.get_publisher().publish(
        realtime.STUDENTS, realtime.STUDENT_UPDATED, {"studentId": student_id, "teamId": student.team_id}
    )
    return StudentResponse.model_validate(student)


@router.delete("/students/{student_id}")
async def delete_student(student_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        student = await session.get(Student, student_id)
        if not student:
            raise HTTPException(404, "Student not found")
        team_id = student.team_id
        await session.execute(delete(ProgramRegistration).where(ProgramRegistration.student_id == student_id))
        await session.execute(delete(Student).where(Student.id == student_id))
        await session.commit()
    await realtime.get_publisher().publish(
        realtime.STUDENTS, realtime.STUDENT_DELETED, {"studentId": student_id, "teamId": team_id}
    )
    return {"ok": True}


# --- Juries ---


@router.get("/juries", response_model=list[JuryResponse])
async def list_juries(admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        result = await session.execute(select(Jury).order_by(Jury.name))
        return [JuryResponse.model_validate(j) for j in result.scalars().all()]


@router.post("/juries", response_model=JuryResponse)
async def create_jury(body: JuryBody, admin: User = Depends(require_admin_user)):
    """Create a jury. The avatar is picked once here and never changed afterwards."""
    async with async_session_factory() as session:
        jury = Jury(
            id=new_id("jury"),
            name=body.name,
            password_hash=hash_password(body.password),
            avatar=body.avatar or random_jury_avatar(),
        )
        session.add(jury)
        await session.commit()
        return JuryResponse.model_validate(jury)


@router.patch("/juries/{jury_id}", response_model=JuryResponse)
async def update_jury(jury_id: str, body: JuryUpdate, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        jury = await session.get(Jury, jury_id)
        if not jury:
            raise HTTPException(404, "Jury not found")
        if body.name:
            jury.name = body.name
        if body.password:
            jury.password_hash = hash_password(body.password)
        await session.commit()
        return JuryResponse.model_validate(jury)


@router.delete("/juries/{jury_id}")
async def delete_jury(jury_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        jury = await session.get(Jury, jury_id)
        if not jury:
            raise HTTPException(404, "Jury not found")
        await session.execute(delete(AssignedProgram).where(AssignedProgram.jury_id == jury_id))
        await session.delete(jury)
        await session.commit()
        return {"ok": True}


# --- Assignments ---


@router.get("/assignments", response_model=list[AssignmentResponse])
async def list_assignments(jury_id: Optional[str] = None, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        rows = await assignments.list_assignments(session, jury_id=jury_id)
        return [AssignmentResponse.model_validate(a) for a in rows]


@router.post("/assignments", response_model=AssignmentResponse)
async def assign_program(body: AssignmentBody, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        assignment = await assignments.assign_program(session, body.program_id, body.jury_id)
        return AssignmentResponse.model_validate(assignment)


@router.post("/assignments/bulk")
async def bulk_assign(body: BulkAssignmentBody, admin: User = Depends(require_admin_user)):
    """Assign several programs to one jury. Each program succeeds or fails on its own."""
    async with async_session_factory() as session:
        summary = await assignments.bulk_assign(session, body.program_ids, body.jury_id)
    summary["message"] = f"{len(summary['assigned'])} assigned, {len(summary['failed'])} failed"
    return summary


@router.delete("/assignments/{program_id}/{jury_id}")
async def delete_assignment(program_id: str, jury_id: str, admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        await assignments.delete_assignment(session, program_id, jury_id)
    return {"ok": True}


# --- Public: scoreboard, participants ---


@router.get("/scoreboard")
async def scoreboard():
    """Teams ranked by points."""
    async with async_session_factory() as session:
        result = await session.execute(select(Team).order_by(Team.total_points.desc(), Team.name))
        teams = result.scalars().all()
        return [
            {"rank": i + 1, "team_id": t.id, "name": t.name, "color": t.color, "total_points": t.total_points}
            for i, t in enumerate(teams)
        ]


@router.post("/scoreboard/reset")
async def reset_scoreboard(admin: User = Depends(require_admin_user)):
    """Zero every team and student total (admin only). Does not touch results."""
    async with async_session_factory() as session:
        await reset_scores(session)
        await session.commit()
    await realtime.get_publisher().publish(realtime.SCOREBOARD, realtime.SCOREBOARD_UPDATED, {})
    return {"ok": True}


@router.get("/participants/search", response_model=list[StudentResponse])
async def search(q: str):
    if not q.strip():
        return []
    async with async_session_factory() as session:
        return [StudentResponse.model_validate(s) for s in await search_participants(session, q)]


@router.get("/participants/{identifier}")
async def get_participant(identifier: str):
    """Participant profile by student id or chest number."""
    async with async_session_factory() as session:
        profile = await participant_profile(session, identifier)
    if not profile:
        raise HTTPException(404, "Participant not found")
    return profile
