"""Program registration: window, candidate limits, participation limits, replacement requests."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

import config
from festival.models import Program, ProgramRegistration, ReplacementRequest, Setting, Student
from festival.models.base import atomic, new_id, utcnow
from festival.services import realtime
from festival.services.errors import (
    DuplicateRegistration,
    NotFound,
    ProgramNotFound,
    StudentNotFound,
    ValidationError,
)

logger = logging.getLogger("festival.registrations")

REGISTRATION_START_KEY = "registration_start"
REGISTRATION_END_KEY = "registration_end"

# Per-student caps. General programs are unlimited.
MAX_SINGLE_PER_STAGE = 3
MAX_GROUP = 3


# --- Registration window ---


def _parse_dt(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


async def get_setting(session: AsyncSession, key: str) -> Optional[str]:
    result = await session.execute(select(Setting).where(Setting.key == key))
    row = result.scalar_one_or_none()
    return row.value if row else None


async def put_setting(session: AsyncSession, key: str, value: str) -> None:
    result = await session.execute(select(Setting).where(Setting.key == key))
    row = result.scalar_one_or_none()
    if row:
        row.value = value
    else:
        session.add(Setting(key=key, value=value))


async def get_registration_window(session: AsyncSession) -> tuple[datetime, datetime]:
    """Stored (start, end). When nothing is stored a default window starting now is added (caller commits)."""
    start = await get_setting(session, REGISTRATION_START_KEY)
    end = await get_setting(session, REGISTRATION_END_KEY)
    if start and end:
        return _parse_dt(start), _parse_dt(end)
    now = utcnow()
    window = (now, now + timedelta(hours=config.REGISTRATION_DEFAULT_HOURS))
    await put_setting(session, REGISTRATION_START_KEY, window[0].isoformat())
    await put_setting(session, REGISTRATION_END_KEY, window[1].isoformat())
    return window


async def set_registration_window(session: AsyncSession, start: datetime, end: datetime) -> None:
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    if end < start:
        raise ValidationError("Registration end must be after its start.")
    async with atomic(session):
        await put_setting(session, REGISTRATION_START_KEY, start.isoformat())
        await put_setting(session, REGISTRATION_END_KEY, end.isoformat())


async def is_registration_open(session: AsyncSession, now: Optional[datetime] = None) -> bool:
    start, end = await get_registration_window(session)
    now = now or utcnow()
    return start <= now <= end


# --- Limits ---


def check_participation_limit(
    student_id: str,
    program: Program,
    programs: dict[str, Program],
    registrations: list[ProgramRegistration],
) -> Optional[str]:
    """Reason the student may not enter this program, or None.

    At most 3 single programs on stage and 3 off stage, at most 3 group programs.
    """
    if program.section == "general":
        return None
    others = [
        programs.get(r.program_id)
        for r in registrations
        if r.student_id == student_id and r.program_id != program.id
    ]
    others = [p for p in others if p is not None]
    if program.section == "single":
        count = sum(1 for p in others if p.section == "single" and p.stage == program.stage)
        if count >= MAX_SINGLE_PER_STAGE:
            stage_type = "on-stage" if program.stage else "off-stage"
            return f"Maximum limit of {MAX_SINGLE_PER_STAGE} individual {stage_type} events reached."
        return None
    if program.section == "group":
        count = sum(1 for p in others if p.section == "group")
        if count >= MAX_GROUP:
            return f"Maximum limit of {MAX_GROUP} group events reached."
    return None


async def _student_registrations(session: AsyncSession, student_id: str) -> list[ProgramRegistration]:
    result = await session.execute(
        select(ProgramRegistration).where(ProgramRegistration.student_id == student_id)
    )
    return list(result.scalars().all())


async def _programs_by_id(session: AsyncSession, ids: set[str]) -> dict[str, Program]:
    if not ids:
        return {}
    result = await session.execute(select(Program).where(Program.id.in_(ids)))
    return {p.id: p for p in result.scalars().all()}


async def _team_count(session: AsyncSession, program_id: str, team_id: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(ProgramRegistration)
        .where(ProgramRegistration.program_id == program_id, ProgramRegistration.team_id == team_id)
    )
    return result.scalar_one()


async def _check_entry(session: AsyncSession, program: Program, student: Student) -> Optional[str]:
    """Raise if the student is already in the program; return the participation-limit reason, if any."""
    regs = await _student_registrations(session, student.id)
    if any(r.program_id == program.id for r in regs):
        raise DuplicateRegistration(
            f'Student "{student.name}" is already registered for program "{program.name}".'
        )
    programs = await _programs_by_id(session, {r.program_id for r in regs})
    return check_participation_limit(student.id, program, programs, regs)


# --- Registrations ---


async def register_candidates(
    session: AsyncSession,
    program_id: str,
    team_id: str,
    student_ids: list[str],
    *,
    enforce_window: bool = True,
    publisher: Optional[realtime.Publisher] = None,
) -> list[ProgramRegistration]:
    """Register team members for a program. All or nothing."""
    publisher = publisher or realtime.get_publisher()
    if not student_ids:
        raise ValidationError("Program and student are required.")
    if len(set(student_ids)) != len(student_ids):
        raise ValidationError("The same student was selected twice.")
    async with atomic(session):
        if enforce_window and not await is_registration_open(session):
            raise ValidationError("Program registration is closed.")
        program = await session.get(Program, program_id)
        if not program:
            raise ProgramNotFound()

        existing = await _team_count(session, program_id, team_id)
        if existing + len(student_ids) > program.candidate_limit:
            remaining = max(program.candidate_limit - existing, 0)
            if remaining == 0:
                raise ValidationError("Candidate limit reached for this program.")
            raise ValidationError(
                f"Cannot register {len(student_ids)} students. Only {remaining} slots remaining."
            )

        created = []
        violations = []
        for student_id in student_ids:
            student = await session.get(Student, student_id)
            if not student:
                raise StudentNotFound()
            if student.team_id != team_id:
                raise ValidationError("You can only register your team members.")
            reason = await _check_entry(session, program, student)
            if reason:
                violations.append(f"{student.name}: {reason}")
                continue
            created.append(ProgramRegistration(
                id=new_id(),
                program_id=program_id,
                student_id=student_id,
                team_id=team_id,
            ))
        if violations:
            raise ValidationError("; ".join(violations))
        session.add_all(created)

    for reg in created:
        logger.info("Registered student %s for program %s", reg.student_id, program_id)
        await publisher.publish(
            realtime.REGISTRATIONS,
            realtime.REGISTRATION_CREATED,
            {"registrationId": reg.id, "programId": program_id, "teamId": team_id},
        )
    return created


async def remove_registration(
    session: AsyncSession,
    registration_id: str,
    team_id: Optional[str] = None,
    publisher: Optional[realtime.Publisher] = None,
) -> None:
    """Delete a registration. team_id restricts it to that team's own registrations."""
    publisher = publisher or realtime.get_publisher()
    async with atomic(session):
        reg = await session.get(ProgramRegistration, registration_id)
        if not reg or (team_id and reg.team_id != team_id):
            raise NotFound("Registration not found")
        program_id, reg_team = reg.program_id, reg.team_id
        await session.delete(reg)
    await publisher.publish(
        realtime.REGISTRATIONS,
        realtime.REGISTRATION_DELETED,
        {"registrationId": registration_id, "programId": program_id, "teamId": reg_team},
    )


async def remove_registrations_by_program(session: AsyncSession, program_id: str) -> None:
    await session.execute(delete(ProgramRegistration).where(ProgramRegistration.program_id == program_id))


async def list_registrations(
    session: AsyncSession,
    program_id: Optional[str] = None,
    team_id: Optional[str] = None,
) -> list[ProgramRegistration]:
    query = select(ProgramRegistration).order_by(ProgramRegistration.created_at)
    if program_id:
        query = query.where(ProgramRegistration.program_id == program_id)
    if team_id:
        query = query.where(ProgramRegistration.team_id == team_id)
    result = await session.execute(query)
    return list(result.scalars().all())


# --- Replacement requests ---


async def create_replacement_request(
    session: AsyncSession,
    program_id: str,
    team_id: str,
    old_student_id: str,
    new_student_id: str,
    reason: str,
) -> ReplacementRequest:
    async with atomic(session):
        program = await session.get(Program, program_id)
        if not program:
            raise ProgramNotFound()
        reg_result = await session.execute(
            select(ProgramRegistration).where(
                ProgramRegistration.program_id == program_id,
                ProgramRegistration.student_id == old_student_id,
                ProgramRegistration.team_id == team_id,
            )
        )
        if not reg_result.scalar_one_or_none():
            raise ValidationError("The student being replaced is not registered for this program.")
        new_student = await session.get(Student, new_student_id)
        if not new_student:
            raise StudentNotFound()
        if new_student.team_id != team_id:
            raise ValidationError("Replacement must be a member of your team.")
        reason = await _check_entry(session, program, new_student)
        if reason:
            raise ValidationError(f"{new_student.name}: {reason}")
        pending = await session.execute(
            select(ReplacementRequest).where(
                ReplacementRequest.program_id == program_id,
                ReplacementRequest.old_student_id == old_student_id,
                ReplacementRequest.status == "pending",
            )
        )
        if pending.scalar_one_or_none():
            old_student = await session.get(Student, old_student_id)
            old_name = old_student.name if old_student else old_student_id
            raise DuplicateRegistration(
                f'A pending replacement request already exists for "{old_name}" in program "{program.name}".'
            )
        request = ReplacementRequest(
            id=new_id(),
            program_id=program_id,
            old_student_id=old_student_id,
            new_student_id=new_student_id,
            team_id=team_id,
            reason=reason,
            status="pending",
        )
        session.add(request)
    return request


async def _pending_request(session: AsyncSession, request_id: str) -> ReplacementRequest:
    request = await session.get(ReplacementRequest, request_id)
    if not request:
        raise NotFound("Replacement request not found")
    if request.status != "pending":
        raise ValidationError("Request has already been processed")
    return request


async def approve_replacement_request(session: AsyncSession, request_id: str, reviewed_by: str) -> ReplacementRequest:
    """Move the registration from the old student to the new one.

    The new student is checked against the registrations as they stand at approval time.
    """
    async with atomic(session):
        request = await _pending_request(session, request_id)
        program = await session.get(Program, request.program_id)
        if not program:
            raise ProgramNotFound()
        new_student = await session.get(Student, request.new_student_id)
        if not new_student:
            raise StudentNotFound()
        reason = await _check_entry(session, program, new_student)
        if reason:
            raise ValidationError(f"{new_student.name}: {reason}")
        result = await session.execute(
            select(ProgramRegistration).where(
                ProgramRegistration.program_id == request.program_id,
                ProgramRegistration.student_id == request.old_student_id,
            )
        )
        reg = result.scalar_one_or_none()
        if reg:
            reg.student_id = request.new_student_id
        request.status = "approved"
        request.reviewed_at = utcnow()
        request.reviewed_by = reviewed_by
    logger.info("Replacement request %s approved by %s", request_id, reviewed_by)
    return request


async def reject_replacement_request(session: AsyncSession, request_id: str, reviewed_by: str) -> ReplacementRequest:
    async with atomic(session):
        request = await _pending_request(session, request_id)
        request.status = "rejected"
        request.reviewed_at = utcnow()
        request.reviewed_by = reviewed_by
    return request


async def list_replacement_requests(session: AsyncSession, team_id: Optional[str] = None) -> list[ReplacementRequest]:
    query = select(ReplacementRequest).order_by(ReplacementRequest.submitted_at.desc())
    if team_id:
        query = query.where(ReplacementRequest.team_id == team_id)
    result = await session.execute(query)
    return list(result.scalars().all())
