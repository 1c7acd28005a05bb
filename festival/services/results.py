"""Result workflow: jury submission, admin approval/rejection, edits and deletes.

A program has at most one ResultRecord. Records start as "pending" and are
published by flipping their status to "approved" in place; only published
records contribute to the score ledger. Every operation below runs in a single
transaction and publishes its realtime events after the commit.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from festival.models import Program, ProgramRegistration, ResultRecord
from festival.models.base import atomic, new_id, utcnow
from festival.services import realtime
from festival.services.assignments import get_assignment, set_assignment_status
from festival.services.errors import (
    DuplicateSubmission,
    InvalidCandidate,
    InvalidPenaltyTarget,
    JuryNotFound,
    ProgramNotFound,
    ResultNotFound,
    ValidationError,
)
from festival.services.ledger import apply_entry_scores, apply_penalties
from festival.services.notifications import build_result_published
from festival.services.scoring import POSITIONS, calculate_score, sanitize_grade
from festival.services.stores import find_jury, find_program, find_students_by_ids, find_teams_by_ids

logger = logging.getLogger("festival.results")


class WinnerInput(BaseModel):
    position: int
    id: str  # student id (single) or team id (group/general)
    grade: str = "none"


class PenaltyInput(BaseModel):
    id: str
    type: Literal["student", "team"]
    points: int
    reason: Optional[str] = None


def validate_winners(winners: list[WinnerInput]) -> None:
    """Exactly one winner for each of positions 1-3, all different."""
    if len(winners) != len(POSITIONS) or sorted(w.position for w in winners) != list(POSITIONS):
        raise ValidationError("All placements are required")
    if len({w.id for w in winners}) != len(winners):
        raise ValidationError("1st, 2nd, and 3rd place must have different candidates.")


def validate_penalties(penalties: list[PenaltyInput]) -> None:
    for penalty in penalties:
        if penalty.points < 0:
            raise ValidationError("Minus points cannot be negative.")


async def build_entries(session: AsyncSession, program: Program, winners: list[WinnerInput]) -> list[dict]:
    """Resolve winners and fix each entry's score from the program's scoring table."""
    ordered = sorted(winners, key=lambda w: w.position)
    if program.section == "single":
        students = await find_students_by_ids(session, [w.id for w in ordered])
        entries = []
        for winner in ordered:
            student = students.get(winner.id)
            if not student:
                raise InvalidCandidate("Invalid student selected")
            grade = sanitize_grade(winner.grade)
            entries.append({
                "position": winner.position,
                "student_id": student.id,
                "team_id": student.team_id,
                "grade": grade,
                "score": calculate_score(program.section, program.category, winner.position, grade),
            })
        return entries

    teams = await find_teams_by_ids(session, [w.id for w in ordered])
    entries = []
    for winner in ordered:
        team = teams.get(winner.id)
        if not team:
            raise InvalidCandidate("Invalid team selected")
        entries.append({
            "position": winner.position,
            "student_id": None,
            "team_id": team.id,
            "grade": "none",
            "score": calculate_score(program.section, "none", winner.position, "none"),
        })
    return entries


async def build_penalties(session: AsyncSession, penalties: Optional[list[PenaltyInput]]) -> list[dict]:
    """Resolve penalty targets to their team. Student penalties keep the student id for display."""
    penalties = [p for p in penalties or [] if p.points > 0]
    if not penalties:
        return []
    students = await find_students_by_ids(session, [p.id for p in penalties if p.type == "student"])
    teams = await find_teams_by_ids(session, [p.id for p in penalties if p.type == "team"])
    resolved = []
    for penalty in penalties:
        if penalty.type == "student":
            student = students.get(penalty.id)
            if not student:
                raise InvalidPenaltyTarget("Invalid student selected for minus points.")
            resolved.append({
                "student_id": student.id,
                "team_id": student.team_id,
                "points": penalty.points,
                "reason": penalty.reason,
            })
        else:
            team = teams.get(penalty.id)
            if not team:
                raise InvalidPenaltyTarget("Invalid team selected for minus points.")
            resolved.append({
                "student_id": None,
                "team_id": team.id,
                "points": penalty.points,
                "reason": penalty.reason,
            })
    return resolved


async def ensure_registered_candidates(
    session: AsyncSession,
    program: Program,
    winners: list[WinnerInput],
    penalties: list[PenaltyInput],
) -> None:
    """Winners and penalty targets must come from the program's registered candidates."""
    result = await session.execute(
        select(ProgramRegistration).where(ProgramRegistration.program_id == program.id)
    )
    registrations = result.scalars().all()
    if not registrations:
        raise ValidationError("No registered candidates for this program.")
    student_ids = {r.student_id for r in registrations}
    team_ids = {r.team_id for r in registrations}
    allowed = student_ids if program.section == "single" else team_ids
    for winner in winners:
        if winner.id not in allowed:
            raise InvalidCandidate("Winner must be selected from registered candidates.")
    for penalty in penalties:
        if penalty.id not in (student_ids if penalty.type == "student" else team_ids):
            raise InvalidPenaltyTarget("Minus points must target registered candidates.")


async def _existing_for_program(session: AsyncSession, program_id: str) -> Optional[ResultRecord]:
    result = await session.execute(select(ResultRecord).where(ResultRecord.program_id == program_id))
    return result.scalar_one_or_none()


async def _duplicate_error(session: AsyncSession, program: Program, existing: ResultRecord) -> DuplicateSubmission:
    if existing.status == "approved":
        return DuplicateSubmission("Program already published", DuplicateSubmission.PUBLISHED)
    jury = await find_jury(session, existing.jury_id)
    jury_name = jury.name if jury else "Unknown Jury"
    return DuplicateSubmission(
        f'A pending result already exists for program "{program.name}" submitted by {jury_name}. '
        "Please wait for admin approval or contact support.",
        DuplicateSubmission.PENDING,
        jury_name=jury_name,
    )


async def submit_result(
    session: AsyncSession,
    program_id: str,
    jury_id: str,
    winners: list[WinnerInput],
    penalties: Optional[list[PenaltyInput]] = None,
    *,
    require_registration: bool = True,
    require_assignment: bool = True,
    publisher: Optional[realtime.Publisher] = None,
) -> ResultRecord:
    """Jury submission. Creates the program's pending result and marks the assignment submitted.

    A jury may only submit for a program it is assigned to while that assignment
    is still pending. Admin direct entry passes ``require_assignment=False``.
    """
    publisher = publisher or realtime.get_publisher()
    penalties = penalties or []
    validate_winners(winners)
    validate_penalties(penalties)
    penalties = [p for p in penalties if p.points > 0]

    async with atomic(session):
        program = await find_program(session, program_id)
        if not program:
            raise ProgramNotFound()
        jury = await find_jury(session, jury_id)
        if not jury:
            raise JuryNotFound()

        existing = await _existing_for_program(session, program_id)
        if existing:
            raise await _duplicate_error(session, program, existing)

        if require_assignment:
            assignment = await get_assignment(session, program.id, jury.id)
            if assignment is None or assignment.status != "pending":
                raise ValidationError("This program is not open for submission by this jury.")

        if require_registration:
            await ensure_registered_candidates(session, program, winners, penalties)
        entries = await build_entries(session, program, winners)
        penalty_entries = await build_penalties(session, penalties)

        record = ResultRecord(
            id=new_id(),
            program_id=program.id,
            jury_id=jury.id,
            submitted_by=jury.name,
            submitted_at=utcnow(),
            entries=entries,
            penalties=penalty_entries,
            status="pending",
        )
        session.add(record)
        try:
            await session.flush()
        except IntegrityError:
            # Lost a race with a concurrent submission for the same program
            raise DuplicateSubmission(
                f'A result for program "{program.name}" already exists. '
                "This may have been submitted by another jury. Please refresh and check.",
                DuplicateSubmission.PENDING,
            ) from None
        await set_assignment_status(session, program.id, jury.id, "submitted")

    logger.info("Result %s submitted for program %s by jury %s", record.id, program.id, jury.id)
    await publisher.publish(
        realtime.RESULTS,
        realtime.RESULT_SUBMITTED,
        {"resultId": record.id, "programId": program.id, "juryId": jury.id},
    )
    return record


async def approve_result(
    session: AsyncSession,
    result_id: str,
    *,
    publisher: Optional[realtime.Publisher] = None,
) -> ResultRecord:
    """Publish a pending result and apply its scores and penalties to the ledger exactly once."""
    publisher = publisher or realtime.get_publisher()
    async with atomic(session):
        flipped = await session.execute(
            update(ResultRecord)
            .where(ResultRecord.id == result_id, ResultRecord.status == "pending")
            .values(status="approved", submitted_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            raise ResultNotFound()
        record = await session.get(ResultRecord, result_id, populate_existing=True)

        await apply_entry_scores(session, record.entries, 1)
        await apply_penalties(session, record.penalties, 1)
        await set_assignment_status(session, record.program_id, record.jury_id, "completed")

        program = await find_program(session, record.program_id)
        notification = None
        if program:
            notification = build_result_published(program, record.id)
            session.add(notification)

    logger.info("Result %s approved for program %s", record.id, record.program_id)
    if notification:
        await publisher.publish(
            realtime.NOTIFICATIONS,
            realtime.NOTIFICATION_CREATED,
            {
                "id": notification.id,
                "title": notification.title,
                "message": notification.message,
                "programId": notification.program_id,
                "resultId": notification.result_id,
            },
        )
    await publisher.publish(
        realtime.RESULTS,
        realtime.RESULT_APPROVED,
        {"resultId": record.id, "programId": record.program_id},
    )
    await publisher.publish(realtime.SCOREBOARD, realtime.SCOREBOARD_UPDATED, {})
    return record


async def _get_with_status(session: AsyncSession, result_id: str, status: str) -> ResultRecord:
    result = await session.execute(
        select(ResultRecord).where(ResultRecord.id == result_id, ResultRecord.status == status)
    )
    record = result.scalar_one_or_none()
    if not record:
        label = "Pending" if status == "pending" else "Approved"
        raise ResultNotFound(f"{label} result not found")
    return record


async def reject_result(
    session: AsyncSession,
    result_id: str,
    *,
    publisher: Optional[realtime.Publisher] = None,
) -> None:
    """Discard a pending result and hand the program back to its jury."""
    publisher = publisher or realtime.get_publisher()
    async with atomic(session):
        record = await _get_with_status(session, result_id, "pending")
        program_id, jury_id = record.program_id, record.jury_id
        await session.delete(record)
        await set_assignment_status(session, program_id, jury_id, "pending")

    logger.info("Result %s rejected for program %s", result_id, program_id)
    await publisher.publish(
        realtime.RESULTS,
        realtime.RESULT_REJECTED,
        {"resultId": result_id, "programId": program_id},
    )


async def update_pending_result(
    session: AsyncSession,
    result_id: str,
    winners: list[WinnerInput],
    penalties: Optional[list[PenaltyInput]] = None,
    *,
    publisher: Optional[realtime.Publisher] = None,
) -> ResultRecord:
    """Rewrite a pending result's entries. The ledger is untouched until approval."""
    publisher = publisher or realtime.get_publisher()
    penalties = penalties or []
    validate_winners(winners)
    validate_penalties(penalties)
    async with atomic(session):
        record = await _get_with_status(session, result_id, "pending")
        program = await find_program(session, record.program_id)
        if not program:
            raise ProgramNotFound()
        record.entries = await build_entries(session, program, winners)
        record.penalties = await build_penalties(session, penalties)
        record.submitted_at = utcnow()

    await publisher.publish(
        realtime.RESULTS,
        realtime.RESULT_SUBMITTED,
        {"resultId": record.id, "programId": record.program_id, "juryId": record.jury_id},
    )
    return record


async def update_approved_result(
    session: AsyncSession,
    result_id: str,
    winners: list[WinnerInput],
    penalties: Optional[list[PenaltyInput]] = None,
    *,
    publisher: Optional[realtime.Publisher] = None,
) -> ResultRecord:
    """Replace a published result. Old scores are fully undone before the new ones are applied."""
    publisher = publisher or realtime.get_publisher()
    penalties = penalties or []
    validate_winners(winners)
    validate_penalties(penalties)
    async with atomic(session):
        record = await _get_with_status(session, result_id, "approved")
        program = await find_program(session, record.program_id)
        if not program:
            raise ProgramNotFound()
        entries = await build_entries(session, program, winners)
        penalty_entries = await build_penalties(session, penalties)

        await apply_entry_scores(session, record.entries, -1)
        await apply_penalties(session, record.penalties, -1)
        record.entries = entries
        record.penalties = penalty_entries
        record.submitted_at = utcnow()
        await apply_entry_scores(session, entries, 1)
        await apply_penalties(session, penalty_entries, 1)

    logger.info("Approved result %s edited", record.id)
    await publisher.publish(
        realtime.RESULTS,
        realtime.RESULT_UPDATED,
        {"resultId": record.id, "programId": record.program_id},
    )
    await publisher.publish(realtime.SCOREBOARD, realtime.SCOREBOARD_UPDATED, {})
    return record


async def delete_approved_result(
    session: AsyncSession,
    result_id: str,
    *,
    publisher: Optional[realtime.Publisher] = None,
) -> None:
    """Unpublish a result, reversing all of its ledger effects."""
    publisher = publisher or realtime.get_publisher()
    async with atomic(session):
        record = await _get_with_status(session, result_id, "approved")
        program_id, jury_id = record.program_id, record.jury_id
        await apply_entry_scores(session, record.entries, -1)
        await apply_penalties(session, record.penalties, -1)
        await session.delete(record)
        await set_assignment_status(session, program_id, jury_id, "submitted")

    logger.info("Approved result %s deleted for program %s", result_id, program_id)
    await publisher.publish(
        realtime.RESULTS,
        realtime.RESULT_DELETED,
        {"resultId": result_id, "programId": program_id},
    )
    await publisher.publish(realtime.SCOREBOARD, realtime.SCOREBOARD_UPDATED, {})


async def get_result(session: AsyncSession, result_id: str) -> Optional[ResultRecord]:
    return await session.get(ResultRecord, result_id)


async def list_results(
    session: AsyncSession,
    status: Optional[str] = None,
    jury_id: Optional[str] = None,
) -> list[ResultRecord]:
    query = select(ResultRecord).order_by(ResultRecord.submitted_at.desc())
    if status:
        query = query.where(ResultRecord.status == status)
    if jury_id:
        query = query.where(ResultRecord.jury_id == jury_id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def result_for_program(session: AsyncSession, program_id: str) -> Optional[ResultRecord]:
    """Published result of a program, if any."""
    result = await session.execute(
        select(ResultRecord).where(ResultRecord.program_id == program_id, ResultRecord.status == "approved")
    )
    return result.scalar_one_or_none()


def result_to_dict(record: ResultRecord) -> dict:
    return {
        "id": record.id,
        "program_id": record.program_id,
        "jury_id": record.jury_id,
        "submitted_by": record.submitted_by,
        "submitted_at": record.submitted_at.isoformat() if record.submitted_at else None,
        "entries": record.entries,
        "penalties": record.penalties or [],
        "status": record.status,
        "notes": record.notes,
    }
