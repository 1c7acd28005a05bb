"""Jury assignment tracker."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from festival.models import AssignedProgram, ResultRecord
from festival.models.assignment import ASSIGNMENT_STATUSES
from festival.models.base import atomic
from festival.services import realtime
from festival.services.errors import FestivalError, JuryNotFound, NotFound, ProgramNotFound, ValidationError
from festival.services.stores import find_jury, find_program

logger = logging.getLogger("festival.assignments")


async def set_assignment_status(session: AsyncSession, program_id: str, jury_id: str, status: str) -> None:
    """Set status of an existing assignment. Missing pairs are left alone (admin entries have none)."""
    if status not in ASSIGNMENT_STATUSES:
        raise ValueError(f"Invalid assignment status: {status!r}")
    await session.execute(
        update(AssignedProgram)
        .where(AssignedProgram.program_id == program_id, AssignedProgram.jury_id == jury_id)
        .values(status=status)
    )


async def list_assignments(session: AsyncSession, jury_id: Optional[str] = None) -> list[AssignedProgram]:
    query = select(AssignedProgram).order_by(AssignedProgram.id)
    if jury_id:
        query = query.where(AssignedProgram.jury_id == jury_id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def get_assignment(session: AsyncSession, program_id: str, jury_id: str) -> Optional[AssignedProgram]:
    result = await session.execute(
        select(AssignedProgram).where(
            AssignedProgram.program_id == program_id,
            AssignedProgram.jury_id == jury_id,
        )
    )
    return result.scalar_one_or_none()


async def assign_program(
    session: AsyncSession,
    program_id: str,
    jury_id: str,
    publisher: Optional[realtime.Publisher] = None,
) -> AssignedProgram:
    """Assign a program to a jury. Idempotent: an existing pair is reset to pending."""
    publisher = publisher or realtime.get_publisher()
    async with atomic(session):
        if not await find_program(session, program_id):
            raise ProgramNotFound()
        if not await find_jury(session, jury_id):
            raise JuryNotFound()
        published = await session.execute(
            select(ResultRecord.id).where(
                ResultRecord.program_id == program_id,
                ResultRecord.status == "approved",
            )
        )
        if published.first():
            raise ValidationError("This program is already published. Cannot assign published programs to juries.")
        assignment = await get_assignment(session, program_id, jury_id)
        created = assignment is None
        if created:
            assignment = AssignedProgram(program_id=program_id, jury_id=jury_id, status="pending")
            session.add(assignment)
        elif assignment.status != "pending":
            assignment.status = "pending"
    if created:
        logger.info("Assigned program %s to jury %s", program_id, jury_id)
        await publisher.publish(
            realtime.ASSIGNMENTS,
            realtime.ASSIGNMENT_CREATED,
            {"programId": program_id, "juryId": jury_id},
        )
    return assignment


async def bulk_assign(
    session: AsyncSession,
    program_ids: list[str],
    jury_id: str,
    publisher: Optional[realtime.Publisher] = None,
) -> dict:
    """Assign each program independently. Returns {"assigned": [...], "failed": [{"program_id", "error"}]}."""
    assigned = []
    failed = []
    for program_id in program_ids:
        try:
            await assign_program(session, program_id, jury_id, publisher=publisher)
        except FestivalError as e:
            failed.append({"program_id": program_id, "error": e.message})
        else:
            assigned.append(program_id)
    return {"assigned": assigned, "failed": failed}


async def delete_assignment(
    session: AsyncSession,
    program_id: str,
    jury_id: str,
    publisher: Optional[realtime.Publisher] = None,
) -> None:
    publisher = publisher or realtime.get_publisher()
    async with atomic(session):
        result = await session.execute(
            delete(AssignedProgram).where(
                AssignedProgram.program_id == program_id,
                AssignedProgram.jury_id == jury_id,
            )
        )
        if not result.rowcount:
            raise NotFound("Assignment not found")
    await publisher.publish(
        realtime.ASSIGNMENTS,
        realtime.ASSIGNMENT_DELETED,
        {"programId": program_id, "juryId": jury_id},
    )
