"""Students and participant lookups: chest numbers, profiles, jury avatars."""
from __future__ import annotations

import random
import re
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from festival.models import Program, ProgramRegistration, ResultRecord, Student, Team
from festival.services.errors import DuplicateChestNumber

_CHEST_SUFFIX = re.compile(r"^\d+$")

JURY_AVATARS = [
    "/img/jury.webp",
    "/img/jury1.webp",
    "/img/jury2.webp",
    "/img/jury3.webp",
    "/img/jury4.webp",
]


def random_jury_avatar() -> str:
    return random.choice(JURY_AVATARS)


def normalize_chest_no(chest_no: str) -> str:
    return chest_no.strip().upper()


def next_chest_number(team_name: str, existing: list[str]) -> str:
    """Team prefix (first two letters of the team name) + next number, zero-padded to 3 digits (AB007, AB1000)."""
    prefix = team_name.strip()[:2].upper()
    numbers = []
    for chest in existing:
        chest = chest.upper()
        if chest.startswith(prefix) and _CHEST_SUFFIX.match(chest[len(prefix):]):
            numbers.append(int(chest[len(prefix):]))
    return f"{prefix}{max(numbers, default=0) + 1:03d}"


async def generate_chest_number(session: AsyncSession, team: Team) -> str:
    prefix = team.name.strip()[:2].upper()
    result = await session.execute(select(Student.chest_no).where(Student.chest_no.startswith(prefix)))
    return next_chest_number(team.name, [row[0] for row in result.all()])


async def ensure_chest_available(session: AsyncSession, chest_no: str, exclude_student_id: Optional[str] = None) -> None:
    query = select(Student).where(Student.chest_no == chest_no)
    if exclude_student_id:
        query = query.where(Student.id != exclude_student_id)
    result = await session.execute(query)
    existing = result.scalar_one_or_none()
    if existing:
        raise DuplicateChestNumber(
            f'Chest number "{chest_no}" is already registered to student "{existing.name}".'
        )


async def search_participants(session: AsyncSession, term: str, limit: int = 20) -> list[Student]:
    """Case-insensitive match on chest number or name."""
    pattern = f"%{term.strip()}%"
    result = await session.execute(
        select(Student)
        .where(or_(Student.chest_no.ilike(pattern), Student.name.ilike(pattern)))
        .order_by(Student.chest_no)
        .limit(limit)
    )
    return list(result.scalars().all())


async def participant_profile(session: AsyncSession, identifier: str) -> Optional[dict]:
    """Student by id or chest number, with team, registered programs and placements won."""
    result = await session.execute(
        select(Student).where(
            or_(Student.id == identifier, Student.chest_no == normalize_chest_no(identifier))
        )
    )
    student = result.scalar_one_or_none()
    if not student:
        return None
    team = await session.get(Team, student.team_id)

    regs = await session.execute(
        select(Program)
        .join(ProgramRegistration, ProgramRegistration.program_id == Program.id)
        .where(ProgramRegistration.student_id == student.id)
        .order_by(Program.name)
    )
    programs = regs.scalars().all()

    published = await session.execute(select(ResultRecord).where(ResultRecord.status == "approved"))
    achievements = []
    for record in published.scalars().all():
        for entry in record.entries:
            if entry.get("student_id") == student.id:
                achievements.append({
                    "result_id": record.id,
                    "program_id": record.program_id,
                    "position": entry["position"],
                    "grade": entry.get("grade", "none"),
                    "score": entry["score"],
                })
    achievements.sort(key=lambda a: a["position"])

    return {
        "id": student.id,
        "name": student.name,
        "chest_no": student.chest_no,
        "avatar": student.avatar,
        "total_points": student.total_points,
        "team": {"id": team.id, "name": team.name, "color": team.color} if team else None,
        "programs": [{"id": p.id, "name": p.name, "section": p.section} for p in programs],
        "achievements": achievements,
    }
