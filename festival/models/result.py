"""Program result record (pending or approved)."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from festival.models.base import Base, utcnow

RESULT_STATUSES = ("pending", "approved")


class ResultRecord(Base):
    """Result of one program. program_id is unique: at most one record, pending or approved, per program.

    entries: [{"position", "student_id", "team_id", "grade", "score"}] (score fixed at write time)
    penalties: [{"student_id", "team_id", "points", "reason"}] (always resolved to a team)
    """

    __tablename__ = "results"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    program_id: Mapped[str] = mapped_column(ForeignKey("programs.id"), unique=True, nullable=False)
    jury_id: Mapped[str] = mapped_column(ForeignKey("juries.id"), nullable=False, index=True)
    submitted_by: Mapped[str] = mapped_column(String(128), nullable=False)  # jury display name
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    entries: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    penalties: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"
