"""Jury-to-program assignment."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from festival.models.base import Base, utcnow

ASSIGNMENT_STATUSES = ("pending", "submitted", "completed")


class AssignedProgram(Base):
    """Evaluation duty of a jury for a program. Status is driven by the result workflow."""

    __tablename__ = "assigned_programs"
    __table_args__ = (UniqueConstraint("program_id", "jury_id", name="uq_assignment_program_jury"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    program_id: Mapped[str] = mapped_column(ForeignKey("programs.id"), nullable=False, index=True)
    jury_id: Mapped[str] = mapped_column(ForeignKey("juries.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending, submitted, completed
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
