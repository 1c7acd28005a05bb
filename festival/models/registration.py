"""Program registration and replacement request models."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from festival.models.base import Base, utcnow


class ProgramRegistration(Base):
    """Student registered by their team as a candidate for a program."""

    __tablename__ = "program_registrations"
    __table_args__ = (UniqueConstraint("program_id", "student_id", name="uq_registration_program_student"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    program_id: Mapped[str] = mapped_column(ForeignKey("programs.id"), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False, index=True)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    program = relationship("Program")
    student = relationship("Student")
    team = relationship("Team")


class ReplacementRequest(Base):
    """Team request to swap a registered student for another one in the same program."""

    __tablename__ = "replacement_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    program_id: Mapped[str] = mapped_column(ForeignKey("programs.id"), nullable=False, index=True)
    old_student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False)
    new_student_id: Mapped[str] = mapped_column(ForeignKey("students.id"), nullable=False)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending, approved, rejected
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
