"""Student model."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from festival.models.base import Base


class Student(Base):
    """Participant. Belongs to exactly one team; chest_no is the globally unique badge id."""

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    chest_no: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)  # uppercase
    avatar: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    team: Mapped["Team"] = relationship("Team", back_populates="students")
