"""Program model - a single competition item."""
from __future__ import annotations

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from festival.models.base import Base

SECTIONS = ("single", "group", "general")
CATEGORIES = ("A", "B", "C", "none")
GRADES = ("A", "B", "C", "none")


class Program(Base):
    """Competition item. section and category select the scoring table used for its result."""

    __tablename__ = "programs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    section: Mapped[str] = mapped_column(String(16), nullable=False)  # single, group, general
    stage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)  # on-stage / off-stage
    category: Mapped[str] = mapped_column(String(8), nullable=False, default="none")  # A, B, C, none
    candidate_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # per team

    @property
    def is_individual(self) -> bool:
        return self.section == "single"
