"""Team model - a house/team that fields students and collects points."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from festival.models.base import Base


class Team(Base):
    """Competing team. total_points is the denormalized ledger total, maintained by the result workflow."""

    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    leader: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    leader_photo: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#888888")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contact: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    portal_password_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)  # team portal login

    students = relationship("Student", back_populates="team", cascade="all, delete-orphan")
