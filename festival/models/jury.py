"""Jury model."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from festival.models.base import Base


class Jury(Base):
    """Jury member who evaluates assigned programs. Avatar is assigned once and never changes."""

    __tablename__ = "juries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # jury-xxxxxxxx
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    avatar: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
