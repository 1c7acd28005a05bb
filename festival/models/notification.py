"""Public notification model."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from festival.models.base import Base, utcnow


class Notification(Base):
    """Broadcast notification (currently only "result_published")."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # notif-xxxxxxxx
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="result_published")
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    program_id: Mapped[str] = mapped_column(String(64), nullable=False)
    program_name: Mapped[str] = mapped_column(String(128), nullable=False)
    result_id: Mapped[str] = mapped_column(String(64), nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
