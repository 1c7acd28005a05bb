"""Database models."""
from festival.models.base import Base, init_db
from festival.models.team import Team
from festival.models.student import Student
from festival.models.program import Program
from festival.models.jury import Jury
from festival.models.assignment import AssignedProgram
from festival.models.result import ResultRecord
from festival.models.registration import ProgramRegistration, ReplacementRequest
from festival.models.notification import Notification
from festival.models.setting import Setting
from festival.models.user import User  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Team",
    "Student",
    "Program",
    "Jury",
    "AssignedProgram",
    "ResultRecord",
    "ProgramRegistration",
    "ReplacementRequest",
    "Notification",
    "Setting",
    "User",
    "init_db",
]
