"""Domain errors. Callers switch on ``kind`` (and ``state`` for duplicate submissions), never on message text."""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    DUPLICATE_SUBMISSION = "duplicate_submission"
    DUPLICATE = "duplicate"
    INVALID_CANDIDATE = "invalid_candidate"
    INVALID_PENALTY_TARGET = "invalid_penalty_target"
    VALIDATION = "validation"


class FestivalError(Exception):
    """Base for user-facing workflow errors."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind.value}


class NotFound(FestivalError):
    kind = ErrorKind.NOT_FOUND


class ProgramNotFound(NotFound):
    def __init__(self, message: str = "Program not found"):
        super().__init__(message)


class JuryNotFound(NotFound):
    def __init__(self, message: str = "Jury not found"):
        super().__init__(message)


class TeamNotFound(NotFound):
    def __init__(self, message: str = "Team not found"):
        super().__init__(message)


class StudentNotFound(NotFound):
    def __init__(self, message: str = "Student not found"):
        super().__init__(message)


class ResultNotFound(NotFound):
    def __init__(self, message: str = "Result not found"):
        super().__init__(message)


class DuplicateSubmission(FestivalError):
    """A result already exists for the program. state is "pending" (awaiting approval) or "published"."""

    kind = ErrorKind.DUPLICATE_SUBMISSION

    PENDING = "pending"
    PUBLISHED = "published"

    def __init__(self, message: str, state: str, jury_name: Optional[str] = None):
        super().__init__(message)
        self.state = state
        self.jury_name = jury_name

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["state"] = self.state
        return data


DuplicateResult = DuplicateSubmission


class Duplicate(FestivalError):
    """Unique business key already taken (chest number, registration, pending replacement)."""

    kind = ErrorKind.DUPLICATE


class DuplicateChestNumber(Duplicate):
    pass


class DuplicateRegistration(Duplicate):
    pass


class InvalidCandidate(FestivalError):
    kind = ErrorKind.INVALID_CANDIDATE


class InvalidPenaltyTarget(FestivalError):
    kind = ErrorKind.INVALID_PENALTY_TARGET


class ValidationError(FestivalError):
    kind = ErrorKind.VALIDATION
