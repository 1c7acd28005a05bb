"""Score tables for program results."""
from __future__ import annotations

# Base points for single-section programs, by category then position
CATEGORY_SCORES = {
    "A": {1: 10, 2: 7, 3: 5},
    "B": {1: 7, 2: 5, 3: 3},
    "C": {1: 5, 2: 3, 3: 1},
}

# Grade bonus, single-section only
GRADE_BONUS = {"A": 5, "B": 3, "C": 1, "none": 0}

GROUP_SCORES = {1: 20, 2: 15, 3: 10}
GENERAL_SCORES = {1: 25, 2: 20, 3: 15}

POSITIONS = (1, 2, 3)


def calculate_score(section: str, category: str, position: int, grade: str = "none") -> int:
    """Points for one placement. Inputs are pre-validated; anything else raises ValueError."""
    if position not in POSITIONS:
        raise ValueError(f"Invalid position: {position!r}")
    if section == "single":
        if category == "none":
            base = 0
        elif category in CATEGORY_SCORES:
            base = CATEGORY_SCORES[category][position]
        else:
            raise ValueError(f"Invalid category: {category!r}")
        if grade not in GRADE_BONUS:
            raise ValueError(f"Invalid grade: {grade!r}")
        return base + GRADE_BONUS[grade]
    if section == "group":
        return GROUP_SCORES[position]
    if section == "general":
        return GENERAL_SCORES[position]
    raise ValueError(f"Invalid section: {section!r}")


def sanitize_grade(grade: str | None) -> str:
    """Unknown or missing grades become "none"."""
    return grade if grade in GRADE_BONUS else "none"
