"""Grade arithmetic and the statistics aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from .models import Grade

# Band-top values of each letter band on the 30-point scale.
LETTER_POINTS: Dict[str, int] = {
    "A": 30,
    "B": 27,
    "C": 24,
    "D": 21,
    "E": 18,
    "F": 0,
}

NUMERIC_TO_LETTER_SCALE: List[Tuple[float, str]] = [
    (30, "A"),
    (28, "B"),
    (25, "C"),
    (22, "D"),
    (18, "E"),
]

PASSING_THRESHOLD = 18


def letter_to_numeric(letter: str) -> int:
    try:
        return LETTER_POINTS[letter]
    except KeyError:
        raise ValueError(f"Unknown letter grade: {letter!r}") from None


def numeric_to_letter(value: float) -> str:
    """Map a numeric grade onto the letter bands, failing below 18."""

    for threshold, letter in NUMERIC_TO_LETTER_SCALE:
        if value >= threshold:
            return letter
    return "F"


def format_grade(grade: Grade) -> str:
    if grade.voto_lettera:
        return grade.voto_lettera
    if grade.voto_numerico is not None:
        return f"{grade.voto_numerico}L" if grade.con_lode else str(grade.voto_numerico)
    return ""


def is_passing(grade: Grade) -> bool:
    if grade.voto_lettera:
        return grade.voto_lettera != "F"
    if grade.voto_numerico is not None:
        return grade.voto_numerico >= PASSING_THRESHOLD
    return False


def numeric_value(grade: Grade) -> float:
    """Return the contribution of a grade to an average."""

    if grade.voto_lettera:
        return letter_to_numeric(grade.voto_lettera)
    if grade.voto_numerico is not None:
        return grade.voto_numerico
    return 0


@dataclass
class GradeStats:
    average: float = 0
    passing: int = 0
    failing: int = 0
    passing_percentage: float = 0
    distribution: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average": self.average,
            "passing": self.passing,
            "failing": self.failing,
            "passingPercentage": self.passing_percentage,
            "distribution": dict(self.distribution),
        }


def calculate_stats(grades: Iterable[Grade]) -> GradeStats:
    """Reduce grades into average, pass/fail counts and a distribution.

    Letter grades contribute their band-top value to the average. The
    distribution is keyed by the display form of each grade (``"A"``,
    ``"24"``, ``"30L"``).
    """

    grades = list(grades)
    if not grades:
        return GradeStats()

    total = 0.0
    passing = 0
    distribution: Dict[str, int] = {}

    for grade in grades:
        total += numeric_value(grade)
        if is_passing(grade):
            passing += 1
        key = format_grade(grade)
        distribution[key] = distribution.get(key, 0) + 1

    count = len(grades)
    return GradeStats(
        average=round(total / count, 2),
        passing=passing,
        failing=count - passing,
        passing_percentage=round(passing / count * 100, 2),
        distribution=distribution,
    )


__all__ = [
    "LETTER_POINTS",
    "GradeStats",
    "letter_to_numeric",
    "numeric_to_letter",
    "format_grade",
    "is_passing",
    "numeric_value",
    "calculate_stats",
]
