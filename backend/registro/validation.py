"""Grade validation shared by every grade mutation path."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any

from .errors import (
    DuplicateKeyError,
    InvalidValueError,
    NotFoundError,
    TypeMismatchError,
)
from .models import (
    EXAM_TYPE_COMPLETE,
    EXAM_TYPE_INTERMEDIATE,
    LETTER_GRADES,
    Grade,
    exam_type_for_course,
)

if TYPE_CHECKING:
    from .store import EntityStore

MIN_NUMERIC_GRADE = 18
MAX_NUMERIC_GRADE = 30


def _coerce_numeric(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidValueError("Numeric grade must be an integer.", field="votoNumerico")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise InvalidValueError("Numeric grade must be an integer.", field="votoNumerico")
    return value


class GradeValidator:
    """Check a grade against its exam, course and student.

    ``validate`` returns a normalised copy: letter grades lose any numeric
    fields, numeric grades lose the letter. With
    ``requires_course_consistency_check`` disabled the exam type alone
    decides the grade shape (course-less schema).
    """

    def __init__(self, store: "EntityStore", *, requires_course_consistency_check: bool = True) -> None:
        self.store = store
        self.requires_course_consistency_check = requires_course_consistency_check

    def validate(self, grade: Grade) -> Grade:
        exam = self.store.get_exam(grade.exam_id)
        if exam is None:
            raise NotFoundError("Related exam not found.", field="examId")

        if self.requires_course_consistency_check:
            course = self.store.get_course(exam.course_id) if exam.course_id else None
            if course is None:
                raise NotFoundError("Related course not found.", field="courseId")
            if exam_type_for_course(course) != exam.tipo:
                raise TypeMismatchError("Exam type incompatible with course.", field="tipo")

        if exam.tipo == EXAM_TYPE_INTERMEDIATE:
            normalized = self._validate_letter(grade)
        elif exam.tipo == EXAM_TYPE_COMPLETE:
            normalized = self._validate_numeric(grade)
        else:
            raise InvalidValueError(f"Unknown exam type: {exam.tipo!r}.", field="tipo")

        if self.store.get_student_by_matricola(grade.matricola) is None:
            raise NotFoundError("Student not found.", field="matricola")

        for existing in self.store.get_grades():
            if (
                existing.matricola == grade.matricola
                and existing.exam_id == grade.exam_id
                and existing.id != grade.id
            ):
                raise DuplicateKeyError(
                    "Duplicate grade for student in this exam.", field="matricola"
                )

        return normalized

    @staticmethod
    def _validate_letter(grade: Grade) -> Grade:
        if grade.voto_lettera is None or str(grade.voto_lettera).strip() == "":
            raise InvalidValueError("Letter grade required.", field="votoLettera")

        letter = str(grade.voto_lettera).strip().upper()
        if letter not in LETTER_GRADES:
            raise InvalidValueError(
                "Letter grade must be one of " + ", ".join(LETTER_GRADES) + ".",
                field="votoLettera",
            )
        return replace(grade, voto_lettera=letter, voto_numerico=None, con_lode=None)

    @staticmethod
    def _validate_numeric(grade: Grade) -> Grade:
        if grade.voto_numerico is None:
            raise InvalidValueError("Numeric grade required.", field="votoNumerico")

        value = _coerce_numeric(grade.voto_numerico)
        if value < MIN_NUMERIC_GRADE or value > MAX_NUMERIC_GRADE:
            raise InvalidValueError(
                f"Numeric grade must be between {MIN_NUMERIC_GRADE} and {MAX_NUMERIC_GRADE}.",
                field="votoNumerico",
            )

        con_lode = grade.con_lode
        if con_lode is not None:
            if not isinstance(con_lode, bool):
                raise InvalidValueError("Honors flag must be a boolean.", field="conLode")
            if con_lode and value != MAX_NUMERIC_GRADE:
                raise InvalidValueError("Honors only with 30.", field="conLode")

        return replace(grade, voto_lettera=None, voto_numerico=value, con_lode=con_lode)


__all__ = ["GradeValidator", "MIN_NUMERIC_GRADE", "MAX_NUMERIC_GRADE"]
