"""Bulk CSV import of students and grades."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Tuple

from .errors import GradebookError, InvalidValueError, NotFoundError, TypeMismatchError
from .grading import numeric_to_letter
from .models import (
    EXAM_TYPE_INTERMEDIATE,
    EXAM_TYPES,
    LETTER_GRADES,
    Exam,
    Grade,
    Student,
    exam_type_for_course,
    serialize_student,
)
from .store import EntityStore
from .validation import MAX_NUMERIC_GRADE, MIN_NUMERIC_GRADE

logger = logging.getLogger(__name__)

HONORS_TRUE_VALUES = {"true", "1"}
STUDENT_HEADER_MARKERS = ("matricola", "nome", "cognome")


@dataclass
class RowError:
    line: int
    matricola: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"line": self.line, "matricola": self.matricola, "message": self.message}


@dataclass
class ImportResult:
    imported: int = 0
    errors: int = 0
    exam_id: str | None = None
    row_errors: List[RowError] = field(default_factory=list)

    def reject(self, line: int, matricola: str, message: str) -> None:
        self.errors += 1
        self.row_errors.append(RowError(line, matricola, message))
        logger.warning("Rejected row %d (%s): %s", line, matricola or "-", message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "errors": self.errors,
            "examId": self.exam_id,
            "rowErrors": [error.to_dict() for error in self.row_errors],
        }


@dataclass
class StudentImportResult:
    imported: List[Student] = field(default_factory=list)
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": [serialize_student(s) for s in self.imported],
            "skipped": self.skipped,
            "errors": self.errors,
        }


def _split_rows(csv_text: str) -> List[Tuple[int, List[str] | None]]:
    """Return ``(line number, columns)`` for every non-blank physical line.

    Each line is parsed on its own so an unbalanced quote only spoils its
    own row; such rows carry ``None`` instead of columns.
    """

    if not isinstance(csv_text, str):
        raise InvalidValueError("CSV data must be text.", field="csv")

    rows: List[Tuple[int, List[str] | None]] = []
    for number, line in enumerate(csv_text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            columns = next(csv.reader([line], strict=True))
        except csv.Error:
            rows.append((number, None))
            continue
        rows.append((number, [column.strip() for column in columns]))
    return rows


def _resolve_exam(
    store: EntityStore,
    course_id: str | None,
    exam_type: str,
    exam_date: str,
    new_exam: bool,
) -> Exam:
    if not new_exam:
        existing = store.find_latest_exam(course_id, exam_type)
        if existing is not None:
            logger.info("Importing into existing exam %s of %s", existing.id, existing.data)
            return existing
    return store.add_exam(Exam(course_id=course_id, tipo=exam_type, data=exam_date))


def _parse_letter(raw: str) -> str:
    letter = raw.upper()
    if letter in LETTER_GRADES:
        return letter
    try:
        value = float(raw)
    except ValueError:
        raise InvalidValueError(f"Unrecognised grade {raw!r}.") from None
    if math.isnan(value) or value < 0:
        raise InvalidValueError(f"Unrecognised grade {raw!r}.")
    return numeric_to_letter(value)


def _parse_numeric(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise InvalidValueError(f"Grade {raw!r} is not an integer.") from None
    if value < MIN_NUMERIC_GRADE or value > MAX_NUMERIC_GRADE:
        raise InvalidValueError(
            f"Grade must be between {MIN_NUMERIC_GRADE} and {MAX_NUMERIC_GRADE}."
        )
    return value


def import_grades(
    store: EntityStore,
    csv_text: str,
    *,
    exam_type: str | None = None,
    course_id: str | None = None,
    exam_date: str | None = None,
    new_exam: bool = True,
    has_header_row: bool = True,
) -> ImportResult:
    """Import ``matricola,voto[,lode]`` rows into one exam.

    The target exam is created, or with ``new_exam=False`` the most recent
    exam of the same course and type is reused. Row failures are counted
    in the result and never abort the batch; a missing course or a course
    whose evaluation type disagrees with ``exam_type`` raises before any
    exam is touched.
    """

    rows = _split_rows(csv_text)
    if not rows:
        return ImportResult()

    if exam_type is not None:
        exam_type = exam_type.strip().lower()

    if store.requires_course_consistency_check:
        course = store.get_course(course_id) if course_id else None
        if course is None:
            raise NotFoundError("Course not found.", field="courseId")
        course_type = exam_type_for_course(course)
        if exam_type is None:
            exam_type = course_type
        elif exam_type != course_type:
            raise TypeMismatchError("Exam type incompatible with course.", field="tipo")
    elif exam_type is None:
        raise InvalidValueError("Exam type is required.", field="tipo")

    if exam_type not in EXAM_TYPES:
        raise InvalidValueError(
            "Exam type must be one of: " + ", ".join(EXAM_TYPES) + ".", field="tipo"
        )

    exam = _resolve_exam(
        store,
        course_id,
        exam_type,
        exam_date or date.today().isoformat(),
        new_exam,
    )

    result = ImportResult(exam_id=exam.id)
    known = {s.matricola for s in store.get_students()}
    graded = {g.matricola for g in store.get_grades() if g.exam_id == exam.id}
    seen: set[str] = set()

    start = 1 if has_header_row else 0
    for line, columns in rows[start:]:
        if columns is None:
            result.reject(line, "", "Malformed CSV row.")
            continue
        if len(columns) < 2:
            result.reject(line, columns[0] if columns else "", "Expected at least 2 columns.")
            continue

        matricola = columns[0]
        if matricola not in known:
            result.reject(line, matricola, "Student not found.")
            continue
        if matricola in seen:
            result.reject(line, matricola, "Matricola repeated in this import.")
            continue
        seen.add(matricola)
        if matricola in graded:
            result.reject(line, matricola, "Student already graded for this exam.")
            continue

        try:
            if exam_type == EXAM_TYPE_INTERMEDIATE:
                grade = Grade(
                    matricola=matricola,
                    exam_id=exam.id,
                    voto_lettera=_parse_letter(columns[1]),
                )
            else:
                value = _parse_numeric(columns[1])
                con_lode = len(columns) > 2 and columns[2].lower() in HONORS_TRUE_VALUES
                if con_lode and value != MAX_NUMERIC_GRADE:
                    raise InvalidValueError("Honors only with 30.")
                grade = Grade(
                    matricola=matricola,
                    exam_id=exam.id,
                    voto_numerico=value,
                    con_lode=con_lode,
                )
            store.add_grade(grade)
        except GradebookError as exc:
            result.reject(line, matricola, exc.message)
            continue

        result.imported += 1

    logger.info(
        "Grade import into exam %s: %d imported, %d rejected",
        exam.id,
        result.imported,
        result.errors,
    )
    return result


def import_students(store: EntityStore, csv_text: str) -> StudentImportResult:
    """Import ``matricola,nome,cognome`` rows, skipping known matricole."""

    result = StudentImportResult()
    rows = _split_rows(csv_text)
    if not rows:
        return result

    header = ",".join(rows[0][1] or [])
    start = 1 if any(marker in header for marker in STUDENT_HEADER_MARKERS) else 0
    existing = {s.matricola for s in store.get_students()}

    for line, columns in rows[start:]:
        if columns is None:
            result.errors += 1
            logger.warning("Rejected malformed student row %d", line)
            continue
        if len(columns) < 3 or not all(columns[:3]):
            result.skipped += 1
            continue

        matricola, nome, cognome = columns[:3]
        if matricola in existing:
            result.skipped += 1
            continue

        try:
            student = store.add_student(Student(matricola=matricola, nome=nome, cognome=cognome))
        except GradebookError as exc:
            result.errors += 1
            logger.warning("Rejected student %s: %s", matricola, exc.message)
            continue

        result.imported.append(student)
        existing.add(matricola)

    logger.info(
        "Student import: %d imported, %d skipped, %d rejected",
        len(result.imported),
        result.skipped,
        result.errors,
    )
    return result


__all__ = [
    "ImportResult",
    "RowError",
    "StudentImportResult",
    "import_grades",
    "import_students",
]
