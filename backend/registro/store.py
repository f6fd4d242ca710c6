"""Entity store over the four persisted record collections."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Dict, Generic, List, Mapping, TypeVar

from . import config
from .db import BlobStore, get_blob_store
from .errors import (
    DuplicateKeyError,
    InvalidValueError,
    NotFoundError,
    TypeMismatchError,
)
from .models import (
    EXAM_TYPES,
    Course,
    Exam,
    Grade,
    Student,
    exam_type_for_course,
    generate_id,
    parse_course,
    parse_exam,
    parse_grade,
    parse_student,
    serialize_course,
    serialize_exam,
    serialize_grade,
    serialize_student,
)
from .validation import GradeValidator

logger = logging.getLogger(__name__)

MATRICOLA_PATTERN = re.compile(r"^\d{10}$")

_T = TypeVar("_T")


class PersistedCollection(Generic[_T]):
    """A list of records stored as one JSON blob under a fixed key."""

    def __init__(
        self,
        blob_store: BlobStore,
        key: str,
        parse: Callable[[Mapping[str, Any]], _T],
        serialize: Callable[[_T], Dict[str, Any]],
    ) -> None:
        self.blob_store = blob_store
        self.key = key
        self._parse = parse
        self._serialize = serialize

    def get(self) -> List[_T]:
        raw = self.blob_store.read(self.key)
        if not raw:
            return []
        documents = json.loads(raw)
        if not isinstance(documents, list):
            raise ValueError(f"Blob '{self.key}' does not contain a list.")
        return [self._parse(document) for document in documents if isinstance(document, dict)]

    def set(self, items: List[_T]) -> None:
        payload = json.dumps([self._serialize(item) for item in items])
        self.blob_store.write(self.key, payload)


def parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise InvalidValueError(
            "Exam date must be an ISO date (YYYY-MM-DD).", field="data"
        ) from None


def _require_text(value: Any, field: str, message: str) -> str:
    cleaned = str(value).strip() if value is not None else ""
    if not cleaned:
        raise InvalidValueError(message, field=field)
    return cleaned


class EntityStore:
    """CRUD over students, courses, exams and grades.

    Every grade mutation goes through :class:`GradeValidator`. Deletes
    cascade: student -> grades, course -> exams -> grades, exam -> grades.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        key_prefix: str = "sgvu",
        requires_course_consistency_check: bool = True,
    ) -> None:
        self.requires_course_consistency_check = requires_course_consistency_check
        self.students = PersistedCollection(
            blob_store, f"{key_prefix}_students", parse_student, serialize_student
        )
        self.courses = PersistedCollection(
            blob_store, f"{key_prefix}_courses", parse_course, serialize_course
        )
        self.exams = PersistedCollection(
            blob_store, f"{key_prefix}_exams", parse_exam, serialize_exam
        )
        self.grades = PersistedCollection(
            blob_store, f"{key_prefix}_grades", parse_grade, serialize_grade
        )
        self.validator = GradeValidator(
            self, requires_course_consistency_check=requires_course_consistency_check
        )

    # Students

    def get_students(self) -> List[Student]:
        return self.students.get()

    def set_students(self, students: List[Student]) -> None:
        self.students.set(students)

    def get_student(self, student_id: str) -> Student | None:
        return next((s for s in self.get_students() if s.id == student_id), None)

    def get_student_by_matricola(self, matricola: str) -> Student | None:
        return next((s for s in self.get_students() if s.matricola == matricola), None)

    @staticmethod
    def _clean_student(student: Student) -> Student:
        matricola = _require_text(student.matricola, "matricola", "Matricola is required.")
        if not MATRICOLA_PATTERN.match(matricola):
            raise InvalidValueError("Matricola must be exactly 10 digits.", field="matricola")
        return replace(
            student,
            matricola=matricola,
            nome=_require_text(student.nome, "nome", "Nome is required."),
            cognome=_require_text(student.cognome, "cognome", "Cognome is required."),
        )

    def add_student(self, student: Student) -> Student:
        new_student = replace(self._clean_student(student), id=generate_id())
        students = self.get_students()

        if any(s.matricola == new_student.matricola for s in students):
            raise DuplicateKeyError("Matricola already exists.", field="matricola")

        self.set_students([*students, new_student])
        logger.info("Added student %s", new_student.matricola)
        return new_student

    def update_student(self, student: Student) -> Student:
        students = self.get_students()
        index = next((i for i, s in enumerate(students) if s.id == student.id), None)
        if index is None:
            raise NotFoundError("Student not found.")

        cleaned = self._clean_student(student)
        if any(s.matricola == cleaned.matricola and s.id != cleaned.id for s in students):
            raise DuplicateKeyError("Matricola already exists.", field="matricola")

        students[index] = cleaned
        self.set_students(students)
        return cleaned

    def delete_student(self, student_id: str) -> None:
        students = self.get_students()
        student = next((s for s in students if s.id == student_id), None)
        self.set_students([s for s in students if s.id != student_id])

        if student is not None:
            grades = self.get_grades()
            remaining = [g for g in grades if g.matricola != student.matricola]
            self.set_grades(remaining)
            logger.info(
                "Deleted student %s and %d grade(s)",
                student.matricola,
                len(grades) - len(remaining),
            )

    # Courses

    def get_courses(self) -> List[Course]:
        return self.courses.get()

    def set_courses(self, courses: List[Course]) -> None:
        self.courses.set(courses)

    def get_course(self, course_id: str) -> Course | None:
        return next((c for c in self.get_courses() if c.id == course_id), None)

    @staticmethod
    def _clean_course(course: Course) -> Course:
        return replace(
            course,
            nome=_require_text(course.nome, "nome", "Course name is required."),
            ha_intermedio=bool(course.ha_intermedio),
        )

    def add_course(self, course: Course) -> Course:
        new_course = replace(self._clean_course(course), id=generate_id())
        courses = self.get_courses()

        name = new_course.nome.lower()
        if any(c.nome.lower() == name for c in courses):
            raise DuplicateKeyError("Course name already exists.", field="nome")

        self.set_courses([*courses, new_course])
        logger.info("Added course %s", new_course.nome)
        return new_course

    def update_course(self, course: Course) -> Course:
        courses = self.get_courses()
        index = next((i for i, c in enumerate(courses) if c.id == course.id), None)
        if index is None:
            raise NotFoundError("Course not found.")

        cleaned = self._clean_course(course)
        name = cleaned.nome.lower()
        if any(c.nome.lower() == name and c.id != cleaned.id for c in courses):
            raise DuplicateKeyError("Course name already exists.", field="nome")

        courses[index] = cleaned
        self.set_courses(courses)
        return cleaned

    def delete_course(self, course_id: str) -> None:
        self.set_courses([c for c in self.get_courses() if c.id != course_id])

        exams = self.get_exams()
        removed_ids = {e.id for e in exams if e.course_id == course_id}
        self.set_exams([e for e in exams if e.id not in removed_ids])

        grades = self.get_grades()
        remaining = [g for g in grades if g.exam_id not in removed_ids]
        self.set_grades(remaining)
        logger.info(
            "Deleted course %s with %d exam(s) and %d grade(s)",
            course_id,
            len(removed_ids),
            len(grades) - len(remaining),
        )

    # Exams

    def get_exams(self) -> List[Exam]:
        return self.exams.get()

    def set_exams(self, exams: List[Exam]) -> None:
        self.exams.set(exams)

    def get_exam(self, exam_id: str) -> Exam | None:
        return next((e for e in self.get_exams() if e.id == exam_id), None)

    def _clean_exam(self, exam: Exam) -> Exam:
        tipo = str(exam.tipo or "").strip().lower()
        if tipo not in EXAM_TYPES:
            raise InvalidValueError(
                "Exam type must be one of: " + ", ".join(EXAM_TYPES) + ".", field="tipo"
            )
        exam_date = parse_iso_date(exam.data).isoformat()
        course_id = str(exam.course_id).strip() if exam.course_id else None

        if self.requires_course_consistency_check:
            course = self.get_course(course_id) if course_id else None
            if course is None:
                raise NotFoundError("Related course not found.", field="courseId")
            if exam_type_for_course(course) != tipo:
                raise TypeMismatchError("Exam type incompatible with course.", field="tipo")

        return replace(exam, course_id=course_id, tipo=tipo, data=exam_date)

    def add_exam(self, exam: Exam) -> Exam:
        new_exam = replace(self._clean_exam(exam), id=generate_id())
        self.set_exams([*self.get_exams(), new_exam])
        logger.info("Added %s exam %s on %s", new_exam.tipo, new_exam.id, new_exam.data)
        return new_exam

    def update_exam(self, exam: Exam) -> Exam:
        exams = self.get_exams()
        index = next((i for i, e in enumerate(exams) if e.id == exam.id), None)
        if index is None:
            raise NotFoundError("Exam not found.")

        cleaned = self._clean_exam(exam)
        exams[index] = cleaned
        self.set_exams(exams)
        return cleaned

    def delete_exam(self, exam_id: str) -> None:
        self.set_exams([e for e in self.get_exams() if e.id != exam_id])
        self.set_grades([g for g in self.get_grades() if g.exam_id != exam_id])
        logger.info("Deleted exam %s", exam_id)

    def find_latest_exam(self, course_id: str | None, tipo: str) -> Exam | None:
        """Return the most recently dated exam of a course and type."""

        candidates = [
            e for e in self.get_exams() if e.course_id == course_id and e.tipo == tipo
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda e: parse_iso_date(e.data))

    # Grades

    def get_grades(self) -> List[Grade]:
        return self.grades.get()

    def set_grades(self, grades: List[Grade]) -> None:
        self.grades.set(grades)

    def get_grade(self, grade_id: str) -> Grade | None:
        return next((g for g in self.get_grades() if g.id == grade_id), None)

    def add_grade(self, grade: Grade) -> Grade:
        new_grade = self.validator.validate(replace(grade, id=generate_id()))
        self.set_grades([*self.get_grades(), new_grade])
        logger.debug("Added grade %s for %s", new_grade.id, new_grade.matricola)
        return new_grade

    def update_grade(self, grade: Grade) -> Grade:
        grades = self.get_grades()
        index = next((i for i, g in enumerate(grades) if g.id == grade.id), None)
        if index is None:
            raise NotFoundError("Grade not found.")

        validated = self.validator.validate(grade)
        grades[index] = validated
        self.set_grades(grades)
        return validated

    def delete_grade(self, grade_id: str) -> None:
        self.set_grades([g for g in self.get_grades() if g.id != grade_id])

    # Lookups

    def get_student_with_grades(self, matricola: str) -> Dict[str, Any] | None:
        """Return a student with each grade joined to its exam and course.

        Grades whose exam or course can no longer be resolved are left out.
        """

        student = self.get_student_by_matricola(matricola)
        if student is None:
            return None

        exams = {e.id: e for e in self.get_exams()}
        courses = {c.id: c for c in self.get_courses()}

        details = []
        for grade in self.get_grades():
            if grade.matricola != matricola:
                continue
            exam = exams.get(grade.exam_id)
            course = courses.get(exam.course_id) if exam and exam.course_id else None
            if exam is None:
                continue
            if course is None and self.requires_course_consistency_check:
                continue
            details.append({"grade": grade, "exam": exam, "course": course})

        return {"student": student, "grades": details}


def build_entity_store(blob_store: BlobStore | None = None) -> EntityStore:
    """Create an entity store wired from the environment configuration."""

    return EntityStore(
        blob_store if blob_store is not None else get_blob_store(),
        key_prefix=config.get_key_prefix(),
        requires_course_consistency_check=config.requires_course_consistency_check(),
    )


__all__ = [
    "EntityStore",
    "PersistedCollection",
    "build_entity_store",
    "parse_iso_date",
    "MATRICOLA_PATTERN",
]
