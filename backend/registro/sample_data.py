"""Sample records for an empty store."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from .errors import GradebookError
from .models import (
    EXAM_TYPE_COMPLETE,
    EXAM_TYPE_INTERMEDIATE,
    LETTER_GRADES,
    Course,
    Exam,
    Grade,
    Student,
)
from .store import EntityStore

logger = logging.getLogger(__name__)

SAMPLE_STUDENTS = [
    ("0612710901", "Marco", "Rossi"),
    ("0612710902", "Lucia", "Bianchi"),
    ("0612710903", "Giovanni", "Verdi"),
]

SAMPLE_COURSES = [
    ("Programmazione", True),
    ("Matematica Discreta", True),
    ("Fisica", False),
]


def seed_sample_data(store: EntityStore, *, today: date | None = None) -> bool:
    """Populate the store when it has no students and no courses.

    Letter-graded courses get an intermediate exam dated a month ago and
    numerically graded courses get a complete exam dated ``today``. Returns
    whether anything was written.
    """

    if store.get_students() or store.get_courses():
        return False

    today = today or date.today()
    last_month = today - timedelta(days=30)

    students = []
    for matricola, nome, cognome in SAMPLE_STUDENTS:
        try:
            students.append(store.add_student(Student(matricola=matricola, nome=nome, cognome=cognome)))
        except GradebookError as exc:
            logger.warning("Skipping sample student %s: %s", matricola, exc.message)

    for name, has_intermediate in SAMPLE_COURSES:
        course = store.add_course(Course(nome=name, ha_intermedio=has_intermediate))

        if has_intermediate:
            exam = store.add_exam(
                Exam(course_id=course.id, tipo=EXAM_TYPE_INTERMEDIATE, data=last_month.isoformat())
            )
            for index, student in enumerate(students):
                store.add_grade(
                    Grade(
                        matricola=student.matricola,
                        exam_id=exam.id,
                        voto_lettera=LETTER_GRADES[index % len(LETTER_GRADES)],
                    )
                )
            continue

        exam = store.add_exam(
            Exam(course_id=course.id, tipo=EXAM_TYPE_COMPLETE, data=today.isoformat())
        )
        for index, student in enumerate(students):
            value = min(18 + index * 3, 30)
            store.add_grade(
                Grade(
                    matricola=student.matricola,
                    exam_id=exam.id,
                    voto_numerico=value,
                    con_lode=value == 30 and index % 3 == 0,
                )
            )

    logger.info("Seeded %d student(s) and %d course(s)", len(students), len(SAMPLE_COURSES))
    return True


__all__ = ["seed_sample_data", "SAMPLE_STUDENTS", "SAMPLE_COURSES"]
