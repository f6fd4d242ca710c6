"""Shared builders for the test suites."""

from __future__ import annotations

import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from registro.db import MemoryBlobStore  # noqa: E402
from registro.models import Course, Exam, Grade, Student  # noqa: E402
from registro.store import EntityStore  # noqa: E402

MARCO = "0612710901"
LUCIA = "0612710902"
GIOVANNI = "0612710903"


def make_store(*, courseless: bool = False) -> EntityStore:
    return EntityStore(MemoryBlobStore(), requires_course_consistency_check=not courseless)


def add_students(store: EntityStore, *matricole: str) -> None:
    for index, matricola in enumerate(matricole or (MARCO, LUCIA, GIOVANNI)):
        store.add_student(Student(matricola=matricola, nome=f"Nome{index}", cognome=f"Cognome{index}"))


def letter_course(store: EntityStore, name: str = "Programmazione") -> Course:
    return store.add_course(Course(nome=name, ha_intermedio=True))


def numeric_course(store: EntityStore, name: str = "Fisica") -> Course:
    return store.add_course(Course(nome=name, ha_intermedio=False))


def add_exam(store: EntityStore, course: Course | None, tipo: str, data: str = "2024-06-10") -> Exam:
    return store.add_exam(Exam(course_id=course.id if course else None, tipo=tipo, data=data))


def numeric_grade(matricola: str, exam: Exam, value: int, con_lode: bool | None = None) -> Grade:
    return Grade(matricola=matricola, exam_id=exam.id, voto_numerico=value, con_lode=con_lode)


def letter_grade(matricola: str, exam: Exam, letter: str) -> Grade:
    return Grade(matricola=matricola, exam_id=exam.id, voto_lettera=letter)
