"""Record types and their persisted document shapes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from bson import ObjectId

EXAM_TYPE_INTERMEDIATE = "intermedio"
EXAM_TYPE_COMPLETE = "completo"
EXAM_TYPES = (EXAM_TYPE_INTERMEDIATE, EXAM_TYPE_COMPLETE)

LETTER_GRADES = ("A", "B", "C", "D", "E", "F")


def generate_id() -> str:
    return str(ObjectId())


def exam_type_for_course(course: "Course") -> str:
    """Return the exam type a course is evaluated with."""

    return EXAM_TYPE_INTERMEDIATE if course.ha_intermedio else EXAM_TYPE_COMPLETE


@dataclass
class Student:
    matricola: str
    nome: str
    cognome: str
    id: str = ""


@dataclass
class Course:
    nome: str
    ha_intermedio: bool
    id: str = ""


@dataclass
class Exam:
    course_id: str | None
    tipo: str
    data: str
    id: str = ""


@dataclass
class Grade:
    matricola: str
    exam_id: str
    voto_lettera: str | None = None
    voto_numerico: int | None = None
    con_lode: bool | None = None
    id: str = ""


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def serialize_student(student: Student) -> Dict[str, Any]:
    return {
        "id": student.id,
        "matricola": student.matricola,
        "nome": student.nome,
        "cognome": student.cognome,
    }


def parse_student(document: Mapping[str, Any]) -> Student:
    return Student(
        id=_text(document.get("id")),
        matricola=_text(document.get("matricola")),
        nome=_text(document.get("nome")),
        cognome=_text(document.get("cognome")),
    )


def serialize_course(course: Course) -> Dict[str, Any]:
    return {"id": course.id, "nome": course.nome, "haIntermedio": course.ha_intermedio}


def parse_course(document: Mapping[str, Any]) -> Course:
    return Course(
        id=_text(document.get("id")),
        nome=_text(document.get("nome")),
        ha_intermedio=bool(document.get("haIntermedio", False)),
    )


def serialize_exam(exam: Exam) -> Dict[str, Any]:
    return {
        "id": exam.id,
        "courseId": exam.course_id,
        "tipo": exam.tipo,
        "data": exam.data,
    }


def parse_exam(document: Mapping[str, Any]) -> Exam:
    course_id = document.get("courseId")
    return Exam(
        id=_text(document.get("id")),
        course_id=_text(course_id) if course_id is not None else None,
        tipo=_text(document.get("tipo")),
        data=_text(document.get("data")),
    )


def serialize_grade(grade: Grade) -> Dict[str, Any]:
    """Serialize a grade, omitting the value fields that are not set."""

    document: Dict[str, Any] = {
        "id": grade.id,
        "matricola": grade.matricola,
        "examId": grade.exam_id,
    }
    if grade.voto_lettera is not None:
        document["votoLettera"] = grade.voto_lettera
    if grade.voto_numerico is not None:
        document["votoNumerico"] = grade.voto_numerico
    if grade.con_lode is not None:
        document["conLode"] = grade.con_lode
    return document


def parse_grade(document: Mapping[str, Any]) -> Grade:
    return Grade(
        id=_text(document.get("id")),
        matricola=_text(document.get("matricola")),
        exam_id=_text(document.get("examId")),
        voto_lettera=document.get("votoLettera"),
        voto_numerico=document.get("votoNumerico"),
        con_lode=document.get("conLode"),
    )


__all__ = [
    "EXAM_TYPE_INTERMEDIATE",
    "EXAM_TYPE_COMPLETE",
    "EXAM_TYPES",
    "LETTER_GRADES",
    "Student",
    "Course",
    "Exam",
    "Grade",
    "generate_id",
    "exam_type_for_course",
    "serialize_student",
    "parse_student",
    "serialize_course",
    "parse_course",
    "serialize_exam",
    "parse_exam",
    "serialize_grade",
    "parse_grade",
]
