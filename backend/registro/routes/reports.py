"""Reports and analytics endpoints."""

from __future__ import annotations

import csv
import io
import logging
from typing import Any, Dict

from flask import Blueprint, Response, jsonify
from pymongo.errors import PyMongoError

from ..analytics import course_stats, exam_stats, student_average, student_grades
from ..config import ConfigError
from ..grading import format_grade, is_passing
from ..models import serialize_course, serialize_exam, serialize_student
from .helpers import clean_string, config_error, db_error, get_store, json_error

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

logger = logging.getLogger(__name__)

EXPORT_FIELDS = [
    "matricola",
    "nome",
    "cognome",
    "course",
    "exam_type",
    "exam_date",
    "voto",
    "passed",
]


@reports_bp.get("/course-stats/<course_id>")
def course_report(course_id: str):
    course_id_clean = clean_string(course_id)
    if not course_id_clean:
        return json_error("Course ID is required.", 400)

    try:
        store = get_store()
        course = store.get_course(course_id_clean)
        if course is None:
            return json_error("Course not found.", 404)

        payload: Dict[str, Any] = serialize_course(course)
        payload["stats"] = course_stats(store, course.id).to_dict()
        return jsonify(payload)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to generate course stats", exc)


@reports_bp.get("/exam-stats/<exam_id>")
def exam_report(exam_id: str):
    exam_id_clean = clean_string(exam_id)
    if not exam_id_clean:
        return json_error("Exam ID is required.", 400)

    try:
        store = get_store()
        exam = store.get_exam(exam_id_clean)
        if exam is None:
            return json_error("Exam not found.", 404)

        course = store.get_course(exam.course_id) if exam.course_id else None
        payload: Dict[str, Any] = serialize_exam(exam)
        payload["courseName"] = course.nome if course else ""
        payload["stats"] = exam_stats(store, exam.id).to_dict()
        return jsonify(payload)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to generate exam stats", exc)


@reports_bp.get("/students/<matricola>")
def student_report(matricola: str):
    matricola_clean = clean_string(matricola)
    if not matricola_clean:
        return json_error("Matricola is required.", 400)

    try:
        store = get_store()
        student = store.get_student_by_matricola(matricola_clean)
        if student is None:
            return json_error("Student not found.", 404)

        payload: Dict[str, Any] = serialize_student(student)
        payload["grades"] = student_grades(store, matricola_clean)
        payload["average"] = student_average(store, matricola_clean)
        return jsonify(payload)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to generate student report", exc)


@reports_bp.get("/grades.csv")
def export_grades_csv():
    try:
        store = get_store()
        students = {s.matricola: s for s in store.get_students()}
        exams = {e.id: e for e in store.get_exams()}
        courses = {c.id: c for c in store.get_courses()}

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=EXPORT_FIELDS)
        writer.writeheader()

        for grade in store.get_grades():
            student = students.get(grade.matricola)
            exam = exams.get(grade.exam_id)
            course = courses.get(exam.course_id) if exam and exam.course_id else None
            writer.writerow(
                {
                    "matricola": grade.matricola,
                    "nome": student.nome if student else "",
                    "cognome": student.cognome if student else "",
                    "course": course.nome if course else "",
                    "exam_type": exam.tipo if exam else "",
                    "exam_date": exam.data if exam else "",
                    "voto": format_grade(grade),
                    "passed": "true" if is_passing(grade) else "false",
                }
            )

        response = Response(output.getvalue(), mimetype="text/csv")
        response.headers["Content-Disposition"] = "attachment; filename=grades.csv"
        return response
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to export grades", exc)


__all__ = ["reports_bp"]
