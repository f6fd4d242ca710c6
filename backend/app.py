from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Tuple

from flask import Blueprint, Flask, jsonify, request
from pymongo.errors import PyMongoError

from registro import config
from registro.analytics import dashboard
from registro.config import ConfigError
from registro.errors import GradebookError
from registro.importer import import_grades, import_students
from registro.models import (
    EXAM_TYPES,
    Course,
    Exam,
    Grade,
    Student,
    serialize_course,
    serialize_exam,
    serialize_grade,
    serialize_student,
)
from registro.routes import STORE_CONFIG_KEY, get_store, reports_bp
from registro.routes.helpers import (
    clean_string,
    config_error,
    db_error,
    json_error,
    record_error,
)
from registro.store import EntityStore, parse_iso_date
from registro.utils.paging import PagingParamError, paginate, parse_paging_params

api_bp = Blueprint("api", __name__, url_prefix="/api")

logger = logging.getLogger(__name__)


def _clean_string_or_none(value: Any) -> str | None:
    cleaned = clean_string(value)
    return cleaned if cleaned else None


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return clean_string(value).lower() in {"1", "true", "yes", "on"}


def _validation_failed(errors: Dict[str, str]):
    details = {k: v for k, v in errors.items() if k != "_global"}
    message = errors.get("_global", "Validation failed.")
    return json_error(message, 400, {"details": details} if details else None)


def _validate_student_payload(
    payload: Dict[str, Any] | None, *, require_all: bool
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    if payload is None:
        return {}, {"_global": "Request body must be JSON."}

    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    for field, message in (
        ("matricola", "Matricola is required."),
        ("nome", "Nome is required."),
        ("cognome", "Cognome is required."),
    ):
        if require_all or field in payload:
            value = clean_string(payload.get(field))
            if value:
                cleaned[field] = value
            else:
                errors[field] = message

    return cleaned, errors


def _validate_course_payload(
    payload: Dict[str, Any] | None, *, require_all: bool
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    if payload is None:
        return {}, {"_global": "Request body must be JSON."}

    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    if require_all or "nome" in payload:
        nome = clean_string(payload.get("nome"))
        if nome:
            cleaned["nome"] = nome
        else:
            errors["nome"] = "Course name is required."

    if "haIntermedio" in payload:
        cleaned["ha_intermedio"] = _parse_bool(payload.get("haIntermedio"))
    elif require_all:
        cleaned["ha_intermedio"] = False

    return cleaned, errors


def _validate_exam_payload(
    payload: Dict[str, Any] | None, *, require_all: bool
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    if payload is None:
        return {}, {"_global": "Request body must be JSON."}

    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    if "courseId" in payload:
        cleaned["course_id"] = _clean_string_or_none(payload.get("courseId"))

    if require_all or "tipo" in payload:
        tipo = clean_string(payload.get("tipo")).lower()
        if tipo in EXAM_TYPES:
            cleaned["tipo"] = tipo
        else:
            errors["tipo"] = "Exam type must be one of: " + ", ".join(EXAM_TYPES) + "."

    if require_all or "data" in payload:
        data = clean_string(payload.get("data"))
        if data:
            cleaned["data"] = data
        else:
            errors["data"] = "Exam date is required."

    return cleaned, errors


def _validate_grade_payload(
    payload: Dict[str, Any] | None, *, require_all: bool
) -> Tuple[Dict[str, Any], Dict[str, str]]:
    if payload is None:
        return {}, {"_global": "Request body must be JSON."}

    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    for field, attribute, message in (
        ("matricola", "matricola", "Matricola is required."),
        ("examId", "exam_id", "Exam ID is required."),
    ):
        if require_all or field in payload:
            value = clean_string(payload.get(field))
            if value:
                cleaned[attribute] = value
            else:
                errors[field] = message

    if "votoLettera" in payload:
        cleaned["voto_lettera"] = _clean_string_or_none(payload.get("votoLettera"))

    if "votoNumerico" in payload:
        value = payload.get("votoNumerico")
        if value in (None, ""):
            cleaned["voto_numerico"] = None
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            errors["votoNumerico"] = "Numeric grade must be an integer."
        elif isinstance(value, float) and not value.is_integer():
            errors["votoNumerico"] = "Numeric grade must be an integer."
        else:
            cleaned["voto_numerico"] = int(value)

    if "conLode" in payload:
        value = payload.get("conLode")
        cleaned["con_lode"] = None if value is None else _parse_bool(value)

    return cleaned, errors


@api_bp.get("/health")
def health():
    return jsonify({"ok": True})


@api_bp.get("/students")
def list_students():
    try:
        paging = parse_paging_params(
            request.args,
            sort_fields=("matricola", "nome", "cognome"),
            default_sort="cognome",
        )
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    try:
        documents = [serialize_student(s) for s in get_store().get_students()]

        query = clean_string(request.args.get("q")).lower()
        if query:
            documents = [
                doc
                for doc in documents
                if query in doc["matricola"]
                or query in doc["nome"].lower()
                or query in doc["cognome"].lower()
            ]

        return jsonify(paginate(documents, paging, sort_key=lambda v: str(v or "").lower()))
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to list students", exc)


@api_bp.post("/students")
def create_student():
    cleaned, errors = _validate_student_payload(request.get_json(silent=True), require_all=True)
    if errors:
        return _validation_failed(errors)

    try:
        student = get_store().add_student(Student(**cleaned))
        return jsonify(serialize_student(student)), 201
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to create student", exc)


@api_bp.put("/students/<student_id>")
def update_student(student_id: str):
    cleaned, errors = _validate_student_payload(request.get_json(silent=True), require_all=False)
    if errors:
        return _validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    try:
        store = get_store()
        existing = store.get_student(student_id)
        if existing is None:
            return json_error("Student not found.", 404)
        if cleaned.get("matricola", existing.matricola) != existing.matricola:
            return _validation_failed({"matricola": "Matricola cannot be changed."})

        student = store.update_student(replace(existing, **cleaned))
        return jsonify(serialize_student(student))
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to update student", exc)


@api_bp.delete("/students/<student_id>")
def delete_student(student_id: str):
    try:
        store = get_store()
        if store.get_student(student_id) is None:
            return json_error("Student not found.", 404)
        store.delete_student(student_id)
        return jsonify({"ok": True})
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to delete student", exc)


@api_bp.get("/courses")
def list_courses():
    try:
        courses = get_store().get_courses()
        query = clean_string(request.args.get("q")).lower()
        if query:
            courses = [c for c in courses if query in c.nome.lower()]
        courses.sort(key=lambda c: c.nome.lower())
        return jsonify([serialize_course(c) for c in courses])
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to list courses", exc)


@api_bp.post("/courses")
def create_course():
    cleaned, errors = _validate_course_payload(request.get_json(silent=True), require_all=True)
    if errors:
        return _validation_failed(errors)

    try:
        course = get_store().add_course(Course(**cleaned))
        return jsonify(serialize_course(course)), 201
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to create course", exc)


@api_bp.put("/courses/<course_id>")
def update_course(course_id: str):
    cleaned, errors = _validate_course_payload(request.get_json(silent=True), require_all=False)
    if errors:
        return _validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    try:
        store = get_store()
        existing = store.get_course(course_id)
        if existing is None:
            return json_error("Course not found.", 404)

        course = store.update_course(replace(existing, **cleaned))
        return jsonify(serialize_course(course))
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to update course", exc)


@api_bp.delete("/courses/<course_id>")
def delete_course(course_id: str):
    try:
        store = get_store()
        if store.get_course(course_id) is None:
            return json_error("Course not found.", 404)
        store.delete_course(course_id)
        return jsonify({"ok": True})
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to delete course", exc)


@api_bp.get("/exams")
def list_exams():
    course_id = clean_string(request.args.get("course_id"))
    tipo = clean_string(request.args.get("tipo")).lower()

    try:
        exams = get_store().get_exams()
        if course_id:
            exams = [e for e in exams if e.course_id == course_id]
        if tipo:
            exams = [e for e in exams if e.tipo == tipo]
        exams.sort(key=lambda e: parse_iso_date(e.data), reverse=True)
        return jsonify([serialize_exam(e) for e in exams])
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to list exams", exc)


@api_bp.post("/exams")
def create_exam():
    cleaned, errors = _validate_exam_payload(request.get_json(silent=True), require_all=True)
    if errors:
        return _validation_failed(errors)

    try:
        exam = get_store().add_exam(Exam(course_id=cleaned.pop("course_id", None), **cleaned))
        return jsonify(serialize_exam(exam)), 201
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to create exam", exc)


@api_bp.put("/exams/<exam_id>")
def update_exam(exam_id: str):
    cleaned, errors = _validate_exam_payload(request.get_json(silent=True), require_all=False)
    if errors:
        return _validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    try:
        store = get_store()
        existing = store.get_exam(exam_id)
        if existing is None:
            return json_error("Exam not found.", 404)

        exam = store.update_exam(replace(existing, **cleaned))
        return jsonify(serialize_exam(exam))
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to update exam", exc)


@api_bp.delete("/exams/<exam_id>")
def delete_exam(exam_id: str):
    try:
        store = get_store()
        if store.get_exam(exam_id) is None:
            return json_error("Exam not found.", 404)
        store.delete_exam(exam_id)
        return jsonify({"ok": True})
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to delete exam", exc)


@api_bp.get("/grades")
def list_grades():
    matricola = clean_string(request.args.get("matricola"))
    exam_id = clean_string(request.args.get("exam_id"))

    try:
        grades = get_store().get_grades()
        if matricola:
            grades = [g for g in grades if g.matricola == matricola]
        if exam_id:
            grades = [g for g in grades if g.exam_id == exam_id]
        return jsonify([serialize_grade(g) for g in grades])
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to list grades", exc)


@api_bp.post("/grades")
def create_grade():
    cleaned, errors = _validate_grade_payload(request.get_json(silent=True), require_all=True)
    if errors:
        return _validation_failed(errors)

    try:
        grade = get_store().add_grade(Grade(**cleaned))
        return jsonify(serialize_grade(grade)), 201
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to create grade", exc)


@api_bp.put("/grades/<grade_id>")
def update_grade(grade_id: str):
    cleaned, errors = _validate_grade_payload(request.get_json(silent=True), require_all=False)
    if errors:
        return _validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    try:
        store = get_store()
        existing = store.get_grade(grade_id)
        if existing is None:
            return json_error("Grade not found.", 404)

        grade = store.update_grade(replace(existing, **cleaned))
        return jsonify(serialize_grade(grade))
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to update grade", exc)


@api_bp.delete("/grades/<grade_id>")
def delete_grade(grade_id: str):
    try:
        store = get_store()
        if store.get_grade(grade_id) is None:
            return json_error("Grade not found.", 404)
        store.delete_grade(grade_id)
        return jsonify({"ok": True})
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to delete grade", exc)


@api_bp.post("/import/students")
def import_students_csv():
    payload = request.get_json(silent=True)
    if payload is None:
        return json_error("Request body must be JSON.", 400)
    csv_text = payload.get("csv")
    if not isinstance(csv_text, str) or not csv_text.strip():
        return _validation_failed({"csv": "CSV data is required."})

    try:
        result = import_students(get_store(), csv_text)
        return jsonify(result.to_dict())
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to import students", exc)


@api_bp.post("/import/grades")
def import_grades_csv():
    payload = request.get_json(silent=True)
    if payload is None:
        return json_error("Request body must be JSON.", 400)
    csv_text = payload.get("csv")
    if not isinstance(csv_text, str) or not csv_text.strip():
        return _validation_failed({"csv": "CSV data is required."})

    try:
        result = import_grades(
            get_store(),
            csv_text,
            course_id=_clean_string_or_none(payload.get("courseId")),
            exam_type=_clean_string_or_none(payload.get("examType")),
            exam_date=_clean_string_or_none(payload.get("examDate")),
            new_exam=_parse_bool(payload.get("newExam", True)),
            has_header_row=_parse_bool(payload.get("hasHeaderRow", True)),
        )
        return jsonify(result.to_dict())
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to import grades", exc)


@api_bp.get("/stats")
def stats():
    try:
        return jsonify(dashboard(get_store()))
    except GradebookError as exc:
        return record_error(exc)
    except ConfigError as exc:
        return config_error(exc)
    except PyMongoError as exc:
        return db_error("Failed to load stats", exc)


def create_app(store: EntityStore | None = None) -> Flask:
    """Build the Flask app; the store is created lazily when not given."""

    app = Flask(__name__)
    app.config[STORE_CONFIG_KEY] = store
    app.register_blueprint(api_bp)
    app.register_blueprint(reports_bp)
    return app


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=config.get_log_level())
    app.run(debug=True)
