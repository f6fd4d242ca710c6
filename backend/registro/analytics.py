"""Statistics slices for courses, exams, students and the dashboard."""

from __future__ import annotations

from typing import Any, Dict, List

from .grading import GradeStats, calculate_stats, format_grade, numeric_value
from .models import serialize_grade
from .store import EntityStore, parse_iso_date

RECENT_EXAMS_LIMIT = 5


def course_stats(store: EntityStore, course_id: str) -> GradeStats:
    exam_ids = {e.id for e in store.get_exams() if e.course_id == course_id}
    return calculate_stats(g for g in store.get_grades() if g.exam_id in exam_ids)


def exam_stats(store: EntityStore, exam_id: str) -> GradeStats:
    return calculate_stats(g for g in store.get_grades() if g.exam_id == exam_id)


def student_average(store: EntityStore, matricola: str) -> float:
    grades = [g for g in store.get_grades() if g.matricola == matricola]
    if not grades:
        return 0
    return round(sum(numeric_value(g) for g in grades) / len(grades), 2)


def student_grades(store: EntityStore, matricola: str) -> List[Dict[str, Any]]:
    """Return a student's grades annotated with exam and course details."""

    exams = {e.id: e for e in store.get_exams()}
    courses = {c.id: c for c in store.get_courses()}

    annotated: List[Dict[str, Any]] = []
    for grade in store.get_grades():
        if grade.matricola != matricola:
            continue
        exam = exams.get(grade.exam_id)
        course = courses.get(exam.course_id) if exam and exam.course_id else None

        entry = serialize_grade(grade)
        entry["display"] = format_grade(grade)
        entry["examType"] = exam.tipo if exam else ""
        entry["examDate"] = exam.data if exam else ""
        entry["courseName"] = course.nome if course else ""
        annotated.append(entry)
    return annotated


def dashboard(store: EntityStore) -> Dict[str, Any]:
    """Counts, overall stats, per-course stats and the most recent exams."""

    students = store.get_students()
    courses = store.get_courses()
    exams = store.get_exams()
    grades = store.get_grades()

    course_names = {c.id: c.nome for c in courses}

    by_exam: Dict[str, list] = {}
    for grade in grades:
        by_exam.setdefault(grade.exam_id, []).append(grade)

    per_course = []
    for course in courses:
        course_grades = [
            g for e in exams if e.course_id == course.id for g in by_exam.get(e.id, [])
        ]
        per_course.append(
            {
                "id": course.id,
                "name": course.nome,
                "stats": calculate_stats(course_grades).to_dict(),
            }
        )

    recent = sorted(exams, key=lambda e: parse_iso_date(e.data), reverse=True)
    recent_exams = [
        {
            "id": exam.id,
            "date": exam.data,
            "type": exam.tipo,
            "courseName": course_names.get(exam.course_id, "") if exam.course_id else "",
            "stats": calculate_stats(by_exam.get(exam.id, [])).to_dict(),
        }
        for exam in recent[:RECENT_EXAMS_LIMIT]
    ]

    return {
        "counts": {
            "students": len(students),
            "courses": len(courses),
            "exams": len(exams),
            "grades": len(grades),
        },
        "overallStats": calculate_stats(grades).to_dict(),
        "courseStats": per_course,
        "recentExams": recent_exams,
    }


__all__ = [
    "course_stats",
    "exam_stats",
    "student_average",
    "student_grades",
    "dashboard",
]
