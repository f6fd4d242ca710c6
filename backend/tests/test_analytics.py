"""Course, exam, student and dashboard statistics."""

from __future__ import annotations

import unittest
from datetime import date

from support import (
    GIOVANNI,
    LUCIA,
    MARCO,
    add_exam,
    add_students,
    letter_course,
    letter_grade,
    make_store,
    numeric_course,
    numeric_grade,
)

from registro.analytics import (
    course_stats,
    dashboard,
    exam_stats,
    student_average,
    student_grades,
)
from registro.sample_data import seed_sample_data


class AnalyticsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = make_store()
        add_students(self.store)
        self.fisica = numeric_course(self.store)
        self.programmazione = letter_course(self.store)
        self.june = add_exam(self.store, self.fisica, "completo", "2024-06-10")
        self.july = add_exam(self.store, self.fisica, "completo", "2024-07-10")
        self.midterm = add_exam(self.store, self.programmazione, "intermedio", "2024-04-02")

        self.store.add_grade(numeric_grade(MARCO, self.june, 30, True))
        self.store.add_grade(numeric_grade(LUCIA, self.june, 18))
        self.store.add_grade(numeric_grade(GIOVANNI, self.july, 24))
        self.store.add_grade(letter_grade(MARCO, self.midterm, "B"))
        self.store.add_grade(letter_grade(LUCIA, self.midterm, "F"))

    def test_course_stats_cover_all_exams_of_the_course(self) -> None:
        stats = course_stats(self.store, self.fisica.id)

        self.assertEqual(24.0, stats.average)
        self.assertEqual(3, stats.passing)
        self.assertEqual({"30L": 1, "18": 1, "24": 1}, stats.distribution)

    def test_exam_stats(self) -> None:
        stats = exam_stats(self.store, self.midterm.id)

        self.assertEqual(13.5, stats.average)
        self.assertEqual((1, 1), (stats.passing, stats.failing))
        self.assertEqual(50.0, stats.passing_percentage)

    def test_stats_for_unknown_ids_are_empty(self) -> None:
        self.assertEqual(0, course_stats(self.store, "missing").average)
        self.assertEqual({}, exam_stats(self.store, "missing").distribution)

    def test_student_average(self) -> None:
        self.assertEqual(28.5, student_average(self.store, MARCO))
        self.assertEqual(9.0, student_average(self.store, LUCIA))
        self.assertEqual(0, student_average(self.store, "0000000000"))

    def test_student_grades_are_annotated(self) -> None:
        grades = sorted(student_grades(self.store, MARCO), key=lambda g: g["examDate"])

        self.assertEqual(
            [
                ("intermedio", "2024-04-02", "Programmazione", "B"),
                ("completo", "2024-06-10", "Fisica", "30L"),
            ],
            [(g["examType"], g["examDate"], g["courseName"], g["display"]) for g in grades],
        )
        self.assertTrue(grades[1]["conLode"])

    def test_dashboard(self) -> None:
        payload = dashboard(self.store)

        self.assertEqual(
            {"students": 3, "courses": 2, "exams": 3, "grades": 5}, payload["counts"]
        )
        self.assertEqual(5, payload["overallStats"]["passing"] + payload["overallStats"]["failing"])
        self.assertEqual(
            ["Fisica", "Programmazione"], [c["name"] for c in payload["courseStats"]]
        )
        self.assertEqual(
            [self.july.id, self.june.id, self.midterm.id],
            [e["id"] for e in payload["recentExams"]],
        )
        self.assertEqual("Fisica", payload["recentExams"][0]["courseName"])
        self.assertEqual(1, payload["recentExams"][0]["stats"]["passing"])

    def test_dashboard_limits_recent_exams(self) -> None:
        for month in range(1, 7):
            add_exam(self.store, self.fisica, "completo", f"2025-{month:02d}-01")

        recent = dashboard(self.store)["recentExams"]

        self.assertEqual(5, len(recent))
        self.assertEqual("2025-06-01", recent[0]["date"])


class SampleDataTestCase(unittest.TestCase):
    def test_seeds_empty_store_once(self) -> None:
        store = make_store()

        self.assertTrue(seed_sample_data(store, today=date(2024, 6, 10)))
        self.assertFalse(seed_sample_data(store))

        self.assertEqual(3, len(store.get_students()))
        self.assertEqual(3, len(store.get_courses()))
        self.assertEqual(3, len(store.get_exams()))
        self.assertEqual(9, len(store.get_grades()))

    def test_seeded_exam_types_follow_courses(self) -> None:
        store = make_store()
        seed_sample_data(store, today=date(2024, 6, 10))

        courses = {c.id: c for c in store.get_courses()}
        for exam in store.get_exams():
            course = courses[exam.course_id]
            expected = "intermedio" if course.ha_intermedio else "completo"
            self.assertEqual(expected, exam.tipo)

        fisica = next(c for c in courses.values() if c.nome == "Fisica")
        self.assertEqual(
            {"18": 1, "21": 1, "24": 1}, course_stats(store, fisica.id).distribution
        )

    def test_seeded_exam_dates(self) -> None:
        store = make_store()
        seed_sample_data(store, today=date(2024, 6, 10))

        dates = sorted((exam.tipo, exam.data) for exam in store.get_exams())

        self.assertEqual(
            [
                ("completo", "2024-06-10"),
                ("intermedio", "2024-05-11"),
                ("intermedio", "2024-05-11"),
            ],
            dates,
        )

    def test_does_not_seed_when_students_exist(self) -> None:
        store = make_store()
        add_students(store, MARCO)

        self.assertFalse(seed_sample_data(store))
        self.assertEqual([], store.get_courses())


if __name__ == "__main__":
    unittest.main()
