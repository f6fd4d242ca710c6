"""Grade validator contract."""

from __future__ import annotations

import unittest
from dataclasses import replace

from support import (
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

from registro.errors import (
    DuplicateKeyError,
    InvalidValueError,
    NotFoundError,
    TypeMismatchError,
)
from registro.models import Grade


class LetterExamValidationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = make_store()
        add_students(self.store)
        self.exam = add_exam(self.store, letter_course(self.store), "intermedio")

    def test_numeric_fields_are_cleared(self) -> None:
        grade = Grade(
            matricola=MARCO,
            exam_id=self.exam.id,
            voto_lettera="B",
            voto_numerico=27,
            con_lode=False,
        )

        validated = self.store.validator.validate(grade)

        self.assertEqual("B", validated.voto_lettera)
        self.assertIsNone(validated.voto_numerico)
        self.assertIsNone(validated.con_lode)

    def test_letter_is_normalised_to_upper_case(self) -> None:
        validated = self.store.validator.validate(letter_grade(MARCO, self.exam, " c "))

        self.assertEqual("C", validated.voto_lettera)

    def test_letter_required(self) -> None:
        with self.assertRaises(InvalidValueError) as ctx:
            self.store.validator.validate(numeric_grade(MARCO, self.exam, 28))
        self.assertEqual("votoLettera", ctx.exception.field)

    def test_unknown_letter_rejected(self) -> None:
        with self.assertRaises(InvalidValueError):
            self.store.validator.validate(letter_grade(MARCO, self.exam, "G"))


class NumericExamValidationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = make_store()
        add_students(self.store)
        self.exam = add_exam(self.store, numeric_course(self.store), "completo")

    def test_letter_field_is_cleared(self) -> None:
        grade = replace(numeric_grade(MARCO, self.exam, 25), voto_lettera="C")

        validated = self.store.validator.validate(grade)

        self.assertIsNone(validated.voto_lettera)
        self.assertEqual(25, validated.voto_numerico)

    def test_numeric_required(self) -> None:
        with self.assertRaises(InvalidValueError) as ctx:
            self.store.validator.validate(letter_grade(MARCO, self.exam, "A"))
        self.assertEqual("votoNumerico", ctx.exception.field)

    def test_range_is_enforced(self) -> None:
        for value in (17, 31, 0):
            with self.subTest(value=value):
                with self.assertRaises(InvalidValueError):
                    self.store.validator.validate(numeric_grade(MARCO, self.exam, value))

    def test_range_bounds_are_accepted(self) -> None:
        for value in (18, 30):
            with self.subTest(value=value):
                validated = self.store.validator.validate(numeric_grade(MARCO, self.exam, value))
                self.assertEqual(value, validated.voto_numerico)

    def test_non_integer_rejected(self) -> None:
        for value in (27.5, True, "28"):
            with self.subTest(value=value):
                with self.assertRaises(InvalidValueError):
                    self.store.validator.validate(numeric_grade(MARCO, self.exam, value))

    def test_honors_only_with_thirty(self) -> None:
        with self.assertRaises(InvalidValueError) as ctx:
            self.store.validator.validate(numeric_grade(MARCO, self.exam, 29, True))
        self.assertEqual("conLode", ctx.exception.field)

        validated = self.store.validator.validate(numeric_grade(MARCO, self.exam, 30, True))
        self.assertTrue(validated.con_lode)


class ReferenceValidationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = make_store()
        add_students(self.store, MARCO, LUCIA)
        self.course = numeric_course(self.store)
        self.exam = add_exam(self.store, self.course, "completo")

    def test_missing_exam(self) -> None:
        grade = Grade(matricola=MARCO, exam_id="missing", voto_numerico=25)

        with self.assertRaises(NotFoundError) as ctx:
            self.store.validator.validate(grade)
        self.assertEqual("examId", ctx.exception.field)

    def test_missing_course(self) -> None:
        self.store.set_courses([])

        with self.assertRaises(NotFoundError) as ctx:
            self.store.validator.validate(numeric_grade(MARCO, self.exam, 25))
        self.assertEqual("courseId", ctx.exception.field)

    def test_exam_type_incompatible_with_course(self) -> None:
        self.store.set_exams([replace(self.exam, tipo="intermedio")])

        with self.assertRaises(TypeMismatchError):
            self.store.validator.validate(letter_grade(MARCO, self.exam, "A"))

    def test_missing_student(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.store.validator.validate(numeric_grade("0612710999", self.exam, 25))
        self.assertEqual("matricola", ctx.exception.field)

    def test_shape_is_checked_before_student(self) -> None:
        with self.assertRaises(InvalidValueError):
            self.store.validator.validate(numeric_grade("0612710999", self.exam, 40))

    def test_duplicate_grade_for_exam(self) -> None:
        self.store.add_grade(numeric_grade(MARCO, self.exam, 25))

        with self.assertRaises(DuplicateKeyError):
            self.store.validator.validate(numeric_grade(MARCO, self.exam, 27))

        self.store.validator.validate(numeric_grade(LUCIA, self.exam, 27))

    def test_update_excludes_record_itself(self) -> None:
        stored = self.store.add_grade(numeric_grade(MARCO, self.exam, 25))

        validated = self.store.validator.validate(replace(stored, voto_numerico=28))

        self.assertEqual(28, validated.voto_numerico)


class CourselessValidationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = make_store(courseless=True)
        add_students(self.store, MARCO)

    def test_exam_type_alone_decides_shape(self) -> None:
        letter_exam = add_exam(self.store, None, "intermedio")
        numeric_exam = add_exam(self.store, None, "completo", "2024-07-01")

        self.assertEqual("A", self.store.add_grade(letter_grade(MARCO, letter_exam, "A")).voto_lettera)
        self.assertEqual(30, self.store.add_grade(numeric_grade(MARCO, numeric_exam, 30)).voto_numerico)

        with self.assertRaises(InvalidValueError):
            self.store.validator.validate(numeric_grade(MARCO, letter_exam, 28))


if __name__ == "__main__":
    unittest.main()
