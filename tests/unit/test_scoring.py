"""
Unit tests for answer-set scoring.
"""

import unittest
from unittest.mock import patch

from src.config import config
from src.models.assessment_result import AssessmentResult, SessionMode, SessionPhase
from src.models.question import Question
from src.models.scoring import UNANSWERED, answer_review, grade_on_scale, score_answers


def make_questions(correct_indices):
    return [
        Question(
            question_id=f"q-{i}",
            text=f"Questão {i}",
            options=["A", "B", "C", "D", "E"],
            correct_index=correct,
            explanation=f"Explicação {i}",
        )
        for i, correct in enumerate(correct_indices)
    ]


class TestScoreAnswers(unittest.TestCase):
    """Test score_answers."""

    def setUp(self):
        self.questions = make_questions([1, 0, 4, 2, 3])

    def test_all_correct(self):
        self.assertEqual(score_answers(self.questions, [1, 0, 4, 2, 3]), 5)

    def test_none_correct(self):
        self.assertEqual(score_answers(self.questions, [0, 1, 0, 0, 0]), 0)

    def test_partial(self):
        self.assertEqual(score_answers(self.questions, [1, 1, 4, 0, 0]), 2)

    def test_difficulty_has_no_weight(self):
        """One point per correct answer regardless of difficulty."""
        questions = [
            Question("q-easy", "F", ["a", "b"], 0, difficulty="easy"),
            Question("q-hard", "D", ["a", "b"], 0, difficulty="hard"),
        ]
        self.assertEqual(score_answers(questions, [0, 1]), 1)
        self.assertEqual(score_answers(questions, [1, 0]), 1)

    def test_length_mismatch(self):
        with self.assertRaises(ValueError):
            score_answers(self.questions, [1, 0, 4])

    def test_unanswered_slot(self):
        with self.assertRaises(ValueError) as ctx:
            score_answers(self.questions, [1, 0, UNANSWERED, 2, 3])
        self.assertIn("[2]", str(ctx.exception))

    def test_deterministic(self):
        answers = [1, 2, 4, 2, 0]
        self.assertEqual(
            score_answers(self.questions, answers),
            score_answers(self.questions, answers),
        )


class TestGradeOnScale(unittest.TestCase):
    """Test grade_on_scale."""

    def test_scale_of_ten(self):
        self.assertEqual(grade_on_scale(3, 5), 6.0)
        self.assertEqual(grade_on_scale(5, 5), 10.0)

    def test_custom_scale(self):
        self.assertEqual(grade_on_scale(1, 4, scale=100.0), 25.0)

    def test_zero_total(self):
        with self.assertRaises(ValueError):
            grade_on_scale(0, 0)


class TestAnswerReview(unittest.TestCase):
    """Test answer_review rows."""

    def test_rows(self):
        questions = make_questions([1, 0])
        rows = answer_review(questions, [1, 3])

        self.assertEqual(len(rows), 2)
        self.assertTrue(rows[0]["is_correct"])
        self.assertEqual(rows[0]["selected_letter"], "B")
        self.assertFalse(rows[1]["is_correct"])
        self.assertEqual(rows[1]["selected_letter"], "D")
        self.assertEqual(rows[1]["correct_letter"], "A")
        self.assertEqual(rows[1]["position"], 2)

    def test_unanswered_row(self):
        rows = answer_review(make_questions([2]), [UNANSWERED])
        self.assertIsNone(rows[0]["selected_letter"])
        self.assertFalse(rows[0]["is_correct"])


class TestDisplayGrade(unittest.TestCase):
    """Test AssessmentResult.display_grade goes through grade_on_scale."""

    def make_result(self, score):
        return AssessmentResult(
            student_id="student-1",
            subject="Geografia",
            quarter=1,
            mode=SessionMode.OFFICIAL,
            phase=SessionPhase.FINISHED,
            score=score,
            total_questions=5,
            answers=[0] * 5,
        )

    def test_default_scale(self):
        self.assertEqual(self.make_result(4).display_grade, grade_on_scale(4, 5))

    def test_configured_scale(self):
        with patch.object(config.assessment, "grade_scale", 100.0):
            self.assertEqual(self.make_result(3).display_grade, 60.0)


if __name__ == "__main__":
    unittest.main()
