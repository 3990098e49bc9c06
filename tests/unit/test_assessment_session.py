"""
Unit tests for the assessment session state machine.

Covers navigation, answer selection, finishing, forced lockout through the
integrity monitor, mock sessions and abandonment.
"""

import unittest
from unittest.mock import Mock

from src.models.assessment_result import SessionMode, SessionPhase
from src.models.assessment_session import (
    Advance,
    AssessmentSession,
    Finish,
    ForceBlock,
    Retreat,
    SelectAnswer,
)
from src.models.question import Question
from src.models.scoring import UNANSWERED
from src.utils.attention import AttentionSignal, ScriptedAttentionSource


def make_questions(count=5, correct_index=1):
    return [
        Question(
            question_id=f"q-{i + 1}",
            text=f"Questão {i + 1}",
            options=["A", "B", "C", "D", "E"],
            correct_index=correct_index,
        )
        for i in range(count)
    ]


class SessionTestCase(unittest.TestCase):
    """Base case: an official 5-question session on a scripted attention source."""

    def setUp(self):
        self.source = ScriptedAttentionSource()
        self.on_finished = Mock()
        self.on_blocked = Mock()
        self.session = self.make_session()

    def make_session(self, mode=SessionMode.OFFICIAL, **kwargs):
        return AssessmentSession(
            subject="Filosofia",
            questions=make_questions(),
            mode=mode,
            student_id="student-1",
            grade="1ª",
            quarter=1,
            attention_source=self.source if mode is SessionMode.OFFICIAL else None,
            strike_threshold=6,
            on_finished=self.on_finished,
            on_blocked=self.on_blocked,
            **kwargs,
        )

    def answer_all(self, session, option_index=1):
        for i in range(len(session.questions)):
            self.assertTrue(session.choose(option_index))
            if i < session.last_index:
                self.assertTrue(session.advance())


class TestSessionStart(SessionTestCase):
    """Test session construction."""

    def test_initial_state(self):
        self.assertEqual(self.session.phase, SessionPhase.IN_PROGRESS)
        self.assertEqual(self.session.current_index, 0)
        self.assertEqual(self.session.answers, [UNANSWERED] * 5)
        self.assertEqual(self.session.strikes, 0)
        self.assertTrue(self.session.monitor_active)
        self.assertIsNone(self.session.result)

    def test_official_requires_attention_source(self):
        with self.assertRaises(ValueError):
            AssessmentSession("História", make_questions(), mode=SessionMode.OFFICIAL)

    def test_empty_question_set_rejected(self):
        with self.assertRaises(ValueError):
            AssessmentSession("História", [], attention_source=self.source)

    def test_mode_accepts_string(self):
        session = AssessmentSession("História", make_questions(), mode="mock")
        self.assertIs(session.mode, SessionMode.MOCK)

    def test_mock_session_has_no_monitor(self):
        session = self.make_session(mode=SessionMode.MOCK)
        self.assertIsNone(session.monitor)
        self.assertFalse(session.monitor_active)

    def test_questions_are_copied(self):
        questions = make_questions()
        session = AssessmentSession("História", questions, mode=SessionMode.MOCK)
        questions.pop()
        self.assertEqual(len(session.questions), 5)


class TestAnswerSelection(SessionTestCase):
    """Test answer selection and re-answering."""

    def test_select_records_answer(self):
        self.assertTrue(self.session.select_answer(0, 3))
        self.assertEqual(self.session.answers[0], 3)
        self.assertEqual(self.session.answered_count, 1)

    def test_reanswer_changes_only_that_slot(self):
        self.session.select_answer(0, 1)
        self.session.select_answer(2, 4)
        before = list(self.session.answers)

        self.session.select_answer(0, 2)

        self.assertEqual(self.session.answers[0], 2)
        self.assertEqual(self.session.answers[1:], before[1:])

    def test_select_any_question_index(self):
        """Selection is not restricted to the question on screen."""
        self.assertTrue(self.session.dispatch(SelectAnswer(4, 0)))
        self.assertEqual(self.session.answers[4], 0)
        self.assertEqual(self.session.current_index, 0)

    def test_out_of_range_question(self):
        with self.assertRaises(ValueError):
            self.session.select_answer(5, 0)

    def test_out_of_range_option(self):
        with self.assertRaises(ValueError):
            self.session.select_answer(0, 5)
        with self.assertRaises(ValueError):
            self.session.select_answer(0, -1)


class TestNavigation(SessionTestCase):
    """Test advance/retreat gating."""

    def test_advance_refused_when_unanswered(self):
        self.assertFalse(self.session.can_advance)
        self.assertFalse(self.session.advance())
        self.assertEqual(self.session.current_index, 0)

    def test_advance_after_answer(self):
        self.session.choose(2)
        self.assertTrue(self.session.dispatch(Advance()))
        self.assertEqual(self.session.current_index, 1)
        self.assertEqual(self.session.current_question.question_id, "q-2")

    def test_advance_refused_at_last_question(self):
        self.answer_all(self.session)
        self.assertEqual(self.session.current_index, 4)
        self.assertFalse(self.session.advance())

    def test_retreat_refused_at_first_question(self):
        self.assertFalse(self.session.can_retreat)
        self.assertFalse(self.session.dispatch(Retreat()))

    def test_retreat_allowed_without_answer(self):
        self.session.choose(1)
        self.session.advance()
        self.assertTrue(self.session.retreat())
        self.assertEqual(self.session.current_index, 0)

    def test_unknown_event(self):
        with self.assertRaises(TypeError):
            self.session.dispatch("next")


class TestFinish(SessionTestCase):
    """Test finishing a session."""

    def test_all_correct(self):
        self.answer_all(self.session, option_index=1)

        self.assertTrue(self.session.can_finish)
        self.assertTrue(self.session.dispatch(Finish()))

        self.assertEqual(self.session.phase, SessionPhase.FINISHED)
        result = self.session.result
        self.assertEqual(result.score, 5)
        self.assertEqual(result.total_questions, 5)
        self.assertEqual(result.phase, SessionPhase.FINISHED)
        self.assertFalse(result.flagged_for_review)
        self.assertEqual(result.question_ids, ["q-1", "q-2", "q-3", "q-4", "q-5"])
        self.assertIsNone(result.feedback)
        self.assertTrue(result.feedback_pending)
        self.on_finished.assert_called_once_with(result)
        self.on_blocked.assert_not_called()

    def test_partial_score(self):
        self.answer_all(self.session, option_index=1)
        self.session.select_answer(0, 0)
        self.session.select_answer(3, 4)

        self.session.finish()

        self.assertEqual(self.session.result.score, 3)
        self.assertAlmostEqual(self.session.result.display_grade, 6.0)

    def test_finish_refused_before_last_question(self):
        for i in range(5):
            self.session.select_answer(i, 1)
        self.assertFalse(self.session.finish())
        self.assertEqual(self.session.phase, SessionPhase.IN_PROGRESS)

    def test_finish_refused_with_unanswered_slot(self):
        for _ in range(4):
            self.session.choose(1)
            self.session.advance()

        self.assertEqual(self.session.current_index, 4)
        self.assertFalse(self.session.finish())
        self.assertEqual(self.session.phase, SessionPhase.IN_PROGRESS)
        self.on_finished.assert_not_called()

    def test_finish_detaches_monitor(self):
        self.answer_all(self.session)
        self.session.finish()

        self.assertFalse(self.session.monitor_active)
        self.assertEqual(self.source.subscriber_count, 0)

        for _ in range(10):
            self.source.emit(AttentionSignal.BLUR)
        self.assertEqual(self.session.phase, SessionPhase.FINISHED)
        self.on_blocked.assert_not_called()

    def test_finished_is_terminal(self):
        self.answer_all(self.session)
        self.session.finish()

        self.assertFalse(self.session.select_answer(0, 0))
        self.assertFalse(self.session.retreat())
        self.assertFalse(self.session.finish())
        self.assertFalse(self.session.force_block())
        self.assertEqual(self.session.result.score, 5)
        self.on_finished.assert_called_once()

    def test_strikes_recorded_on_result(self):
        self.source.switch_away()
        self.answer_all(self.session)
        self.session.finish()
        self.assertEqual(self.session.result.strikes, 2)


class TestLockout(SessionTestCase):
    """Test forced lockout through the integrity monitor."""

    def test_below_threshold_stays_in_progress(self):
        for k in range(1, 6):
            self.source.emit(AttentionSignal.BLUR)
            self.assertEqual(self.session.strikes, k)
            self.assertEqual(self.session.phase, SessionPhase.IN_PROGRESS)

    def test_six_focus_losses_block(self):
        self.session.choose(2)
        for _ in range(6):
            self.source.emit(AttentionSignal.BLUR)

        self.assertEqual(self.session.phase, SessionPhase.BLOCKED)
        result = self.session.result
        self.assertEqual(result.phase, SessionPhase.BLOCKED)
        self.assertEqual(result.score, 0)
        self.assertTrue(result.flagged_for_review)
        self.assertEqual(result.strikes, 6)
        self.assertEqual(result.answers[0], 2)
        self.assertFalse(result.feedback_pending)
        self.on_blocked.assert_called_once_with(result)
        self.on_finished.assert_not_called()

    def test_three_application_switches_block(self):
        for _ in range(3):
            self.source.switch_away()
        self.assertEqual(self.session.phase, SessionPhase.BLOCKED)

    def test_block_even_with_all_correct_answers(self):
        self.answer_all(self.session, option_index=1)
        for _ in range(6):
            self.source.emit(AttentionSignal.HIDDEN)

        self.assertEqual(self.session.result.score, 0)
        self.assertFalse(self.session.finish())

    def test_no_strikes_after_block(self):
        for _ in range(9):
            self.source.emit(AttentionSignal.BLUR)

        self.assertEqual(self.session.strikes, 6)
        self.assertEqual(self.source.subscriber_count, 0)
        self.on_blocked.assert_called_once()

    def test_blocked_is_terminal(self):
        for _ in range(6):
            self.source.emit(AttentionSignal.BLUR)

        self.assertFalse(self.session.select_answer(0, 1))
        self.assertFalse(self.session.advance())
        self.assertFalse(self.session.abandon())
        self.assertEqual(self.session.phase, SessionPhase.BLOCKED)

    def test_force_block_directly(self):
        self.assertTrue(self.session.dispatch(ForceBlock()))
        self.assertEqual(self.session.phase, SessionPhase.BLOCKED)
        self.assertFalse(self.session.monitor_active)

    def test_custom_threshold(self):
        source = ScriptedAttentionSource()
        strict = AssessmentSession(
            "Geografia", make_questions(), attention_source=source, strike_threshold=2,
        )
        source.switch_away()
        self.assertEqual(strict.phase, SessionPhase.BLOCKED)


class TestMockSession(SessionTestCase):
    """Test unmonitored practice sessions."""

    def setUp(self):
        super().setUp()
        self.mock_session = self.make_session(mode=SessionMode.MOCK)

    def test_mock_never_blocks(self):
        source = ScriptedAttentionSource()
        session = AssessmentSession(
            "Sociologia", make_questions(), mode=SessionMode.MOCK, attention_source=source,
        )
        self.assertEqual(source.subscriber_count, 0)

        for _ in range(20):
            source.switch_away()

        self.assertEqual(session.phase, SessionPhase.IN_PROGRESS)
        self.assertEqual(session.strikes, 0)

    def test_force_block_refused(self):
        self.assertFalse(self.mock_session.force_block(6))
        self.assertEqual(self.mock_session.phase, SessionPhase.IN_PROGRESS)
        self.on_blocked.assert_not_called()

    def test_mock_finish(self):
        self.answer_all(self.mock_session, option_index=0)
        self.mock_session.finish()

        result = self.mock_session.result
        self.assertTrue(result.is_mock)
        self.assertEqual(result.score, 0)
        self.assertEqual(result.strikes, 0)
        self.assertFalse(result.flagged_for_review)


class TestAbandon(SessionTestCase):
    """Test leaving a session mid-way."""

    def test_abandon_detaches_monitor(self):
        self.source.emit(AttentionSignal.BLUR)
        self.assertTrue(self.session.abandon())

        self.assertFalse(self.session.monitor_active)
        self.assertFalse(self.session.is_active)
        self.assertEqual(self.session.phase, SessionPhase.IN_PROGRESS)

        for _ in range(10):
            self.source.emit(AttentionSignal.BLUR)
        self.assertEqual(self.session.strikes, 1)
        self.on_blocked.assert_not_called()

    def test_abandoned_session_is_inert(self):
        self.session.abandon()
        self.assertFalse(self.session.select_answer(0, 1))
        self.assertFalse(self.session.abandon())
        self.assertIsNone(self.session.result)


class TestSnapshot(SessionTestCase):
    """Test to_dict rendering snapshot."""

    def test_to_dict(self):
        self.session.choose(1)
        snapshot = self.session.to_dict()

        self.assertEqual(snapshot["phase"], "in_progress")
        self.assertEqual(snapshot["mode"], "official")
        self.assertEqual(snapshot["answered_questions"], 1)
        self.assertTrue(snapshot["can_advance"])
        self.assertFalse(snapshot["can_finish"])
        self.assertTrue(snapshot["monitor_active"])
        self.assertIsNone(snapshot["result"])

    def test_strike_warning_above_warning_level(self):
        for _ in range(3):
            self.source.emit(AttentionSignal.BLUR)
        self.assertFalse(self.session.to_dict()["strike_warning"])

        self.source.emit(AttentionSignal.HIDDEN)

        snapshot = self.session.to_dict()
        self.assertEqual(snapshot["strikes"], 4)
        self.assertTrue(snapshot["strike_warning"])

    def test_to_dict_after_finish(self):
        self.answer_all(self.session)
        self.session.finish()
        snapshot = self.session.to_dict()

        self.assertEqual(snapshot["phase"], "finished")
        self.assertEqual(snapshot["result"]["score"], 5)
        self.assertEqual(snapshot["result"]["display_grade"], 10.0)


if __name__ == "__main__":
    unittest.main()
