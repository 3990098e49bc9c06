"""
Data models for proctored assessment sessions.

This module contains the pure-logic core:
- Question: multiple-choice question
- AssessmentSession: session state machine
- IntegrityMonitor: strike-based lockout
- AssessmentResult: outcome handed to persistence
- Scoring helpers
"""

from .question import Question, validate_question_set
from .student import StudentProfile
from .scoring import UNANSWERED, score_answers, grade_on_scale, answer_review
from .assessment_result import AssessmentResult, SessionMode, SessionPhase
from .integrity_monitor import IntegrityMonitor
from .assessment_session import AssessmentSession

__all__ = [
    "Question",
    "validate_question_set",
    "StudentProfile",
    "UNANSWERED",
    "score_answers",
    "grade_on_scale",
    "answer_review",
    "AssessmentResult",
    "SessionMode",
    "SessionPhase",
    "IntegrityMonitor",
    "AssessmentSession",
]
