"""
Exception hierarchy for assessment sessions.

Incomplete answers are not errors: the session refuses the transition and
reports it through the return value of ``dispatch``. Everything here is either
surfaced before a session starts or recovered inside the feedback path.
"""

from __future__ import annotations

from typing import Optional


class AssessmentError(Exception):
    """Base class for assessment-session errors."""


class IntegrityViolation(AssessmentError):
    """Strike threshold reached; the session is voided and sent to review."""

    def __init__(self, strikes: int, threshold: int):
        self.strikes = strikes
        self.threshold = threshold
        super().__init__(
            f"{strikes} attention-loss events detected (threshold {threshold})"
        )


class ExternalServiceFailure(AssessmentError):
    """An external collaborator (LLM, question store) failed."""


class QuestionSetUnavailable(ExternalServiceFailure):
    """No question set could be obtained; the session must not start."""

    def __init__(self, message: str, subject: Optional[str] = None, quarter: Optional[int] = None):
        self.subject = subject
        self.quarter = quarter
        super().__init__(message)


class FeedbackUnavailable(ExternalServiceFailure):
    """Generated feedback could not be obtained."""


class StudentLocked(AssessmentError):
    """The student is locked pending administrator review."""

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(
            f"Student {student_id} is locked pending administrator review"
        )


class QuarterLocked(AssessmentError):
    """Official assessments for the quarter have not been released."""

    def __init__(self, quarter: int):
        self.quarter = quarter
        super().__init__(
            f"As avaliações do {quarter}º Bimestre ainda não estão liberadas."
        )
