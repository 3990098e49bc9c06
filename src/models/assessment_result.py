"""
Result of a finished or blocked assessment session.

Produced once by the session, then handed to persistence. ``feedback`` stays
``None`` until the feedback orchestrator attaches the generated text.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

try:
    from ..config import config
    from .scoring import grade_on_scale
except ImportError:
    from src.config import config
    from src.models.scoring import grade_on_scale


class SessionPhase(str, Enum):
    """Session lifecycle phase. Only IN_PROGRESS is non-terminal."""

    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    FINISHED = "finished"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionPhase.IN_PROGRESS


class SessionMode(str, Enum):
    """Official sessions are graded, monitored and persisted; mock sessions are practice."""

    OFFICIAL = "official"
    MOCK = "mock"

    @property
    def is_mock(self) -> bool:
        return self is SessionMode.MOCK


@dataclass
class AssessmentResult:
    """
    Outcome of one assessment session.

    Attributes:
        student_id: Student who took the session
        subject: Subject assessed
        quarter: Academic quarter (bimester)
        mode: Official or mock
        phase: FINISHED or BLOCKED
        score: Number of correct answers (0 when blocked)
        total_questions: Question count (the nominal denominator)
        answers: Raw selected-option indices
        question_ids: Question ids, in session order
        strikes: Integrity strikes at completion
        feedback: Generated pedagogical feedback (None while pending)
        flagged_for_review: True for blocked official sessions
        grade: School year of the student
    """
    student_id: Optional[str]
    subject: str
    quarter: Optional[int]
    mode: SessionMode
    phase: SessionPhase
    score: int
    total_questions: int
    answers: List[int]
    question_ids: List[str] = field(default_factory=list)
    strikes: int = 0
    feedback: Optional[str] = None
    flagged_for_review: bool = False
    grade: Optional[str] = None
    result_id: str = field(default_factory=lambda: f"ar-{uuid.uuid4()}")
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_mock(self) -> bool:
        return self.mode.is_mock

    @property
    def feedback_pending(self) -> bool:
        return self.phase is SessionPhase.FINISHED and self.feedback is None

    @property
    def display_grade(self) -> float:
        """Score scaled to the configured grade scale (0-10 by default)."""
        if self.total_questions <= 0:
            return 0.0
        return grade_on_scale(self.score, self.total_questions, config.assessment.grade_scale)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for persistence."""
        return {
            "result_id": self.result_id,
            "student_id": self.student_id,
            "subject": self.subject,
            "grade": self.grade,
            "quarter": self.quarter,
            "mode": self.mode.value,
            "is_mock": self.is_mock,
            "phase": self.phase.value,
            "score": self.score,
            "total_questions": self.total_questions,
            "display_grade": round(self.display_grade, 1),
            "answers": list(self.answers),
            "question_ids": list(self.question_ids),
            "strikes": self.strikes,
            "feedback": self.feedback,
            "flagged_for_review": self.flagged_for_review,
            "created_at": self.created_at,
        }
