"""
Assessment Session - the proctored multiple-choice session state machine.

Phases: IN_PROGRESS -> BLOCKED | FINISHED. Both exits are terminal.

All mutation goes through ``dispatch(event)``; the public methods
(``select_answer``, ``advance``, ``retreat``, ``finish``, ``force_block``,
``abandon``) only build the matching event. ``dispatch`` returns True when the
event was applied and False when the session refused it.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

try:
    from ..config import config
    from ..utils.attention import AttentionSource
    from .assessment_result import AssessmentResult, SessionMode, SessionPhase
    from .integrity_monitor import IntegrityMonitor
    from .question import Question, validate_question_set
    from .scoring import UNANSWERED, score_answers
except ImportError:
    from src.config import config
    from src.utils.attention import AttentionSource
    from src.models.assessment_result import AssessmentResult, SessionMode, SessionPhase
    from src.models.integrity_monitor import IntegrityMonitor
    from src.models.question import Question, validate_question_set
    from src.models.scoring import UNANSWERED, score_answers

logger = logging.getLogger(__name__)

ResultHook = Callable[[AssessmentResult], None]


# ==================== Session Events ====================

@dataclass(frozen=True)
class SelectAnswer:
    question_index: int
    option_index: int


@dataclass(frozen=True)
class Advance:
    pass


@dataclass(frozen=True)
class Retreat:
    pass


@dataclass(frozen=True)
class Finish:
    pass


@dataclass(frozen=True)
class ForceBlock:
    strikes: Optional[int] = None


@dataclass(frozen=True)
class Abandon:
    pass


SessionEvent = Any  # one of the event classes above


class AssessmentSession:
    """
    One student's run through an ordered question set.

    Features:
    - Answer selection with re-answering
    - Forward navigation gated on the current answer, free backward navigation
    - Finish only from the last question with every slot answered
    - Integrity monitoring and forced lockout for official sessions
    - Result hand-off through ``on_finished`` / ``on_blocked`` hooks
    """

    def __init__(
        self,
        subject: str,
        questions: Sequence[Question],
        mode: SessionMode = SessionMode.OFFICIAL,
        student_id: Optional[str] = None,
        grade: Optional[str] = None,
        quarter: Optional[int] = None,
        attention_source: Optional[AttentionSource] = None,
        strike_threshold: Optional[int] = None,
        on_finished: Optional[ResultHook] = None,
        on_blocked: Optional[ResultHook] = None,
        session_id: Optional[str] = None,
    ):
        """
        Start a session in IN_PROGRESS at the first question.

        Args:
            subject: Subject being assessed
            questions: Ordered question set (passed whole, never shared state)
            mode: Official (monitored) or mock (unmonitored)
            student_id: Student taking the session
            grade: Student's school year
            quarter: Academic quarter
            attention_source: Surface-attention source (required for official sessions)
            strike_threshold: Override for the lockout threshold
            on_finished: Called with the result when the session finishes
            on_blocked: Called with the result when the session is blocked

        Raises:
            ValueError: If the question set is invalid or an official session has no attention source
        """
        questions = list(questions)
        validate_question_set(questions)

        self.mode = SessionMode(mode)
        if self.mode is SessionMode.OFFICIAL and attention_source is None:
            raise ValueError("Official sessions require an attention source for monitoring")

        self.session_id = session_id or f"as-{uuid.uuid4()}"
        self.subject = subject
        self.student_id = student_id
        self.grade = grade
        self.quarter = quarter
        self.questions = tuple(questions)

        self.current_index = 0
        self.answers: List[int] = [UNANSWERED] * len(self.questions)
        self.phase = SessionPhase.IN_PROGRESS
        self.abandoned = False
        self.result: Optional[AssessmentResult] = None

        self.on_finished = on_finished
        self.on_blocked = on_blocked

        self._reducers = {
            SelectAnswer: self._reduce_select_answer,
            Advance: self._reduce_advance,
            Retreat: self._reduce_retreat,
            Finish: self._reduce_finish,
            ForceBlock: self._reduce_force_block,
            Abandon: self._reduce_abandon,
        }

        # Mock sessions never get a monitor, so they can never accrue strikes
        self.monitor: Optional[IntegrityMonitor] = None
        if self.mode is SessionMode.OFFICIAL:
            self.monitor = IntegrityMonitor(
                attention_source,
                on_lockout=self._on_lockout,
                threshold=strike_threshold,
            )
            self.monitor.attach()

        logger.info(
            "Session %s started: subject=%s mode=%s questions=%d",
            self.session_id, subject, self.mode.value, len(self.questions),
        )

    # ==================== Read-only view ====================

    @property
    def last_index(self) -> int:
        return len(self.questions) - 1

    @property
    def current_question(self) -> Question:
        return self.questions[self.current_index]

    @property
    def strikes(self) -> int:
        return self.monitor.strikes if self.monitor else 0

    @property
    def monitor_active(self) -> bool:
        return self.monitor is not None and self.monitor.is_attached

    @property
    def is_active(self) -> bool:
        return self.phase is SessionPhase.IN_PROGRESS and not self.abandoned

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self.answers if answer != UNANSWERED)

    def is_answered(self, question_index: int) -> bool:
        return self.answers[question_index] != UNANSWERED

    @property
    def can_advance(self) -> bool:
        return (
            self.is_active
            and self.current_index < self.last_index
            and self.is_answered(self.current_index)
        )

    @property
    def can_retreat(self) -> bool:
        return self.is_active and self.current_index > 0

    @property
    def can_finish(self) -> bool:
        return (
            self.is_active
            and self.current_index == self.last_index
            and self.answered_count == len(self.questions)
        )

    # ==================== Inputs ====================

    def select_answer(self, question_index: int, option_index: int) -> bool:
        return self.dispatch(SelectAnswer(question_index, option_index))

    def choose(self, option_index: int) -> bool:
        """Answer the question currently on screen."""
        return self.select_answer(self.current_index, option_index)

    def advance(self) -> bool:
        return self.dispatch(Advance())

    def retreat(self) -> bool:
        return self.dispatch(Retreat())

    def finish(self) -> bool:
        return self.dispatch(Finish())

    def force_block(self, strikes: Optional[int] = None) -> bool:
        return self.dispatch(ForceBlock(strikes))

    def abandon(self) -> bool:
        return self.dispatch(Abandon())

    def dispatch(self, event: SessionEvent) -> bool:
        """
        Apply one input event.

        Returns:
            True if the event changed the session, False if it was refused

        Raises:
            TypeError: For an unknown event type
            ValueError: For out-of-range answer indices
        """
        reducer = self._reducers.get(type(event))
        if reducer is None:
            raise TypeError(f"Unknown session event: {event!r}")

        if not self.is_active:
            logger.debug(
                "Session %s refused %s (phase=%s, abandoned=%s)",
                self.session_id, type(event).__name__, self.phase.value, self.abandoned,
            )
            return False

        return reducer(event)

    # ==================== Reducers ====================

    def _reduce_select_answer(self, event: SelectAnswer) -> bool:
        if not (0 <= event.question_index < len(self.questions)):
            raise ValueError(
                f"Question index {event.question_index} out of range [0, {len(self.questions)})"
            )
        question = self.questions[event.question_index]
        if not (0 <= event.option_index < question.option_count):
            raise ValueError(
                f"Option index {event.option_index} out of range [0, {question.option_count}) "
                f"for question {question.question_id}"
            )

        self.answers[event.question_index] = event.option_index
        return True

    def _reduce_advance(self, event: Advance) -> bool:
        if not self.can_advance:
            return False
        self.current_index += 1
        return True

    def _reduce_retreat(self, event: Retreat) -> bool:
        if not self.can_retreat:
            return False
        self.current_index -= 1
        return True

    def _reduce_finish(self, event: Finish) -> bool:
        if not self.can_finish:
            return False

        self._teardown_monitor()
        score = score_answers(self.questions, self.answers)
        self.phase = SessionPhase.FINISHED
        self.result = self._build_result(score=score, flagged=False)

        logger.info(
            "Session %s finished: score=%d/%d strikes=%d",
            self.session_id, score, len(self.questions), self.strikes,
        )
        if self.on_finished is not None:
            self.on_finished(self.result)
        return True

    def _reduce_force_block(self, event: ForceBlock) -> bool:
        if self.mode is SessionMode.MOCK:
            logger.debug("Session %s ignored force_block in mock mode", self.session_id)
            return False

        self._teardown_monitor()
        self.phase = SessionPhase.BLOCKED
        # Answers are kept for review, never for grading
        self.result = self._build_result(score=0, flagged=True)

        logger.warning(
            "Session %s blocked after %d strike(s); flagged for review",
            self.session_id, self.strikes,
        )
        if self.on_blocked is not None:
            self.on_blocked(self.result)
        return True

    def _reduce_abandon(self, event: Abandon) -> bool:
        self._teardown_monitor()
        self.abandoned = True
        logger.info("Session %s abandoned at question %d", self.session_id, self.current_index + 1)
        return True

    # ==================== Helpers ====================

    def _on_lockout(self, strikes: int) -> None:
        self.force_block(strikes)

    def _teardown_monitor(self) -> None:
        if self.monitor is not None:
            self.monitor.detach()

    def _build_result(self, score: int, flagged: bool) -> AssessmentResult:
        return AssessmentResult(
            student_id=self.student_id,
            subject=self.subject,
            grade=self.grade,
            quarter=self.quarter,
            mode=self.mode,
            phase=self.phase,
            score=score,
            total_questions=len(self.questions),
            answers=list(self.answers),
            question_ids=[q.question_id for q in self.questions],
            strikes=self.strikes,
            flagged_for_review=flagged,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the session for rendering."""
        return {
            "session_id": self.session_id,
            "subject": self.subject,
            "student_id": self.student_id,
            "quarter": self.quarter,
            "mode": self.mode.value,
            "phase": self.phase.value,
            "abandoned": self.abandoned,
            "current_index": self.current_index,
            "total_questions": len(self.questions),
            "answers": list(self.answers),
            "answered_questions": self.answered_count,
            "strikes": self.strikes,
            "strike_warning": self.strikes > config.integrity.warning_level,
            "monitor_active": self.monitor_active,
            "can_advance": self.can_advance,
            "can_retreat": self.can_retreat,
            "can_finish": self.can_finish,
            "result": self.result.to_dict() if self.result else None,
        }
