"""
Assessment Orchestrator

Runs one student's assessment from start to hand-off:
1. Start checks (review lock, quarter release)
2. Question set from the question bank
3. Proctored session (integrity monitor for official sessions)
4. Result hand-off to the result store
5. Generated feedback, attached when it arrives
6. Lockout notice when the integrity monitor voids the session

This is the main entry point for front-ends.
"""

from dataclasses import dataclass
from typing import Callable, Optional
import logging

from .agents.feedback_orchestrator import FeedbackOrchestrator
from .config import config
from .errors import IntegrityViolation, QuarterLocked, StudentLocked
from .models.assessment_result import AssessmentResult, SessionMode
from .models.assessment_session import AssessmentSession
from .models.student import StudentProfile
from .question_bank import QuestionBank
from .utils.attention import AttentionSource
from .utils.persistence import AssessmentResultStore

logger = logging.getLogger(__name__)


# ==================== Lockout Notice ====================

LOCKOUT_TITLE = "PROVA BLOQUEADA"


@dataclass(frozen=True)
class LockoutNotice:
    """
    Terminal, full-surface notice shown when a session is blocked.

    There is no way to dismiss it back into the session; the only action the
    surface offers is leaving to the dashboard.
    """
    student_id: Optional[str]
    subject: str
    strikes: int
    threshold: int
    result_id: Optional[str] = None
    title: str = LOCKOUT_TITLE
    dismissible: bool = False

    @property
    def reason(self) -> IntegrityViolation:
        return IntegrityViolation(self.strikes, self.threshold)

    @property
    def message(self) -> str:
        return (
            f"Saídas de tela consecutivas detectadas ({self.strikes}/{self.threshold}). "
            "O sistema bloqueou seu acesso para garantir a integridade da avaliação. "
            "Um administrador precisa revisar sua conta antes que você possa iniciar novas avaliações."
        )


LockoutNotifier = Callable[[LockoutNotice], None]


class AssessmentOrchestrator:
    """
    Wires the question bank, session, result store and feedback together.

    One orchestrator drives at most one active session at a time.
    """

    def __init__(
        self,
        question_bank: Optional[QuestionBank] = None,
        store: Optional[AssessmentResultStore] = None,
        feedback: Optional[FeedbackOrchestrator] = None,
        notifier: Optional[LockoutNotifier] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            question_bank: Question set provider
            store: Result persistence
            feedback: Feedback orchestrator
            notifier: Lockout notification surface
        """
        self.question_bank = question_bank or QuestionBank()
        self.store = store or AssessmentResultStore()
        self.feedback = feedback or FeedbackOrchestrator()
        self.notifier = notifier

        self.session: Optional[AssessmentSession] = None
        self.student: Optional[StudentProfile] = None
        self.last_notice: Optional[LockoutNotice] = None

    # ==================== Session start ====================

    def start_session(
        self,
        student: StudentProfile,
        subject: str,
        mode: SessionMode = SessionMode.OFFICIAL,
        attention_source: Optional[AttentionSource] = None,
        quarter: Optional[int] = None,
    ) -> AssessmentSession:
        """
        Start a proctored (official) or practice (mock) session.

        Args:
            student: Student profile
            subject: Subject to assess
            mode: Official or mock
            attention_source: Surface-attention source (required for official sessions)
            quarter: Academic quarter (default: config.schedule.active_quarter)

        Returns:
            The new session, in IN_PROGRESS

        Raises:
            StudentLocked: If the student awaits administrator review
            QuarterLocked: If official assessments for the quarter are not released
            QuestionSetUnavailable: If no question set can be provided
            ValueError: If an official session has no attention source
        """
        mode = SessionMode(mode)
        quarter = quarter or config.schedule.active_quarter

        if student.cheating_locked or self.store.is_student_locked(student.student_id):
            raise StudentLocked(student.student_id)

        if mode is SessionMode.OFFICIAL and config.schedule.is_locked(quarter):
            raise QuarterLocked(quarter)

        if self.session is not None and self.session.is_active:
            logger.info("Abandoning session %s to start a new one", self.session.session_id)
            self.abandon()

        questions = self.question_bank.load_questions(subject, student.grade, quarter, mode)

        self.student = student
        self.last_notice = None
        self.session = AssessmentSession(
            subject=subject,
            questions=questions,
            mode=mode,
            student_id=student.student_id,
            grade=student.grade,
            quarter=quarter,
            attention_source=attention_source,
            on_finished=self._handle_finished,
            on_blocked=self._handle_blocked,
        )
        return self.session

    # ==================== Hand-off hooks ====================

    def _should_persist(self, result: AssessmentResult) -> bool:
        return not result.is_mock or config.assessment.persist_mock_results

    def _handle_finished(self, result: AssessmentResult) -> None:
        persisted = False
        if self._should_persist(result):
            persisted, _, errors = self.store.save_result(result)
            if not persisted:
                logger.error("Result %s was not persisted: %s", result.result_id, errors)

        def on_feedback(finished: AssessmentResult) -> None:
            if persisted:
                self.store.attach_feedback(finished.result_id, finished.feedback)

        # Score is already on the result; feedback arrives later
        self.feedback.request(result, self.session.questions, on_ready=on_feedback)

    def _handle_blocked(self, result: AssessmentResult) -> None:
        success, result_id, errors = self.store.save_result(result)
        if not success:
            logger.error("Blocked result %s was not persisted: %s", result.result_id, errors)

        if result.student_id is not None:
            self.store.lock_student(result.student_id, result_id, result.strikes)
        if self.student is not None:
            self.student.cheating_locked = True

        threshold = config.integrity.strike_threshold
        if self.session is not None and self.session.monitor is not None:
            threshold = self.session.monitor.threshold

        notice = LockoutNotice(
            student_id=result.student_id,
            subject=result.subject,
            strikes=result.strikes,
            threshold=threshold,
            result_id=result_id,
        )
        self.last_notice = notice
        if self.notifier is not None:
            self.notifier(notice)

    # ==================== Teardown ====================

    def abandon(self) -> None:
        """User left the session: stop monitoring and drop its pending feedback."""
        if self.session is None:
            return
        if self.session.result is not None:
            self.feedback.cancel(self.session.result.result_id)
        self.session.abandon()

    async def wait_for_feedback(self) -> Optional[str]:
        """
        Wait until pending feedback is attached.

        Returns:
            Feedback text of the current session result, if any
        """
        await self.feedback.wait()
        if self.session is not None and self.session.result is not None:
            return self.session.result.feedback
        return None
