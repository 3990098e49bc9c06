"""
Feedback Orchestrator - attaches generated feedback to a finished result.

The score is already on the result when a request is made; feedback arrives
later on an owned asyncio task. Any failure (model error, timeout, empty text)
is replaced by FEEDBACK_FALLBACK so that feedback never blocks or reverses the
completion of a session. No retries are attempted here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Set

try:
    from ..config import config
    from ..models.assessment_result import AssessmentResult
    from ..models.question import Question
    from .feedback_agent import FeedbackAgent
except ImportError:
    from src.config import config
    from src.models.assessment_result import AssessmentResult
    from src.models.question import Question
    from src.agents.feedback_agent import FeedbackAgent

logger = logging.getLogger(__name__)

FEEDBACK_FALLBACK = "Feedback indisponível"

FeedbackCallback = Callable[[AssessmentResult], None]


class FeedbackOrchestrator:
    """
    Owns the feedback tasks of finished sessions, keyed by result id.

    Feedback is only generated when ``request`` is called from inside a running
    event loop; synchronous callers get FEEDBACK_FALLBACK straight away.

    Usage:
        orchestrator = FeedbackOrchestrator()
        orchestrator.request(result, questions, on_ready=store_feedback)
        ...
        orchestrator.cancel(result.result_id)  # session torn down before feedback arrived
    """

    def __init__(
        self,
        agent: Optional[FeedbackAgent] = None,
        timeout: Optional[float] = None,
        agent_factory: Callable[[], FeedbackAgent] = FeedbackAgent,
    ):
        """
        Initialize orchestrator.

        Args:
            agent: Feedback agent (built lazily from agent_factory when omitted)
            timeout: Seconds to wait for the agent (default: config.model.feedback_timeout)
            agent_factory: Builds the agent on first use
        """
        self._agent = agent
        self._agent_factory = agent_factory
        self.timeout = timeout if timeout is not None else config.model.feedback_timeout
        self._tasks: Dict[str, Set[asyncio.Task]] = {}

    @property
    def agent(self) -> FeedbackAgent:
        if self._agent is None:
            self._agent = self._agent_factory()
        return self._agent

    @property
    def pending(self) -> int:
        """Number of feedback tasks still running."""
        return sum(1 for task in self._all_tasks() if not task.done())

    def _all_tasks(self) -> List[asyncio.Task]:
        return [task for tasks in self._tasks.values() for task in tasks]

    async def generate(
        self,
        subject: str,
        questions: Sequence[Question],
        answers: Sequence[int],
    ) -> str:
        """
        Get feedback text, substituting the fallback on any failure.

        Cancellation is propagated, everything else is absorbed.
        """
        try:
            return await asyncio.wait_for(
                self.agent.agenerate(subject, questions, answers),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Feedback generation timed out after %.1fs", self.timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("Feedback generation failed: %s", e)
        return FEEDBACK_FALLBACK

    def request(
        self,
        result: AssessmentResult,
        questions: Sequence[Question],
        on_ready: Optional[FeedbackCallback] = None,
    ) -> Optional[asyncio.Task]:
        """
        Start feedback generation for a scored result without awaiting it.

        Args:
            result: Finished result (score already set)
            questions: Question set of the session
            on_ready: Called with the result once feedback is attached

        Returns:
            The owned task, or None when no event loop is running (the fallback
            is then attached immediately)
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.info("No running event loop; attaching fallback feedback to %s", result.result_id)
            self._attach(result, FEEDBACK_FALLBACK, on_ready)
            return None

        task = loop.create_task(
            self._run(result, tuple(questions), on_ready),
            name=f"feedback-{result.result_id}",
        )
        self._tasks.setdefault(result.result_id, set()).add(task)
        task.add_done_callback(lambda done: self._forget(result.result_id, done))
        logger.debug("Feedback requested for %s", result.result_id)
        return task

    def _forget(self, result_id: str, task: asyncio.Task) -> None:
        tasks = self._tasks.get(result_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del self._tasks[result_id]

    async def _run(
        self,
        result: AssessmentResult,
        questions: Sequence[Question],
        on_ready: Optional[FeedbackCallback],
    ) -> str:
        text = await self.generate(result.subject, questions, result.answers)
        self._attach(result, text, on_ready)
        return text

    @staticmethod
    def _attach(result: AssessmentResult, text: str, on_ready: Optional[FeedbackCallback]) -> None:
        result.feedback = text
        if on_ready is not None:
            on_ready(result)

    def cancel(self, result_id: Optional[str] = None) -> int:
        """
        Cancel pending feedback tasks.

        Args:
            result_id: Only cancel the tasks of this result (default: every task)

        Returns:
            Number of tasks cancelled
        """
        if result_id is None:
            tasks = self._all_tasks()
        else:
            tasks = list(self._tasks.get(result_id, ()))

        cancelled = 0
        for task in tasks:
            if not task.done():
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.info("Cancelled %d pending feedback task(s)", cancelled)
        return cancelled

    async def wait(self) -> None:
        """Wait for all pending feedback tasks (cancelled ones included)."""
        tasks = self._all_tasks()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
