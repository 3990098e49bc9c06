"""
Feedback Agent - LLM-generated pedagogical feedback on a finished session.

Produces a short, encouraging explanation (in Portuguese) of the student's
performance, pointing out what to improve and walking through the missed
concepts Socratically.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI

try:
    from ..config import config, token_tracker
    from ..errors import FeedbackUnavailable
    from ..models.question import Question
except ImportError:
    from src.config import config, token_tracker
    from src.errors import FeedbackUnavailable
    from src.models.question import Question

logger = logging.getLogger(__name__)


class FeedbackAgent:
    """
    AI-powered feedback agent for multiple-choice sessions.

    Uses an LLM to turn (subject, questions, answers) into free-text feedback.
    Errors are raised to the caller; fallback handling belongs to the
    feedback orchestrator.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        """
        Initialize feedback agent.

        Args:
            model_name: LLM model name
            temperature: LLM temperature
        """
        self.model_name = model_name or config.model.model_name

        self.llm = ChatOpenAI(
            model=self.model_name,
            temperature=(
                temperature if temperature is not None else config.model.feedback_temperature
            ),
            api_key=config.model.api_key,
            base_url=config.model.base_url,
            timeout=config.model.request_timeout,
            max_tokens=config.model.max_tokens,
        )

        self.feedback_prompt = PromptTemplate(
            input_variables=["subject", "performance"],
            template="""Analise o desempenho de um estudante na avaliação de {subject}.
Questões e Respostas: {performance}
Forneça um feedback pedagógico incentivador em português, apontando os pontos de melhoria e explicando os conceitos que o aluno errou de forma socrática.""",
        )

    @staticmethod
    def summarize_performance(questions: Sequence[Question], answers: Sequence[int]) -> List[dict]:
        """Per-question payload sent to the model: question text, correct index, student index."""
        return [
            {"q": question.text, "correct": question.correct_index, "student": answer}
            for question, answer in zip(questions, answers)
        ]

    def build_prompt(self, subject: str, questions: Sequence[Question], answers: Sequence[int]) -> str:
        """
        Build the feedback prompt.

        Raises:
            ValueError: If inputs are inconsistent
        """
        if not questions:
            raise ValueError("Question set cannot be empty")
        if len(questions) != len(answers):
            raise ValueError(
                f"Number of answers ({len(answers)}) must match number of questions ({len(questions)})"
            )

        performance = json.dumps(
            self.summarize_performance(questions, answers), ensure_ascii=False
        )
        return self.feedback_prompt.format(subject=subject, performance=performance)

    async def agenerate(
        self,
        subject: str,
        questions: Sequence[Question],
        answers: Sequence[int],
    ) -> str:
        """
        Generate feedback for a scored session.

        Args:
            subject: Subject assessed
            questions: Ordered question set
            answers: Selected option per question

        Returns:
            Feedback text

        Raises:
            ValueError: If inputs are inconsistent
            FeedbackUnavailable: If the model returns no text
        """
        prompt = self.build_prompt(subject, questions, answers)

        response = await self.llm.ainvoke(prompt)
        token_tracker.record_usage(response)

        text = response.content if isinstance(response.content, str) else ""
        text = text.strip()
        if not text:
            raise FeedbackUnavailable("Feedback model returned an empty response")

        logger.debug("Generated %d characters of feedback for %s", len(text), subject)
        return text
