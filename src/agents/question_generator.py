"""
Question Generator Agent - builds ENEM-style mock exams from planned topics.

Generates a fixed-size multiple-choice set following the item-response mix
(1 easy, 3 medium, 1 hard), each with a base text, 5 options and an explanation.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI

try:
    from ..config import config, token_tracker
    from ..errors import QuestionSetUnavailable
    from ..models.question import Question, validate_question_set
except ImportError:
    from src.config import config, token_tracker
    from src.errors import QuestionSetUnavailable
    from src.models.question import Question, validate_question_set

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = (
    "Limite de uso da IA atingido. Por favor, aguarde 1 minuto e tente novamente."
)


def _extract_json(response: str) -> str:
    """Strip markdown code fences around a JSON payload."""
    if "```json" in response:
        return response.split("```json")[1].split("```")[0].strip()
    if "```" in response:
        return response.split("```")[1].split("```")[0].strip()
    return response.strip()


def _is_rate_limited(error: Exception) -> bool:
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    return status == 429 or "429" in str(error)


class QuestionGenerator:
    """
    Generates mock exam question sets using an LLM.

    Features:
    - ENEM-style items with base text (citation) and optional visual element
    - Fixed difficulty mix from config.assessment.difficulty_mix
    - Strict parsing: malformed output never becomes a session
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
    ):
        """
        Initialize question generator.

        Args:
            model_name: LLM model name
            temperature: LLM temperature
        """
        self.model_name = model_name or config.model.model_name

        self.llm = ChatOpenAI(
            model=self.model_name,
            temperature=(
                temperature if temperature is not None else config.model.question_temperature
            ),
            api_key=config.model.api_key,
            base_url=config.model.base_url,
            timeout=config.model.request_timeout,
            max_tokens=config.model.max_tokens,
        )

        self.exam_prompt = PromptTemplate(
            input_variables=["subject", "grade", "topics", "num_questions", "num_options", "mix"],
            template="""Gere uma avaliação no padrão ENEM para a disciplina de {subject} para a {grade} série do Ensino Médio.
Os tópicos trabalhados foram: {topics}.
Gere exatamente {num_questions} questões de múltipla escolha.
As questões devem seguir a Teoria da Resposta ao Item (TRI): {mix}.
Cada questão deve ter um texto base ou contexto, comando da questão, {num_options} opções e uma explicação detalhada.

**Responda apenas com um array JSON:**
[
  {{
    "id": "q1",
    "citation": "Texto base ou citação",
    "visualDescription": "Descrição de gráfico, mapa ou charge (opcional)",
    "text": "Comando da questão",
    "options": ["...", "...", "...", "...", "..."],
    "correctIndex": 0,
    "explanation": "Por que a alternativa correta está correta",
    "difficulty": "easy"
  }}
]""",
        )

    def _describe_mix(self) -> str:
        labels = {"easy": "fácil", "medium": "média", "hard": "difícil"}
        parts = [
            f"{count} {labels.get(level, level)}"
            for level, count in config.assessment.difficulty_mix.items()
        ]
        return ", ".join(parts)

    def generate_exam(self, subject: str, topics: str, grade: str) -> List[Question]:
        """
        Generate a complete mock exam.

        Args:
            subject: Subject name
            topics: Planned topics for the quarter (free text)
            grade: School year ("1ª", "2ª", "3ª")

        Returns:
            Validated list of Question objects

        Raises:
            QuestionSetUnavailable: If the model fails or returns an unusable set
        """
        if not topics or not topics.strip():
            raise QuestionSetUnavailable(
                f"Não há conteúdo de planejamento cadastrado para {subject}.", subject=subject
            )

        prompt = self.exam_prompt.format(
            subject=subject,
            grade=grade,
            topics=topics,
            num_questions=config.assessment.questions_per_session,
            num_options=config.assessment.options_per_question,
            mix=self._describe_mix(),
        )

        try:
            response = self.llm.invoke(prompt)
        except Exception as e:
            logger.error("Question generation failed for %s: %s", subject, e)
            if _is_rate_limited(e):
                raise QuestionSetUnavailable(RATE_LIMIT_MESSAGE, subject=subject) from e
            raise QuestionSetUnavailable(
                f"Falha ao gerar conteúdo com IA: {e}", subject=subject
            ) from e

        token_tracker.record_usage(response)
        return self.parse_exam(response.content, subject)

    def parse_exam(self, response: str, subject: str) -> List[Question]:
        """
        Parse the model output into a validated question set.

        Raises:
            QuestionSetUnavailable: If the payload is not a usable question list
        """
        if not response or not str(response).strip():
            raise QuestionSetUnavailable("A IA retornou uma resposta vazia.", subject=subject)

        try:
            payload = json.loads(_extract_json(str(response)))
        except json.JSONDecodeError as e:
            raise QuestionSetUnavailable(
                f"A IA não conseguiu formatar as questões: {e}", subject=subject
            ) from e

        if isinstance(payload, dict):
            payload = payload.get("questions", [])
        if not isinstance(payload, list) or not payload:
            raise QuestionSetUnavailable(
                "A IA não retornou nenhuma questão.", subject=subject
            )

        try:
            questions = [self._to_question(item) for item in payload]
            validate_question_set(questions)
        except (TypeError, ValueError) as e:
            raise QuestionSetUnavailable(
                f"Questões geradas inválidas: {e}", subject=subject
            ) from e

        expected = config.assessment.questions_per_session
        if len(questions) != expected:
            logger.warning(
                "Generated %d questions for %s, expected %d", len(questions), subject, expected
            )

        return questions

    @staticmethod
    def _to_question(item: Dict[str, Any]) -> Question:
        if not isinstance(item, dict):
            raise ValueError(f"Expected a question object, got {type(item).__name__}")
        record = dict(item)
        # Generated ids ("q1", "1") are only unique within one response
        record["question_id"] = f"q-{uuid.uuid4()}"
        return Question.from_dict(record)
