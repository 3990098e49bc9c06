"""
Question bank - supplies the question set for a session.

Official exams are prepared by the coordination ahead of time and stored per
(subject, grade, quarter). Mock exams are generated on demand from the topics the
teacher planned for the quarter. Either way the caller gets an ordered question
list or QuestionSetUnavailable, and no session starts on failure.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .agents.question_generator import QuestionGenerator
from .config import config
from .errors import QuestionSetUnavailable
from .models.assessment_result import SessionMode
from .models.question import Question, validate_question_set
from .utils.persistence import slugify

logger = logging.getLogger(__name__)


class QuestionBank:
    """
    File-backed question bank.

    Layout:
        exams/<subject>_<grade>_q<quarter>.json   official exam (list of questions)
        topics/<subject>_<grade>_q<quarter>.json  planned topics entries, newest last
    """

    def __init__(
        self,
        exams_dir: Optional[Path] = None,
        topics_dir: Optional[Path] = None,
        generator: Optional[QuestionGenerator] = None,
    ):
        """
        Initialize question bank.

        Args:
            exams_dir: Directory of official exams (default: config.paths.exams_dir)
            topics_dir: Directory of planned topics (default: config.paths.topics_dir)
            generator: Mock exam generator (built lazily when first needed)
        """
        self.exams_dir = Path(exams_dir) if exams_dir else config.paths.exams_dir
        self.topics_dir = Path(topics_dir) if topics_dir else config.paths.topics_dir
        self._generator = generator

    @property
    def generator(self) -> QuestionGenerator:
        if self._generator is None:
            self._generator = QuestionGenerator()
        return self._generator

    @staticmethod
    def _key(subject: str, grade: str, quarter: int) -> str:
        return f"{slugify(subject)}_{slugify(grade) or 'grade'}_q{quarter}.json"

    def load_questions(
        self,
        subject: str,
        grade: str,
        quarter: int,
        mode: SessionMode,
    ) -> List[Question]:
        """
        Get the question set for a session.

        Args:
            subject: Subject name
            grade: School year of the student
            quarter: Academic quarter (1-4)
            mode: Official or mock

        Returns:
            Ordered, validated question list

        Raises:
            QuestionSetUnavailable: If no question set can be provided
        """
        if subject not in config.assessment.subjects:
            raise QuestionSetUnavailable(
                f"Unknown subject: {subject}", subject=subject, quarter=quarter
            )

        if SessionMode(mode) is SessionMode.OFFICIAL:
            return self._load_official(subject, grade, quarter)
        return self._generate_mock(subject, grade, quarter)

    def _load_official(self, subject: str, grade: str, quarter: int) -> List[Question]:
        path = self.exams_dir / self._key(subject, grade, quarter)
        if not path.exists():
            raise QuestionSetUnavailable(
                "Atenção: Esta prova ainda não foi gerada pela coordenação para este bimestre.",
                subject=subject,
                quarter=quarter,
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            questions = [Question.from_dict(item) for item in payload.get("questions", [])]
            validate_question_set(questions)
        except (OSError, json.JSONDecodeError, ValueError) as e:
            logger.error("Official exam %s is unusable: %s", path.name, e)
            raise QuestionSetUnavailable(
                f"Official exam for {subject} (quarter {quarter}) is unusable: {e}",
                subject=subject,
                quarter=quarter,
            ) from e

        logger.info("Loaded official exam %s (%d questions)", path.name, len(questions))
        return questions

    def _generate_mock(self, subject: str, grade: str, quarter: int) -> List[Question]:
        topics = self.latest_topics(subject, grade, quarter)
        if not topics:
            raise QuestionSetUnavailable(
                f"Não há conteúdo de planejamento cadastrado para {subject} "
                f"no {quarter}º bimestre para gerar o simulado.",
                subject=subject,
                quarter=quarter,
            )

        questions = self.generator.generate_exam(subject, topics, grade)
        logger.info("Generated mock exam for %s quarter %d (%d questions)", subject, quarter, len(questions))
        return questions

    def latest_topics(self, subject: str, grade: str, quarter: int) -> Optional[str]:
        """Most recently planned topics text, or None."""
        path = self.topics_dir / self._key(subject, grade, quarter)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                entries = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load topics %s: %s", path.name, e)
            return None

        entries = [e for e in entries if (e.get("content") or "").strip()]
        if not entries:
            return None
        entries.sort(key=lambda e: e.get("created_at", ""))
        return entries[-1]["content"]

    def save_official_exam(
        self,
        subject: str,
        grade: str,
        quarter: int,
        questions: List[Question],
    ) -> Path:
        """
        Store the official exam for (subject, grade, quarter), replacing any previous one.

        Raises:
            ValueError: If the question set is invalid
        """
        validate_question_set(questions)
        self.exams_dir.mkdir(parents=True, exist_ok=True)
        path = self.exams_dir / self._key(subject, grade, quarter)
        payload = {
            "subject": subject,
            "grade": grade,
            "quarter": quarter,
            "questions": [q.to_dict() for q in questions],
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        return path

    def save_topics(self, subject: str, grade: str, quarter: int, content: str, teacher_id: Optional[str] = None) -> Path:
        """Append a planned-topics entry for (subject, grade, quarter)."""
        self.topics_dir.mkdir(parents=True, exist_ok=True)
        path = self.topics_dir / self._key(subject, grade, quarter)

        entries = []
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                entries = json.load(f)

        entries.append({
            "teacher_id": teacher_id,
            "content": content,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        with open(path, "w", encoding="utf-8") as f:
            json.dump(entries, f, indent=2, ensure_ascii=False)
        return path
