"""
Question model for multiple-choice assessments.

Questions are owned by the question bank and handed to a session whole; once a
session starts they are treated as immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

# Type aliases
Subject = str  # "História", "Filosofia", "Geografia", "Sociologia"
DifficultyLevel = str  # "easy", "medium", "hard"

DIFFICULTY_LEVELS = ("easy", "medium", "hard")


@dataclass(frozen=True)
class Question:
    """
    A single multiple-choice question.

    Attributes:
        question_id: Unique identifier
        text: Question command (the prompt shown to the student)
        options: Ordered option strings (rendered A, B, C, ...)
        correct_index: Index of the correct option
        explanation: Why the correct option is correct
        difficulty: Difficulty tag (easy/medium/hard)
        citation: Optional base text or quotation
        visual_description: Optional description of a chart, map or cartoon
    """
    question_id: str
    text: str
    options: Sequence[str]
    correct_index: int
    explanation: str = ""
    difficulty: DifficultyLevel = "medium"
    citation: Optional[str] = None
    visual_description: Optional[str] = None

    def __post_init__(self):
        # Options must not change under a running session
        object.__setattr__(self, "options", tuple(self.options))

    @property
    def option_count(self) -> int:
        return len(self.options)

    @staticmethod
    def option_letter(index: int) -> str:
        """Letter used to render an option index (0 -> 'A')."""
        return chr(ord("A") + index)

    def validate(self) -> None:
        """
        Validate question integrity.

        Raises:
            ValueError: If validation fails
        """
        if not self.text or not self.text.strip():
            raise ValueError(f"Question {self.question_id} text cannot be empty")

        if len(self.options) < 2:
            raise ValueError(
                f"Question {self.question_id} must have at least 2 options, got {len(self.options)}"
            )

        if not (0 <= self.correct_index < len(self.options)):
            raise ValueError(
                f"Question {self.question_id} correct_index {self.correct_index} "
                f"out of range [0, {len(self.options)})"
            )

        if self.difficulty not in DIFFICULTY_LEVELS:
            raise ValueError(
                f"Question {self.question_id} has invalid difficulty '{self.difficulty}', "
                f"expected one of {DIFFICULTY_LEVELS}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for persistence."""
        return {
            "question_id": self.question_id,
            "text": self.text,
            "options": list(self.options),
            "correct_index": self.correct_index,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
            "citation": self.citation,
            "visual_description": self.visual_description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """
        Build a question from a stored or generated record.

        Accepts both snake_case keys and the camelCase keys produced by the
        question-generation service (``id``, ``correctIndex``, ``visualDescription``).
        """
        try:
            return cls(
                question_id=str(data.get("question_id") or data["id"]),
                text=data["text"],
                options=list(data["options"]),
                correct_index=int(data["correct_index"] if "correct_index" in data else data["correctIndex"]),
                explanation=data.get("explanation") or "",
                difficulty=str(data.get("difficulty", "medium")).lower(),
                citation=data.get("citation"),
                visual_description=data.get("visual_description") or data.get("visualDescription"),
            )
        except KeyError as e:
            raise ValueError(f"Question record missing field: {e.args[0]}") from e


def validate_question_set(questions: List[Question]) -> None:
    """
    Validate an ordered question set before a session starts.

    Raises:
        ValueError: If the set is empty, has duplicate ids or any invalid question
    """
    if not questions:
        raise ValueError("Question set cannot be empty")

    seen = set()
    for question in questions:
        question.validate()
        if question.question_id in seen:
            raise ValueError(f"Duplicate question id: {question.question_id}")
        seen.add(question.question_id)
