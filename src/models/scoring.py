"""
Deterministic grading of multiple-choice answer sets.

One point per correct answer; no partial credit and no weighting by difficulty.
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from .question import Question

UNANSWERED = -1


def score_answers(questions: Sequence[Question], answers: Sequence[int]) -> int:
    """
    Count the answers that match each question's correct option.

    Args:
        questions: Ordered question set
        answers: Selected option index per question

    Returns:
        Integer in [0, len(questions)]

    Raises:
        ValueError: If the sets differ in length or any slot is unanswered
    """
    if len(questions) != len(answers):
        raise ValueError(
            f"Answer set length {len(answers)} does not match question count {len(questions)}"
        )

    unanswered = [i for i, answer in enumerate(answers) if answer == UNANSWERED]
    if unanswered:
        raise ValueError(f"Cannot score incomplete answer set, unanswered slots: {unanswered}")

    return sum(
        1 for question, answer in zip(questions, answers)
        if answer == question.correct_index
    )


def grade_on_scale(score: int, total: int, scale: float = 10.0) -> float:
    """Scale a correct-answer count to the display grade (score * scale / total)."""
    if total <= 0:
        raise ValueError(f"Total must be > 0, got {total}")
    return score * scale / total


def answer_review(questions: Sequence[Question], answers: Sequence[int]) -> List[Dict[str, Any]]:
    """Per-question rows for the post-session review screen."""
    rows = []
    for position, (question, answer) in enumerate(zip(questions, answers)):
        rows.append({
            "position": position + 1,
            "question_id": question.question_id,
            "selected": answer,
            "selected_letter": Question.option_letter(answer) if answer != UNANSWERED else None,
            "correct_index": question.correct_index,
            "correct_letter": Question.option_letter(question.correct_index),
            "is_correct": answer == question.correct_index,
            "explanation": question.explanation,
        })
    return rows
