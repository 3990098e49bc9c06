"""
AI agents for assessment sessions.

This module contains LangChain-based agents:
- Feedback generation (pedagogical explanation of a finished session)
- Question generation (ENEM-style mock exams)

Note: AssessmentSession is in src/models (pure logic, not an agent)
"""

from .feedback_agent import FeedbackAgent
from .feedback_orchestrator import FEEDBACK_FALLBACK, FeedbackOrchestrator
from .question_generator import QuestionGenerator

__all__ = [
    "FeedbackAgent",
    "FeedbackOrchestrator",
    "FEEDBACK_FALLBACK",
    "QuestionGenerator",
]
