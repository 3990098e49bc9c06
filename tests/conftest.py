"""
Shared pytest fixtures and configuration for assessment session tests.

This file is automatically discovered by pytest and provides
fixtures available to all tests.
"""

import pytest
import sys
from pathlib import Path

# Make the project root importable so tests can use `from src...`
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.models.question import Question


def build_questions(count: int = 5, correct_index: int = 1):
    """Build a valid question set where every correct answer is `correct_index`."""
    difficulties = ["easy", "medium", "medium", "medium", "hard"]
    return [
        Question(
            question_id=f"q-{i + 1}",
            text=f"Questão {i + 1}: qual alternativa está correta?",
            options=["A", "B", "C", "D", "E"],
            correct_index=correct_index,
            explanation=f"A alternativa B é a correta na questão {i + 1}.",
            difficulty=difficulties[i % len(difficulties)],
            citation="Texto base da questão." if i == 0 else None,
        )
        for i in range(count)
    ]


@pytest.fixture
def sample_questions():
    """
    Fixture providing a 5-question set (correct answer: index 1 everywhere).

    Returns:
        list[Question]: A valid official-exam sized question set
    """
    return build_questions()


@pytest.fixture
def sample_exam_payload():
    """
    Fixture providing a generated exam payload in the service's camelCase format.

    Returns:
        list[dict]: Five question records as returned by the question-generation model
    """
    return [
        {
            "id": f"{i + 1}",
            "citation": "“O homem é a medida de todas as coisas.” (Protágoras)",
            "text": f"Com base no texto, a afirmação {i + 1} expressa:",
            "options": ["relativismo", "dogmatismo", "ceticismo", "empirismo", "idealismo"],
            "correctIndex": 0,
            "explanation": "Protágoras é associado ao relativismo sofista.",
            "difficulty": level,
        }
        for i, level in enumerate(["easy", "medium", "medium", "medium", "hard"])
    ]


@pytest.fixture(autouse=True)
def reset_token_tracker():
    """
    Auto-fixture to reset token tracker before each test.

    This ensures tests don't interfere with each other.
    """
    from src.config import token_tracker

    token_tracker.reset()
    yield
    token_tracker.reset()


@pytest.fixture(autouse=True)
def offline_model_config(monkeypatch):
    """
    Auto-fixture giving the LLM clients a dummy key.

    Agents build ChatOpenAI eagerly; tests patch the client and never reach the network.
    """
    from src.config import config

    monkeypatch.setattr(config.model, "api_key", "test-key")


# Pytest hooks for better test output


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
