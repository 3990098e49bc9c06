"""
Configuration management for the proctored assessment service.

This module centralizes all configuration settings following 12-factor app principles:
- Secrets loaded from environment variables
- Sensible defaults for development
- Single source of truth for all settings
- Thread-safe token tracking
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_quarters(name: str, default: str) -> tuple:
    raw = os.getenv(name, default)
    return tuple(int(part) for part in raw.split(",") if part.strip())


@dataclass
class ModelConfig:
    """LLM model configuration with OpenAI API settings."""

    api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    model_name: str = field(
        default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    )
    base_url: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENAI_BASE_URL")
    )

    # Agent-specific temperatures
    feedback_temperature: float = 0.7
    question_temperature: float = 0.5

    max_tokens: int = 2000
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "60.0"))
    )
    # Upper bound on how long a finished session waits for generated feedback
    feedback_timeout: float = field(
        default_factory=lambda: float(os.getenv("FEEDBACK_TIMEOUT", "30.0"))
    )


@dataclass
class IntegrityConfig:
    """Proctoring policy for official sessions."""

    strike_threshold: int = field(
        default_factory=lambda: int(os.getenv("STRIKE_THRESHOLD", "6"))
    )
    # Strike count above which the UI highlights the counter
    warning_level: int = 3


@dataclass
class AssessmentConfig:
    """Assessment and question set configuration."""

    subjects: tuple = ("História", "Filosofia", "Geografia", "Sociologia")
    grades: tuple = ("1ª", "2ª", "3ª")
    difficulty_levels: tuple = ("easy", "medium", "hard")

    questions_per_session: int = 5
    options_per_question: int = 5
    # ENEM/TRI mix: 1 easy, 3 medium, 1 hard
    difficulty_mix: dict = field(
        default_factory=lambda: {"easy": 1, "medium": 3, "hard": 1}
    )

    # Display grade is score * grade_scale / total
    grade_scale: float = 10.0

    persist_mock_results: bool = field(
        default_factory=lambda: _env_bool("PERSIST_MOCK_RESULTS")
    )


@dataclass
class ScheduleConfig:
    """Academic calendar: which quarter (bimester) is active and which are released."""

    active_quarter: int = field(
        default_factory=lambda: int(os.getenv("ACTIVE_QUARTER", "1"))
    )
    locked_quarters: tuple = field(
        default_factory=lambda: _env_quarters("LOCKED_QUARTERS", "2,3,4")
    )

    def is_locked(self, quarter: int) -> bool:
        """Whether official assessments for a quarter are still unreleased."""
        return quarter in self.locked_quarters


@dataclass
class PathConfig:
    """File system paths - single source of truth for all directories."""

    project_root: Path = field(default_factory=lambda: Path(__file__).parent.parent)
    data_dir: Path = field(default_factory=lambda: Path(__file__).parent.parent / "data")

    results_dir: Path = field(init=False)
    exams_dir: Path = field(init=False)
    topics_dir: Path = field(init=False)
    logs_dir: Path = field(init=False)

    schemas_dir: Path = field(init=False)
    assessment_result_schema: Path = field(init=False)

    def __post_init__(self):
        """Initialize computed paths."""
        self.results_dir = self.data_dir / "results"
        self.exams_dir = self.data_dir / "exams"
        self.topics_dir = self.data_dir / "topics"
        self.logs_dir = self.data_dir / "logs"
        self.schemas_dir = self.project_root / "schemas"
        self.assessment_result_schema = self.schemas_dir / "assessment_result.schema.json"

    def prepare_filesystem(self):
        """
        Create directories if they don't exist.

        Separated from __post_init__ to avoid side-effects on import.
        Call this explicitly from your app entrypoint.
        """
        for directory in [
            self.data_dir,
            self.results_dir,
            self.exams_dir,
            self.topics_dir,
            self.logs_dir,
        ]:
            directory.mkdir(parents=True, exist_ok=True)


@dataclass
class LoggingConfig:
    """Logging and metrics configuration with env-driven pricing."""

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    log_tokens: bool = True

    cost_per_1k_input: float = field(
        default_factory=lambda: float(os.getenv("COST_PER_1K_INPUT", "0.00015"))
    )
    cost_per_1k_output: float = field(
        default_factory=lambda: float(os.getenv("COST_PER_1K_OUTPUT", "0.0006"))
    )


class Config:
    """
    Main configuration class. Singleton pattern.

    Usage:
        from src.config import config

        threshold = config.integrity.strike_threshold
        timeout = config.model.feedback_timeout

        # Prepare filesystem (call once at startup)
        config.prepare_fs()
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.paths = PathConfig()
            cls._instance.model = ModelConfig()
            cls._instance.integrity = IntegrityConfig()
            cls._instance.assessment = AssessmentConfig()
            cls._instance.schedule = ScheduleConfig()
            cls._instance.logging = LoggingConfig()
        return cls._instance

    def prepare_fs(self):
        """Prepare filesystem (create directories). Call once at startup."""
        self.paths.prepare_filesystem()

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not self.model.api_key:
            errors.append("OPENAI_API_KEY not set in environment")

        if self.model.feedback_timeout <= 0:
            errors.append(f"feedback_timeout must be > 0, got {self.model.feedback_timeout}")

        if self.model.request_timeout <= 0:
            errors.append(f"request_timeout must be > 0, got {self.model.request_timeout}")

        if self.integrity.strike_threshold < 1:
            errors.append(
                f"strike_threshold must be >= 1, got {self.integrity.strike_threshold}"
            )

        if self.assessment.questions_per_session < 1:
            errors.append(
                f"questions_per_session must be >= 1, got {self.assessment.questions_per_session}"
            )

        mix_total = sum(self.assessment.difficulty_mix.values())
        if mix_total != self.assessment.questions_per_session:
            errors.append(
                f"difficulty_mix adds up to {mix_total}, expected {self.assessment.questions_per_session}"
            )

        if self.assessment.grade_scale <= 0:
            errors.append(f"grade_scale must be > 0, got {self.assessment.grade_scale}")

        if self.schedule.active_quarter not in (1, 2, 3, 4):
            errors.append(f"active_quarter must be in 1..4, got {self.schedule.active_quarter}")

        for quarter in self.schedule.locked_quarters:
            if quarter not in (1, 2, 3, 4):
                errors.append(f"locked quarter must be in 1..4, got {quarter}")

        if not isinstance(logging.getLevelName(self.logging.log_level.upper()), int):
            errors.append(f"Unknown log level: {self.logging.log_level}")

        if not self.paths.assessment_result_schema.exists():
            errors.append(
                f"Assessment result schema not found: {self.paths.assessment_result_schema}"
            )

        return errors


# Global config instance
config = Config()


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once, from the application entrypoint."""
    logging.basicConfig(
        level=(level or config.logging.log_level).upper(),
        format=config.logging.log_format,
    )


class TokenTracker:
    """
    Thread-safe tracker for token usage and estimated costs.

    Usage:
        from src.config import token_tracker

        token_tracker.add_tokens(input_tokens=100, output_tokens=50)
        print(token_tracker.summary())
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.input_tokens = 0
        self.output_tokens = 0
        self.total_calls = 0

    def add_tokens(self, input_tokens: int, output_tokens: int):
        """Add tokens from an API call (thread-safe)."""
        with self._lock:
            self.input_tokens += input_tokens
            self.output_tokens += output_tokens
            self.total_calls += 1

    def record_usage(self, message) -> None:
        """Record the usage_metadata of a LangChain AIMessage, if it has any."""
        usage = getattr(message, "usage_metadata", None)
        if not config.logging.log_tokens or not isinstance(usage, dict):
            return
        self.add_tokens(
            int(usage.get("input_tokens", 0)),
            int(usage.get("output_tokens", 0)),
        )

    def total_tokens(self) -> int:
        """Get total tokens used (thread-safe)."""
        with self._lock:
            return self.input_tokens + self.output_tokens

    def get_stats(self) -> dict:
        """Get current stats as dict (thread-safe)."""
        with self._lock:
            input_tokens = self.input_tokens
            output_tokens = self.output_tokens
            total_calls = self.total_calls

        est_cost = (
            (input_tokens / 1000) * config.logging.cost_per_1k_input
            + (output_tokens / 1000) * config.logging.cost_per_1k_output
        )
        return {
            "calls": total_calls,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
            "estimated_cost": est_cost,
        }

    def summary(self) -> str:
        """Get formatted summary of usage."""
        stats = self.get_stats()
        return (
            "Token Usage Summary:\n"
            f"  API Calls: {stats['calls']}\n"
            f"  Input Tokens: {stats['input_tokens']:,}\n"
            f"  Output Tokens: {stats['output_tokens']:,}\n"
            f"  Total Tokens: {stats['total_tokens']:,}\n"
            f"  Estimated Cost: ${stats['estimated_cost']:.4f}"
        )

    def reset(self):
        """Reset counters (thread-safe)."""
        with self._lock:
            self.input_tokens = 0
            self.output_tokens = 0
            self.total_calls = 0


# Global token tracker instance
token_tracker = TokenTracker()
