"""
Utility modules for assessment sessions.

- attention: surface-attention signals and sources
- validation: JSON Schema validation of persisted records
- persistence: assessment result store and review locks
"""

from .attention import AttentionSignal, AttentionSource, ScriptedAttentionSource
from .validation import (
    AssessmentResultValidator,
    SchemaValidator,
    ValidationResult,
    validate_assessment_result,
)
from .persistence import AssessmentResultStore, slugify

__all__ = [
    # Attention
    "AttentionSignal",
    "AttentionSource",
    "ScriptedAttentionSource",
    # Validation
    "SchemaValidator",
    "AssessmentResultValidator",
    "ValidationResult",
    "validate_assessment_result",
    # Persistence
    "AssessmentResultStore",
    "slugify",
]
