"""
Schema validation utilities for persisted assessment data.

Provides JSON Schema validation with clear error messages plus record-level
consistency checks that a schema cannot express.

Features:
- Format validation (date-time)
- Deep copy to prevent mutations during repair
- Removal of unknown keys (additionalProperties: false)
- Score/answer consistency checks for assessment results
"""

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft7Validator, FormatChecker, ValidationError

try:
    from ..config import config
except ImportError:
    from src.config import config


class ValidationResult:
    """
    Result of a validation attempt.

    Attributes:
        valid: Whether data passed validation
        errors: List of error messages
        data: The validated data (may be modified if repair was attempted)
        repairs: List of repairs applied (for transparency)
    """

    def __init__(
        self,
        valid: bool,
        errors: list[str],
        data: Any = None,
        repairs: Optional[list[str]] = None,
    ):
        self.valid = valid
        self.errors = errors
        self.data = data
        self.repairs = repairs or []

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid

    def __str__(self) -> str:
        """Human-readable representation."""
        if self.valid:
            msg = "✓ Validation passed"
            if self.repairs:
                msg += f" (with {len(self.repairs)} repair(s))"
            return msg
        return f"✗ Validation failed with {len(self.errors)} error(s):\n" + "\n".join(
            f"  - {error}" for error in self.errors
        )


class SchemaValidator:
    """
    JSON Schema validator with auto-repair of unknown keys.

    Usage:
        validator = SchemaValidator("path/to/schema.json")
        result = validator.validate(data)
        if not result:
            print(result.errors)
    """

    def __init__(self, schema_path: Path | str):
        """
        Initialize validator with a schema file.

        Args:
            schema_path: Path to JSON Schema file
        """
        self.schema_path = Path(schema_path)
        with open(self.schema_path, "r", encoding="utf-8") as f:
            self.schema = json.load(f)
        self.validator = Draft7Validator(self.schema, format_checker=FormatChecker())

    def validate(self, data: dict, auto_repair: bool = False) -> ValidationResult:
        """
        Validate data against schema.

        Args:
            data: Data to validate
            auto_repair: If True, strip unknown keys and re-validate

        Returns:
            ValidationResult with validation status and any errors
        """
        errors = [self._format_error(error) for error in self.validator.iter_errors(data)]

        if errors:
            if auto_repair:
                repaired = deepcopy(data)
                repairs: list[str] = []
                self._strip_additional_props(repaired, self.schema, repairs)
                result = self.validate(repaired, auto_repair=False)
                result.repairs = repairs
                return result
            return ValidationResult(valid=False, errors=errors, data=data)

        return ValidationResult(valid=True, errors=[], data=data)

    def _format_error(self, error: ValidationError) -> str:
        """Convert ValidationError to a human-readable message with its location."""
        path = " -> ".join(str(p) for p in error.path) if error.path else "root"
        validator_name = getattr(error, "validator", "unknown")
        schema_path = "/".join(str(p) for p in error.schema_path)
        return (
            f"At '{path}': {error.message} "
            f"[validator={validator_name}, schema_path=/{schema_path}]"
        )

    def _strip_additional_props(
        self, obj: Any, schema: dict, repairs: list[str], path: str = "root"
    ):
        """Recursively remove keys not allowed by schema (additionalProperties: false)."""
        if not isinstance(schema, dict):
            return

        if isinstance(obj, dict) and "properties" in schema:
            allowed = set(schema.get("properties", {}).keys())
            if schema.get("additionalProperties") is False:
                for k in [k for k in list(obj.keys()) if k not in allowed]:
                    obj.pop(k, None)
                    repairs.append(f"Removed unknown key '{k}' at {path}")

            for k, subschema in schema.get("properties", {}).items():
                if k in obj:
                    self._strip_additional_props(obj[k], subschema, repairs, f"{path}.{k}")

        if isinstance(obj, list) and "items" in schema:
            for i, item in enumerate(obj):
                self._strip_additional_props(item, schema["items"], repairs, f"{path}[{i}]")


class AssessmentResultValidator(SchemaValidator):
    """
    Validator for persisted assessment results.

    Adds consistency checks on top of the schema:
    - answers has exactly total_questions slots
    - score never exceeds total_questions
    - blocked results carry score 0
    - blocked official results are flagged for review
    """

    def __init__(self, schema_path: Optional[Path | str] = None):
        if schema_path is None:
            schema_path = config.paths.assessment_result_schema
        super().__init__(schema_path)

    def validate(self, data: dict, auto_repair: bool = False) -> ValidationResult:
        result = super().validate(data, auto_repair=auto_repair)
        if not result.valid:
            return result

        record = result.data
        record_errors = []

        answers = record.get("answers", [])
        total = record.get("total_questions", 0)
        if len(answers) != total:
            record_errors.append(
                f"answers has {len(answers)} slot(s), expected total_questions={total}"
            )

        if record.get("score", 0) > total:
            record_errors.append(f"score {record.get('score')} exceeds total_questions {total}")

        if record.get("phase") == "blocked":
            if record.get("score") != 0:
                record_errors.append("blocked results must have score 0")
            if record.get("mode") == "official" and not record.get("flagged_for_review"):
                record_errors.append("blocked official results must be flagged for review")

        return ValidationResult(
            valid=not record_errors,
            errors=record_errors,
            data=record,
            repairs=result.repairs,
        )


def validate_assessment_result(data: dict, auto_repair: bool = False) -> ValidationResult:
    """
    Quick validation of an assessment result record.

    Example:
        result = validate_assessment_result(record)
        if not result:
            print("Errors:", result.errors)
    """
    return AssessmentResultValidator().validate(data, auto_repair=auto_repair)
