"""
Assessment result persistence with validation.

Stores finished and blocked session results as JSON files, keyed for retrieval
by (student, subject, quarter, mode), and keeps the review lock of students
whose official session ended in lockout.
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    from ..config import config
    from ..models.assessment_result import AssessmentResult
    from .validation import AssessmentResultValidator
except ImportError:
    from src.config import config
    from src.models.assessment_result import AssessmentResult
    from src.utils.validation import AssessmentResultValidator

logger = logging.getLogger(__name__)

LOCKS_FILE = "locks.json"


def slugify(text: str) -> str:
    """ASCII, lowercase, hyphenated form of a name ("História" -> "historia")."""
    normalized = unicodedata.normalize("NFKD", str(text)).encode("ascii", "ignore").decode("ascii")
    slug = normalized.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s_]+", "-", slug)
    return slug.strip("-")[:50]


class AssessmentResultStore:
    """
    Handles persistence of assessment results.

    Features:
    - Validate records against assessment_result.schema.json
    - Save results to data/results/
    - Attach feedback that arrives after the score
    - Load results by (student, subject, quarter, mode) or by student
    - Review lock for students blocked by the integrity monitor
    """

    def __init__(self, results_dir: Path | str = None, validate: bool = True):
        """
        Initialize persistence manager.

        Args:
            results_dir: Directory to store results (default: config.paths.results_dir)
            validate: Whether to validate records before writing
        """
        self.results_dir = Path(results_dir) if results_dir else config.paths.results_dir
        self.results_dir.mkdir(parents=True, exist_ok=True)
        self.validator = AssessmentResultValidator() if validate else None

    def _result_path(self, result_id: str) -> Path:
        return self.results_dir / f"{result_id}.json"

    def _write(self, record: Dict[str, Any]) -> tuple[bool, Optional[List[str]]]:
        if self.validator is not None:
            validation = self.validator.validate(record)
            if not validation.valid:
                logger.error("Refusing to save invalid result %s: %s", record.get("result_id"), validation.errors)
                return False, validation.errors

        try:
            with open(self._result_path(record["result_id"]), "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error("Failed to save result %s: %s", record.get("result_id"), e)
            return False, [f"Failed to save result: {e}"]
        return True, None

    def save_result(
        self, result: AssessmentResult
    ) -> tuple[bool, Optional[str], Optional[List[str]]]:
        """
        Save an assessment result to disk.

        Args:
            result: Finished or blocked result

        Returns:
            Tuple of (success, result_id, errors)
        """
        record = result.to_dict()
        success, errors = self._write(record)
        if not success:
            return False, None, errors

        logger.info(
            "Saved result %s (student=%s subject=%s quarter=%s mode=%s phase=%s score=%d)",
            result.result_id, result.student_id, result.subject, result.quarter,
            result.mode.value, result.phase.value, result.score,
        )
        return True, result.result_id, None

    def attach_feedback(self, result_id: str, feedback: str) -> bool:
        """
        Store feedback that was generated after the result was saved.

        Returns:
            True if the record was found and updated
        """
        record = self.load_by_id(result_id)
        if record is None:
            logger.warning("Cannot attach feedback, result %s not found", result_id)
            return False

        record["feedback"] = feedback
        record["updated_at"] = datetime.now(timezone.utc).isoformat()
        success, _ = self._write(record)
        return success

    def load_by_id(self, result_id: str) -> Optional[Dict[str, Any]]:
        """Load a result record by id, or None if missing or unreadable."""
        filepath = self._result_path(result_id)
        if not filepath.exists():
            return None
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load result %s: %s", result_id, e)
            return None

    def _iter_records(self):
        for filepath in sorted(self.results_dir.glob("ar-*.json")):
            try:
                with open(filepath, "r", encoding="utf-8") as f:
                    yield json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load %s: %s", filepath, e)

    def load_results_by_student(self, student_id: str) -> List[Dict[str, Any]]:
        """
        Load all results of a student.

        Returns:
            List of result dicts, newest first
        """
        results = [r for r in self._iter_records() if r.get("student_id") == student_id]
        results.sort(key=lambda r: r.get("created_at", ""), reverse=True)
        return results

    def load_result(
        self,
        student_id: str,
        subject: str,
        quarter: Optional[int],
        mode: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Load the newest result for (student, subject, quarter, mode).

        Returns:
            Result dict, or None if the student has no such result
        """
        mode = getattr(mode, "value", mode)
        for record in self.load_results_by_student(student_id):
            if (
                record.get("subject") == subject
                and record.get("quarter") == quarter
                and record.get("mode") == mode
            ):
                return record
        return None

    # ==================== Review lock ====================

    def _load_locks(self) -> Dict[str, Any]:
        path = self.results_dir / LOCKS_FILE
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load review locks: %s", e)
            return {}

    def _save_locks(self, locks: Dict[str, Any]) -> None:
        with open(self.results_dir / LOCKS_FILE, "w", encoding="utf-8") as f:
            json.dump(locks, f, indent=2, ensure_ascii=False)

    def lock_student(self, student_id: str, result_id: Optional[str], strikes: int) -> None:
        """Lock a student until an administrator reviews the blocked session."""
        locks = self._load_locks()
        locks[student_id] = {
            "result_id": result_id,
            "strikes": strikes,
            "locked_at": datetime.now(timezone.utc).isoformat(),
        }
        self._save_locks(locks)
        logger.warning("Student %s locked pending review (%d strikes)", student_id, strikes)

    def is_student_locked(self, student_id: str) -> bool:
        return student_id in self._load_locks()

    def unlock_student(self, student_id: str) -> bool:
        """
        Clear a review lock (administrator decision).

        Returns:
            True if the student was locked
        """
        locks = self._load_locks()
        if locks.pop(student_id, None) is None:
            return False
        self._save_locks(locks)
        logger.info("Student %s unlocked after review", student_id)
        return True
