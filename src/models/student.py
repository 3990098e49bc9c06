"""Student profile as seen by an assessment session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class StudentProfile:
    """
    Minimal student profile handed in by the identity collaborator.

    Attributes:
        student_id: Student identifier
        full_name: Display name
        grade: School year ("1ª", "2ª", "3ª")
        class_name: Optional class code (e.g. "13.01")
        cheating_locked: Set when a previous session ended in lockout
    """
    student_id: str
    full_name: str
    grade: str = "1ª"
    class_name: Optional[str] = None
    cheating_locked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "student_id": self.student_id,
            "full_name": self.full_name,
            "grade": self.grade,
            "class_name": self.class_name,
            "cheating_locked": self.cheating_locked,
        }
