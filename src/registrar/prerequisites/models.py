"""Data models for the Prerequisites module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PrerequisiteRequirement:
    """A course in a prerequisite closure with its own minimum grade.

    Attributes:
        course_id: The prerequisite course's ID.
        code: Course code.
        name: Course name.
        credits: Credit hours.
        min_grade: Lowest acceptable letter grade on the edge leading to it.
    """

    course_id: str
    code: str
    name: str
    credits: int
    min_grade: str


@dataclass
class MissingPrerequisite:
    """A requirement the student has not met.

    Attributes:
        course_id: The prerequisite course's ID.
        code: Course code.
        name: Course name.
        required_grade: Minimum letter grade needed.
        best_grade: Best completed grade so far, None if never completed.
    """

    course_id: str
    code: str
    name: str
    required_grade: str
    best_grade: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "code": self.code,
            "name": self.name,
            "required_grade": self.required_grade,
            "best_grade": self.best_grade,
        }


@dataclass
class PrerequisiteCheck:
    """Outcome of checking a student's history against a course's closure."""

    course_id: str
    missing: list[MissingPrerequisite] = field(default_factory=list)

    @property
    def satisfied(self) -> bool:
        return not self.missing
