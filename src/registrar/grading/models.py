"""Data models for the Grading module."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Components every grading weight set must define
COMPONENTS = ("midterm", "final", "homework")

DEFAULT_WEIGHTS = {"midterm": 0.30, "final": 0.50, "homework": 0.20}

# Used instead of DEFAULT_WEIGHTS when no homework grade exists
NO_HOMEWORK_WEIGHTS = {"midterm": 0.40, "final": 0.60}


class GradeComponents(BaseModel):
    """Grade components submitted for an enrollment.

    Omitted components stay unchanged; an explicit None clears one.
    """

    model_config = ConfigDict(extra="forbid")

    midterm: float | None = Field(default=None, ge=0, le=100)
    final: float | None = Field(default=None, ge=0, le=100)
    homework: float | None = Field(default=None, ge=0, le=100)

    def supplied(self) -> dict[str, float | None]:
        """Components explicitly provided, including cleared ones."""
        return self.model_dump(exclude_unset=True)


@dataclass
class CourseGrade:
    """One graded enrollment as it appears in a GPA breakdown."""

    enrollment_id: str
    course_code: str
    course_name: str
    credits: int
    letter_grade: str | None
    grade_point: float
    is_repeat: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "enrollment_id": self.enrollment_id,
            "code": self.course_code,
            "name": self.course_name,
            "credits": self.credits,
            "letter_grade": self.letter_grade,
            "grade_point": self.grade_point,
            "is_repeat": self.is_repeat,
        }


@dataclass
class SemesterGPA:
    """Credit-weighted GPA for a single term."""

    semester: str
    year: int
    gpa: float
    total_credits: int
    courses: list[CourseGrade] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "semester": self.semester,
            "year": self.year,
            "gpa": self.gpa,
            "total_credits": self.total_credits,
            "courses": [c.to_dict() for c in self.courses],
        }


@dataclass
class CGPAReport:
    """Cumulative GPA with a chronological per-semester breakdown."""

    student_id: str
    cgpa: float
    total_credits: int
    semesters: list[SemesterGPA] = field(default_factory=list)

    @property
    def latest_gpa(self) -> float:
        """GPA of the most recent graded semester, 0.0 if none."""
        return self.semesters[-1].gpa if self.semesters else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "cgpa": self.cgpa,
            "total_credits": self.total_credits,
            "semesters": [s.to_dict() for s in self.semesters],
        }


@dataclass
class Transcript:
    """Transcript data; rendering to HTML/PDF happens outside the engine."""

    student_id: str
    student_number: str
    first_name: str
    last_name: str
    email: str | None
    department: str | None
    cgpa: float
    total_credits: int
    semesters: list[SemesterGPA]
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "student": {
                "id": self.student_id,
                "student_number": self.student_number,
                "first_name": self.first_name,
                "last_name": self.last_name,
                "email": self.email,
                "department": self.department,
            },
            "academic": {"cgpa": self.cgpa, "total_credits": self.total_credits},
            "semesters": [s.to_dict() for s in self.semesters],
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass
class GradeEntryResult:
    """Outcome of one successfully applied bulk grade entry."""

    enrollment_id: str
    status: str
    letter_grade: str | None
    grade_point: float | None


@dataclass
class GradeEntryError:
    """A bulk grade entry that could not be applied."""

    enrollment_id: str | None
    kind: str
    message: str


@dataclass
class BulkGradeResult:
    """Per-entry results of a bulk grade submission."""

    results: list[GradeEntryResult] = field(default_factory=list)
    errors: list[GradeEntryError] = field(default_factory=list)
