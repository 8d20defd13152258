"""Data models for the Enrollment module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from registrar.exceptions import ErrorKind
from registrar.prerequisites import PrerequisiteCheck
from registrar.schedule import ConflictReport


@dataclass
class CapacityInfo:
    """Seat numbers of a section at the time of the check."""

    capacity: int
    enrolled_count: int

    @property
    def available_seats(self) -> int:
        return max(0, self.capacity - self.enrolled_count)

    @property
    def has_capacity(self) -> bool:
        return self.enrolled_count < self.capacity

    def to_dict(self) -> dict[str, Any]:
        return {
            "capacity": self.capacity,
            "enrolled_count": self.enrolled_count,
            "available_seats": self.available_seats,
            "has_capacity": self.has_capacity,
        }


@dataclass
class EligibilityReport:
    """Read-only outcome of the enrollment checks for (student, section).

    Attributes:
        student_id: The student's unique ID.
        section_id: The section's unique ID.
        course_code: Course code of the section.
        is_active: Whether the section and its course accept enrollments.
        capacity: Seat numbers.
        prerequisites: Prerequisite check result.
        conflicts: Schedule conflict report.
        duplicate_reason: Why an existing enrollment blocks this one, if it does.
        conflicts_allowed: Whether schedule conflicts are tolerated by policy.
    """

    student_id: str
    section_id: str
    course_code: str
    is_active: bool
    capacity: CapacityInfo
    prerequisites: PrerequisiteCheck
    conflicts: ConflictReport
    duplicate_reason: str | None = None
    conflicts_allowed: bool = False
    issues: list[ErrorKind] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.issues:
            self.issues = self._collect_issues()

    def _collect_issues(self) -> list[ErrorKind]:
        issues = []
        if not self.is_active:
            issues.append(ErrorKind.INACTIVE)
        if not self.capacity.has_capacity:
            issues.append(ErrorKind.CAPACITY)
        if self.duplicate_reason is not None:
            issues.append(ErrorKind.DUPLICATE)
        if not self.prerequisites.satisfied:
            issues.append(ErrorKind.PREREQUISITE)
        if self.conflicts.has_conflict and not self.conflicts_allowed:
            issues.append(ErrorKind.CONFLICT)
        return issues

    @property
    def eligible(self) -> bool:
        return not self.issues

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "section_id": self.section_id,
            "course_code": self.course_code,
            "eligible": self.eligible,
            "issues": [issue.value for issue in self.issues],
            "is_active": self.is_active,
            "capacity": self.capacity.to_dict(),
            "duplicate_reason": self.duplicate_reason,
            "prerequisites": {
                "satisfied": self.prerequisites.satisfied,
                "missing": [m.to_dict() for m in self.prerequisites.missing],
            },
            "schedule_conflict": {
                "has_conflict": self.conflicts.has_conflict,
                "allowed": self.conflicts_allowed,
                "days": self.conflicts.days,
                "conflicts": [c.to_dict() for c in self.conflicts.conflicts],
            },
        }
