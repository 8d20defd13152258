"""Enrollment package - enroll/drop transactions and eligibility."""

from registrar.enrollment.exceptions import (
    CapacityExceededError,
    ConcurrencyConflictError,
    DropWindowExpiredError,
    DuplicateEnrollmentError,
    EnrollmentError,
    InactiveSectionError,
    InvalidEnrollmentStateError,
    PrerequisiteUnmetError,
    ScheduleConflictError,
)
from registrar.enrollment.models import CapacityInfo, EligibilityReport
from registrar.enrollment.orchestrator import DEFAULT_DROP_WINDOW_DAYS, EnrollmentOrchestrator

__all__ = [
    "DEFAULT_DROP_WINDOW_DAYS",
    "CapacityExceededError",
    "CapacityInfo",
    "ConcurrencyConflictError",
    "DropWindowExpiredError",
    "DuplicateEnrollmentError",
    "EligibilityReport",
    "EnrollmentError",
    "EnrollmentOrchestrator",
    "InactiveSectionError",
    "InvalidEnrollmentStateError",
    "PrerequisiteUnmetError",
    "ScheduleConflictError",
]
