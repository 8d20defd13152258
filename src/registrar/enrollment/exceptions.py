"""Exceptions for the Enrollment module."""

from registrar.exceptions import ErrorKind, RegistrarError


class EnrollmentError(RegistrarError):
    """Base exception for enrollment errors."""


class InactiveSectionError(EnrollmentError):
    """The section (or its course) is not open for enrollment."""

    kind = ErrorKind.INACTIVE


class CapacityExceededError(EnrollmentError):
    """The section has no free seat."""

    kind = ErrorKind.CAPACITY


class ConcurrencyConflictError(CapacityExceededError):
    """The last seat was taken between the capacity check and the seat update."""

    kind = ErrorKind.CONCURRENCY


class DuplicateEnrollmentError(EnrollmentError):
    """The student already holds or held a seat that blocks this enrollment."""

    kind = ErrorKind.DUPLICATE


class PrerequisiteUnmetError(EnrollmentError):
    """One or more prerequisites are missing; details carry the missing list."""

    kind = ErrorKind.PREREQUISITE


class ScheduleConflictError(EnrollmentError):
    """The section overlaps the student's schedule; details carry the pairs."""

    kind = ErrorKind.CONFLICT


class DropWindowExpiredError(EnrollmentError):
    """The drop window for the enrollment has closed."""

    kind = ErrorKind.WINDOW_EXPIRED


class InvalidEnrollmentStateError(EnrollmentError):
    """The enrollment is not in a state that allows the requested transition."""

    kind = ErrorKind.INVALID_STATE
