"""Custom exceptions for the academic store."""

from registrar.exceptions import ErrorKind, RegistrarError


class StoreError(RegistrarError):
    """Base exception for store errors."""

    kind = ErrorKind.STORAGE


class TransactionTimeoutError(StoreError):
    """The transaction could not acquire its lock or finish within its timeout."""

    kind = ErrorKind.TIMEOUT


class NotFoundError(StoreError):
    """Requested record does not exist."""

    kind = ErrorKind.NOT_FOUND


class CourseNotFoundError(NotFoundError):
    """Course with given ID or code does not exist."""


class SectionNotFoundError(NotFoundError):
    """Course section with given ID does not exist."""


class StudentNotFoundError(NotFoundError):
    """Student with given ID does not exist."""


class EnrollmentNotFoundError(NotFoundError):
    """Enrollment with given ID does not exist."""


class DepartmentNotFoundError(NotFoundError):
    """Department with given ID does not exist."""


class RecordExistsError(StoreError):
    """A record with the same unique key already exists."""

    kind = ErrorKind.DUPLICATE


class CourseExistsError(RecordExistsError):
    """Course with given code already exists."""


class SectionExistsError(RecordExistsError):
    """Section with the same number already exists for the course in that term."""


class StudentExistsError(RecordExistsError):
    """Student with given student number already exists."""


class PrerequisiteExistsError(RecordExistsError):
    """Prerequisite edge already exists."""


class InvalidRecordError(StoreError):
    """Record fields fail validation (bad grade floor, malformed time slot, etc.)."""

    kind = ErrorKind.INVALID_STATE
