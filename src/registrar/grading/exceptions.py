"""Exceptions for the Grading module."""

from registrar.exceptions import ErrorKind, RegistrarError


class GradingError(RegistrarError):
    """Base exception for grading errors."""


class InvalidGradeRangeError(GradingError):
    """A grade component is outside 0-100."""

    kind = ErrorKind.INVALID_GRADE


class GradingNotAllowedError(GradingError):
    """The enrollment is in a state that cannot receive grades."""

    kind = ErrorKind.INVALID_STATE
