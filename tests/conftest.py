"""Shared pytest fixtures and configuration."""

import itertools
from collections.abc import Callable, Iterator
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from registrar.events import EventManager
from registrar.grading.scale import grade_point
from registrar.store import (
    AcademicStore,
    Course,
    CourseSection,
    Enrollment,
    EnrollmentStatus,
    LetterGrade,
    Student,
)


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def store() -> Iterator[AcademicStore]:
    """Create an in-memory AcademicStore for testing."""
    store = AcademicStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def mock_event_manager() -> MagicMock:
    """Create a mock EventManager."""
    return MagicMock(spec=EventManager)


@pytest.fixture
def make_course(store: AcademicStore) -> Callable[..., Course]:
    """Factory for catalog courses with unique default codes."""
    counter = itertools.count(1)

    def _make(code: str | None = None, credits: int = 3, **kwargs: object) -> Course:
        code = code or f"GEN{next(counter):03d}"
        return store.create_course(code=code, name=f"Course {code}", credits=credits, **kwargs)

    return _make


@pytest.fixture
def make_section(store: AcademicStore) -> Callable[..., CourseSection]:
    """Factory for sections; defaults to fall 2024, 30 seats, no meeting times."""

    def _make(
        course: Course,
        semester: str = "fall",
        year: int = 2024,
        capacity: int = 30,
        section_number: int = 1,
        schedule: list[dict[str, str]] | None = None,
        is_active: bool = True,
    ) -> CourseSection:
        return store.create_section(
            course_id=course.id,
            semester=semester,
            year=year,
            capacity=capacity,
            section_number=section_number,
            schedule=schedule,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def make_student(store: AcademicStore) -> Callable[..., Student]:
    """Factory for students with unique student numbers."""
    counter = itertools.count(1)

    def _make(first_name: str = "Ada", last_name: str = "Lovelace", **kwargs: object) -> Student:
        return store.create_student(
            student_number=f"S{next(counter):05d}",
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    return _make


@pytest.fixture
def record_attempt(
    store: AcademicStore, make_section: Callable[..., CourseSection]
) -> Callable[..., Enrollment]:
    """Seed a finished attempt of a course directly in history.

    Creates a past-term section and a completed (or failed, for grade
    points below 1.0) enrollment carrying the given letter grade.
    """
    section_numbers = itertools.count(100)

    def _record(
        student: Student,
        course: Course,
        letter: str,
        semester: str = "spring",
        year: int = 2023,
        enrolled_at: datetime | None = None,
    ) -> Enrollment:
        section = make_section(
            course, semester=semester, year=year, section_number=next(section_numbers)
        )
        point = grade_point(letter)
        with store.transaction() as session:
            enrollment = Enrollment(
                student_id=student.id,
                section_id=section.id,
                enrollment_date=enrolled_at or datetime(year, 1, 15),
            )
            enrollment.enrollment_status = (
                EnrollmentStatus.COMPLETED if point >= 1.0 else EnrollmentStatus.FAILED
            )
            enrollment.letter_grade = LetterGrade(letter).value
            enrollment.grade_point = point
            store.add_enrollment(session, enrollment)
            enrollment_id = enrollment.id
        return store.get_enrollment(enrollment_id)

    return _record
