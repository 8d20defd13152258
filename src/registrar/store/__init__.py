"""Academic Store - Persistent storage for courses, sections, students and enrollments."""

from registrar.store.exceptions import (
    CourseExistsError,
    CourseNotFoundError,
    DepartmentNotFoundError,
    EnrollmentNotFoundError,
    InvalidRecordError,
    NotFoundError,
    PrerequisiteExistsError,
    RecordExistsError,
    SectionExistsError,
    SectionNotFoundError,
    StoreError,
    StudentExistsError,
    StudentNotFoundError,
    TransactionTimeoutError,
)
from registrar.store.models import (
    DEFAULT_MIN_GRADE,
    Course,
    CoursePrerequisite,
    CourseSection,
    Department,
    Enrollment,
    EnrollmentStatus,
    LetterGrade,
    Semester,
    Student,
)
from registrar.store.store import AcademicStore

__all__ = [
    "DEFAULT_MIN_GRADE",
    "AcademicStore",
    "Course",
    "CourseExistsError",
    "CourseNotFoundError",
    "CoursePrerequisite",
    "CourseSection",
    "Department",
    "DepartmentNotFoundError",
    "Enrollment",
    "EnrollmentNotFoundError",
    "EnrollmentStatus",
    "InvalidRecordError",
    "LetterGrade",
    "NotFoundError",
    "PrerequisiteExistsError",
    "RecordExistsError",
    "SectionExistsError",
    "SectionNotFoundError",
    "Semester",
    "StoreError",
    "Student",
    "StudentExistsError",
    "StudentNotFoundError",
    "TransactionTimeoutError",
]
