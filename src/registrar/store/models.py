"""SQLAlchemy models for the academic store."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class Semester(StrEnum):
    """Academic term within a year."""

    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"

    @property
    def order(self) -> int:
        """Chronological position within the year."""
        return _SEMESTER_ORDER[self]


_SEMESTER_ORDER = {Semester.SPRING: 1, Semester.SUMMER: 2, Semester.FALL: 3}


class EnrollmentStatus(StrEnum):
    """Enrollment state enum."""

    PENDING = "pending"
    ENROLLED = "enrolled"
    DROPPED = "dropped"
    COMPLETED = "completed"
    FAILED = "failed"
    WITHDRAWN = "withdrawn"
    REJECTED = "rejected"


class LetterGrade(StrEnum):
    """Nine-band letter grade scale, declared lowest to highest."""

    FF = "FF"
    FD = "FD"
    DD = "DD"
    DC = "DC"
    CC = "CC"
    CB = "CB"
    BB = "BB"
    BA = "BA"
    AA = "AA"

    @property
    def rank(self) -> int:
        """Position on the scale, 0 for FF up to 8 for AA."""
        return _GRADE_RANK[self]


_GRADE_RANK = {grade: index for index, grade in enumerate(LetterGrade)}

# Lowest passing grade, used when a prerequisite edge has no explicit floor
DEFAULT_MIN_GRADE = LetterGrade.DD


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form SQLite round-trips."""
    return datetime.now(UTC).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Department(Base):
    """Academic department owning courses and students."""

    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __init__(self, code: str, name: str, id: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.code = code
        self.name = name

    def __repr__(self) -> str:
        return f"<Department(id={self.id!r}, code={self.code!r})>"


class Course(Base):
    """Course model - catalog entry shared by all its sections."""

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    ects: Mapped[int] = mapped_column(Integer, nullable=False)
    department_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("departments.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("credits >= 1 AND credits <= 10", name="ck_courses_credits"),
        CheckConstraint("ects >= 1 AND ects <= 30", name="ck_courses_ects"),
    )

    def __init__(
        self,
        code: str,
        name: str,
        id: str | None = None,
        description: str = "",
        credits: int = 3,
        ects: int = 5,
        department_id: str | None = None,
        is_active: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.code = code
        self.name = name
        self.description = description
        self.credits = credits
        self.ects = ects
        self.department_id = department_id
        self.is_active = is_active

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, code={self.code!r})>"


class CoursePrerequisite(Base):
    """Directed edge: course requires prerequisite_course with at least min_grade."""

    __tablename__ = "course_prerequisites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    prerequisite_course_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("courses.id"), nullable=False
    )
    min_grade: Mapped[str] = mapped_column(String(2), nullable=False)

    prerequisite_course: Mapped[Course] = relationship(
        "Course", foreign_keys=[prerequisite_course_id], lazy="joined"
    )

    __table_args__ = (
        UniqueConstraint("course_id", "prerequisite_course_id", name="uq_prerequisite_edge"),
    )

    def __init__(
        self,
        course_id: str,
        prerequisite_course_id: str,
        id: str | None = None,
        min_grade: str = DEFAULT_MIN_GRADE.value,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.course_id = course_id
        self.prerequisite_course_id = prerequisite_course_id
        self.min_grade = min_grade

    def __repr__(self) -> str:
        return (
            f"<CoursePrerequisite(course_id={self.course_id!r}, "
            f"prerequisite_course_id={self.prerequisite_course_id!r}, "
            f"min_grade={self.min_grade!r})>"
        )


class CourseSection(Base):
    """One offering of a course in a given term.

    enrolled_count is only ever changed through the store's conditional
    increment/decrement statements.
    """

    __tablename__ = "course_sections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False)
    section_number: Mapped[int] = mapped_column(Integer, nullable=False)
    semester: Mapped[str] = mapped_column(String(10), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False)
    # [{"day": "monday", "start_time": "09:00", "end_time": "10:30"}]
    schedule_json: Mapped[list[dict[str, str]]] = mapped_column(JSON, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    course: Mapped[Course] = relationship("Course", lazy="joined")

    __table_args__ = (
        UniqueConstraint(
            "course_id", "section_number", "semester", "year", name="uq_section_per_term"
        ),
        CheckConstraint("capacity >= 0", name="ck_sections_capacity"),
        CheckConstraint(
            "enrolled_count >= 0 AND enrolled_count <= capacity",
            name="ck_sections_enrolled_count",
        ),
    )

    def __init__(
        self,
        course_id: str,
        semester: str,
        year: int,
        id: str | None = None,
        section_number: int = 1,
        capacity: int = 30,
        schedule_json: list[dict[str, str]] | None = None,
        is_active: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.course_id = course_id
        self.semester = semester
        self.year = year
        self.section_number = section_number
        self.capacity = capacity
        self.enrolled_count = 0
        self.schedule_json = list(schedule_json or [])
        self.is_active = is_active

    @property
    def term(self) -> Semester:
        """Get semester as Semester enum."""
        return Semester(self.semester)

    @property
    def available_seats(self) -> int:
        """Seats still open."""
        return self.capacity - self.enrolled_count

    def __repr__(self) -> str:
        return (
            f"<CourseSection(id={self.id!r}, course_id={self.course_id!r}, "
            f"term={self.semester}-{self.year}, {self.enrolled_count}/{self.capacity})>"
        )


class Student(Base):
    """Student model.

    gpa, cgpa and total_credits are derived from enrollment history and are
    only written by the grade engine's full recompute.
    """

    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    student_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("departments.id"), nullable=True
    )
    gpa: Mapped[float] = mapped_column(Float, nullable=False)
    cgpa: Mapped[float] = mapped_column(Float, nullable=False)
    total_credits: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    department: Mapped[Department | None] = relationship("Department", lazy="joined")

    def __init__(
        self,
        student_number: str,
        first_name: str,
        last_name: str,
        id: str | None = None,
        email: str | None = None,
        department_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.student_number = student_number
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.department_id = department_id
        self.gpa = 0.0
        self.cgpa = 0.0
        self.total_credits = 0

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Student(id={self.id!r}, student_number={self.student_number!r})>"


class Enrollment(Base):
    """Enrollment model - a student's seat in a section plus its grade record."""

    __tablename__ = "enrollments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(36), ForeignKey("students.id"), nullable=False)
    section_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("course_sections.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    enrollment_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    drop_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    approval_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    midterm_grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    final_grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    homework_grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_grade: Mapped[float | None] = mapped_column(Float, nullable=True)
    letter_grade: Mapped[str | None] = mapped_column(String(2), nullable=True)
    grade_point: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_repeat: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    section: Mapped[CourseSection] = relationship("CourseSection", lazy="joined")

    __table_args__ = (
        UniqueConstraint("student_id", "section_id", name="uq_enrollment_student_section"),
    )

    def __init__(
        self,
        student_id: str,
        section_id: str,
        id: str | None = None,
        status: str | None = None,
        enrollment_date: datetime | None = None,
        is_repeat: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.id = id if id is not None else generate_uuid()
        self.student_id = student_id
        self.section_id = section_id
        self.status = status if status is not None else EnrollmentStatus.PENDING.value
        self.enrollment_date = enrollment_date if enrollment_date is not None else utcnow()
        self.is_repeat = is_repeat
        self.drop_date = None
        self.approval_date = None
        self.approved_by = None
        self.rejection_reason = None
        self.midterm_grade = None
        self.final_grade = None
        self.homework_grade = None
        self.average_grade = None
        self.letter_grade = None
        self.grade_point = None

    @property
    def enrollment_status(self) -> EnrollmentStatus:
        """Get status as EnrollmentStatus enum."""
        return EnrollmentStatus(self.status)

    @enrollment_status.setter
    def enrollment_status(self, value: EnrollmentStatus) -> None:
        """Set status from EnrollmentStatus enum."""
        self.status = value.value

    def __repr__(self) -> str:
        return (
            f"<Enrollment(id={self.id!r}, student_id={self.student_id!r}, "
            f"section_id={self.section_id!r}, status={self.status!r})>"
        )
