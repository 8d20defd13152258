"""AcademicStore - Main API for academic record persistence."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from registrar.schedule.models import TimeSlot
from registrar.store.database import Database
from registrar.store.exceptions import (
    CourseExistsError,
    CourseNotFoundError,
    DepartmentNotFoundError,
    EnrollmentNotFoundError,
    InvalidRecordError,
    PrerequisiteExistsError,
    RecordExistsError,
    SectionExistsError,
    SectionNotFoundError,
    StudentExistsError,
    StudentNotFoundError,
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


class AcademicStore:
    """Main API for academic store operations.

    Provides CRUD for the catalog (departments, courses, prerequisites,
    sections), students and enrollments, plus the conditional seat-counter
    updates the enrollment orchestrator relies on.

    Read helpers accept an optional ``session``; when given, the query runs
    inside that session's open transaction instead of a fresh one.
    """

    def __init__(self, db_path: str = "registrar.db", busy_timeout: float = 5.0) -> None:
        """Initialize the store with a SQLite database.

        Creates database and tables if they don't exist.

        Args:
            db_path: Path to SQLite database file
            busy_timeout: Default seconds to wait on a locked database
        """
        self._db = Database(db_path, busy_timeout=busy_timeout)
        self._db.create_tables()

    @property
    def database(self) -> Database:
        return self._db

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    @contextmanager
    def transaction(self, timeout: float | None = None) -> Iterator[Session]:
        """Open a locked write transaction. See Database.transaction."""
        with self._db.transaction(timeout=timeout) as session:
            yield session

    @contextmanager
    def read_session(self, session: Session | None = None) -> Iterator[Session]:
        """Yield the given session, or a short-lived one closed on exit."""
        if session is not None:
            yield session
            return
        own = self._db.get_session()
        try:
            yield own
        finally:
            own.close()

    # --- Department Operations ---

    def create_department(self, code: str, name: str) -> Department:
        """Create a department.

        Raises:
            RecordExistsError: If a department with the same code exists
        """
        session = self._db.get_session()
        try:
            department = Department(code=code, name=name)
            session.add(department)
            session.commit()
            session.refresh(department)
            return department
        except IntegrityError as e:
            session.rollback()
            raise RecordExistsError(f"Department with code '{code}' already exists") from e
        finally:
            session.close()

    def get_department(self, department_id: str) -> Department:
        """Get department by ID.

        Raises:
            DepartmentNotFoundError: If department doesn't exist
        """
        session = self._db.get_session()
        try:
            department = session.get(Department, department_id)
            if department is None:
                raise DepartmentNotFoundError(
                    f"Department with id '{department_id}' not found",
                    details={"department_id": department_id},
                )
            return department
        finally:
            session.close()

    # --- Course Operations ---

    def create_course(
        self,
        code: str,
        name: str,
        credits: int = 3,
        ects: int = 5,
        department_id: str | None = None,
        description: str = "",
    ) -> Course:
        """Create a new course.

        Args:
            code: Unique course code, e.g. "CS101"
            name: Course title
            credits: Credit hours (1-10), the GPA weight
            ects: ECTS-equivalent weight (1-30)
            department_id: Owning department (optional)
            description: Free-text description

        Returns:
            Created Course object with generated ID

        Raises:
            CourseExistsError: If a course with the same code already exists
            InvalidRecordError: If credits or ects are out of range
        """
        if not 1 <= credits <= 10:
            raise InvalidRecordError(f"Credits must be between 1 and 10, got {credits}")
        if not 1 <= ects <= 30:
            raise InvalidRecordError(f"ECTS must be between 1 and 30, got {ects}")

        session = self._db.get_session()
        try:
            course = Course(
                code=code,
                name=name,
                credits=credits,
                ects=ects,
                department_id=department_id,
                description=description,
            )
            session.add(course)
            session.commit()
            session.refresh(course)
            return course
        except IntegrityError as e:
            session.rollback()
            if "courses.code" in str(e) or "UNIQUE constraint failed" in str(e):
                raise CourseExistsError(
                    f"Course with code '{code}' already exists", details={"code": code}
                ) from e
            raise
        finally:
            session.close()

    def get_course(self, course_id: str, session: Session | None = None) -> Course:
        """Get course by ID.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        with self.read_session(session) as s:
            course = s.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(
                    f"Course with id '{course_id}' not found", details={"course_id": course_id}
                )
            return course

    def find_course(self, course_id: str, session: Session | None = None) -> Course | None:
        """Get course by ID, or None if it doesn't exist."""
        with self.read_session(session) as s:
            return s.get(Course, course_id)

    def get_course_by_code(self, code: str) -> Course:
        """Get course by its code.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = select(Course).where(Course.code == code)
            course = session.execute(stmt).scalar_one_or_none()
            if course is None:
                raise CourseNotFoundError(
                    f"Course with code '{code}' not found", details={"code": code}
                )
            return course
        finally:
            session.close()

    def list_courses(self, active_only: bool = False) -> list[Course]:
        """List courses, ordered by code."""
        session = self._db.get_session()
        try:
            stmt = select(Course)
            if active_only:
                stmt = stmt.where(Course.is_active.is_(True))
            stmt = stmt.order_by(Course.code)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def update_course(
        self,
        course_id: str,
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
    ) -> Course:
        """Update course metadata. Code and credits are not editable here.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(
                    f"Course with id '{course_id}' not found", details={"course_id": course_id}
                )
            if name is not None:
                course.name = name
            if description is not None:
                course.description = description
            if is_active is not None:
                course.is_active = is_active
            session.commit()
            session.refresh(course)
            return course
        finally:
            session.close()

    # --- Prerequisite Operations ---

    def add_prerequisite(
        self,
        course_id: str,
        prerequisite_course_id: str,
        min_grade: str = DEFAULT_MIN_GRADE.value,
    ) -> CoursePrerequisite:
        """Add a prerequisite edge course -> prerequisite_course.

        Args:
            course_id: The course that has the requirement
            prerequisite_course_id: The course that must be completed first
            min_grade: Lowest acceptable letter grade (default DD)

        Returns:
            Created CoursePrerequisite edge

        Raises:
            CourseNotFoundError: If either course doesn't exist
            InvalidRecordError: If min_grade is not on the scale or the edge is a self-loop
            PrerequisiteExistsError: If the edge already exists
        """
        if min_grade not in LetterGrade.__members__:
            raise InvalidRecordError(
                f"Unknown letter grade '{min_grade}'", details={"min_grade": min_grade}
            )
        if course_id == prerequisite_course_id:
            raise InvalidRecordError(
                "A course cannot be its own prerequisite", details={"course_id": course_id}
            )

        session = self._db.get_session()
        try:
            for cid in (course_id, prerequisite_course_id):
                if session.get(Course, cid) is None:
                    raise CourseNotFoundError(
                        f"Course with id '{cid}' not found", details={"course_id": cid}
                    )

            edge = CoursePrerequisite(
                course_id=course_id,
                prerequisite_course_id=prerequisite_course_id,
                min_grade=min_grade,
            )
            session.add(edge)
            session.commit()
            session.refresh(edge)
            return edge
        except IntegrityError as e:
            session.rollback()
            raise PrerequisiteExistsError(
                "Prerequisite edge already exists",
                details={"course_id": course_id, "prerequisite_course_id": prerequisite_course_id},
            ) from e
        finally:
            session.close()

    def list_prerequisite_edges(
        self, course_id: str, session: Session | None = None
    ) -> list[CoursePrerequisite]:
        """List direct prerequisite edges of a course, with the prerequisite course loaded."""
        with self.read_session(session) as s:
            stmt = select(CoursePrerequisite).where(CoursePrerequisite.course_id == course_id)
            return list(s.execute(stmt).unique().scalars().all())

    # --- Section Operations ---

    def create_section(
        self,
        course_id: str,
        semester: Semester | str,
        year: int,
        capacity: int = 30,
        section_number: int = 1,
        schedule: Iterable[TimeSlot | dict[str, str]] | None = None,
        is_active: bool = True,
    ) -> CourseSection:
        """Create a new course section.

        Args:
            course_id: The course being offered
            semester: fall, spring or summer
            year: Calendar year of the term
            capacity: Maximum enrolled students
            section_number: Section number, unique per course and term
            schedule: Weekly time slots (TimeSlot or {"day", "start_time", "end_time"})
            is_active: Whether the section accepts enrollments

        Returns:
            Created CourseSection with enrolled_count 0

        Raises:
            CourseNotFoundError: If course doesn't exist
            InvalidRecordError: If the semester, capacity or a time slot is invalid
            SectionExistsError: If the section number is taken for that term
        """
        try:
            term = Semester(semester)
        except ValueError as e:
            raise InvalidRecordError(
                f"Unknown semester '{semester}'", details={"semester": str(semester)}
            ) from e
        if capacity < 0:
            raise InvalidRecordError(f"Capacity must not be negative, got {capacity}")
        slots = self._validate_slots(schedule or [])

        session = self._db.get_session()
        try:
            if session.get(Course, course_id) is None:
                raise CourseNotFoundError(
                    f"Course with id '{course_id}' not found", details={"course_id": course_id}
                )

            section = CourseSection(
                course_id=course_id,
                semester=term.value,
                year=year,
                capacity=capacity,
                section_number=section_number,
                schedule_json=[slot.to_json() for slot in slots],
                is_active=is_active,
            )
            session.add(section)
            session.commit()
            session.refresh(section)
            return section
        except IntegrityError as e:
            session.rollback()
            raise SectionExistsError(
                f"Section {section_number} already exists for {term.value} {year}",
                details={"course_id": course_id, "section_number": section_number},
            ) from e
        finally:
            session.close()

    def get_section(self, section_id: str, session: Session | None = None) -> CourseSection:
        """Get section by ID, with its course loaded.

        Raises:
            SectionNotFoundError: If section doesn't exist
        """
        with self.read_session(session) as s:
            section = s.get(CourseSection, section_id)
            if section is None:
                raise SectionNotFoundError(
                    f"Section with id '{section_id}' not found", details={"section_id": section_id}
                )
            return section

    def find_section(self, section_id: str, session: Session | None = None) -> CourseSection | None:
        """Get section by ID, or None if it doesn't exist."""
        with self.read_session(session) as s:
            return s.get(CourseSection, section_id)

    def list_sections(
        self,
        course_id: str | None = None,
        semester: Semester | str | None = None,
        year: int | None = None,
        session: Session | None = None,
    ) -> list[CourseSection]:
        """List sections with optional filters, ordered by term then section number."""
        with self.read_session(session) as s:
            stmt = select(CourseSection)
            if course_id is not None:
                stmt = stmt.where(CourseSection.course_id == course_id)
            if semester is not None:
                stmt = stmt.where(CourseSection.semester == Semester(semester).value)
            if year is not None:
                stmt = stmt.where(CourseSection.year == year)
            stmt = stmt.order_by(
                CourseSection.year, CourseSection.semester, CourseSection.section_number
            )
            return list(s.execute(stmt).unique().scalars().all())

    def set_section_active(self, section_id: str, is_active: bool) -> CourseSection:
        """Open or close a section for enrollment.

        Raises:
            SectionNotFoundError: If section doesn't exist
        """
        session = self._db.get_session()
        try:
            section = session.get(CourseSection, section_id)
            if section is None:
                raise SectionNotFoundError(
                    f"Section with id '{section_id}' not found", details={"section_id": section_id}
                )
            section.is_active = is_active
            session.commit()
            session.refresh(section)
            return section
        finally:
            session.close()

    def lock_section(self, session: Session, section_id: str) -> CourseSection:
        """Load a section for update inside an open transaction.

        Emits SELECT ... FOR UPDATE where the backend supports row locks; on
        SQLite the transaction already holds the write lock.

        Raises:
            SectionNotFoundError: If section doesn't exist
        """
        stmt = select(CourseSection).where(CourseSection.id == section_id).with_for_update()
        section = session.execute(stmt).unique().scalar_one_or_none()
        if section is None:
            raise SectionNotFoundError(
                f"Section with id '{section_id}' not found", details={"section_id": section_id}
            )
        return section

    def conditional_increment(self, session: Session, section_id: str) -> int:
        """Take one seat: enrolled_count += 1 WHERE enrolled_count < capacity.

        Returns:
            Rows affected; 0 means the section was already full.
        """
        stmt = (
            update(CourseSection)
            .where(
                CourseSection.id == section_id,
                CourseSection.enrolled_count < CourseSection.capacity,
            )
            .values(enrolled_count=CourseSection.enrolled_count + 1)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount

    def conditional_decrement(self, session: Session, section_id: str) -> int:
        """Free one seat: enrolled_count -= 1 WHERE enrolled_count > 0.

        Returns:
            Rows affected; 0 means the counter was already at zero.
        """
        stmt = (
            update(CourseSection)
            .where(CourseSection.id == section_id, CourseSection.enrolled_count > 0)
            .values(enrolled_count=CourseSection.enrolled_count - 1)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).rowcount

    # --- Student Operations ---

    def create_student(
        self,
        student_number: str,
        first_name: str,
        last_name: str,
        email: str | None = None,
        department_id: str | None = None,
    ) -> Student:
        """Create a new student.

        Raises:
            StudentExistsError: If the student number is taken
        """
        session = self._db.get_session()
        try:
            student = Student(
                student_number=student_number,
                first_name=first_name,
                last_name=last_name,
                email=email,
                department_id=department_id,
            )
            session.add(student)
            session.commit()
            session.refresh(student)
            return student
        except IntegrityError as e:
            session.rollback()
            raise StudentExistsError(
                f"Student with number '{student_number}' already exists",
                details={"student_number": student_number},
            ) from e
        finally:
            session.close()

    def get_student(self, student_id: str, session: Session | None = None) -> Student:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        with self.read_session(session) as s:
            student = s.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(
                    f"Student with id '{student_id}' not found", details={"student_id": student_id}
                )
            return student

    # --- Enrollment Operations ---

    def get_enrollment(self, enrollment_id: str, session: Session | None = None) -> Enrollment:
        """Get enrollment by ID, with section and course loaded.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
        """
        with self.read_session(session) as s:
            enrollment = s.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(
                    f"Enrollment with id '{enrollment_id}' not found",
                    details={"enrollment_id": enrollment_id},
                )
            return enrollment

    def find_enrollment(
        self, student_id: str, section_id: str, session: Session | None = None
    ) -> Enrollment | None:
        """Get the (unique) enrollment of a student in a section, if any."""
        with self.read_session(session) as s:
            stmt = select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.section_id == section_id,
            )
            return s.execute(stmt).unique().scalar_one_or_none()

    def list_enrollments(
        self,
        student_id: str,
        statuses: Iterable[EnrollmentStatus] | None = None,
        semester: Semester | str | None = None,
        year: int | None = None,
        course_id: str | None = None,
        session: Session | None = None,
    ) -> list[Enrollment]:
        """List a student's enrollments with optional filters.

        Args:
            student_id: The student's unique ID
            statuses: Keep only these statuses (optional)
            semester: Keep only sections in this semester (optional)
            year: Keep only sections in this year (optional)
            course_id: Keep only sections of this course (optional)
            session: Run inside this session (optional)

        Returns:
            Enrollments ordered by enrollment date, oldest first
        """
        with self.read_session(session) as s:
            stmt = (
                select(Enrollment)
                .join(CourseSection, Enrollment.section_id == CourseSection.id)
                .where(Enrollment.student_id == student_id)
            )
            if statuses is not None:
                stmt = stmt.where(Enrollment.status.in_([status.value for status in statuses]))
            if semester is not None:
                stmt = stmt.where(CourseSection.semester == Semester(semester).value)
            if year is not None:
                stmt = stmt.where(CourseSection.year == year)
            if course_id is not None:
                stmt = stmt.where(CourseSection.course_id == course_id)
            stmt = stmt.order_by(Enrollment.enrollment_date, Enrollment.created_at)
            return list(s.execute(stmt).unique().scalars().all())

    def list_section_enrollments(
        self,
        section_id: str,
        status: EnrollmentStatus | None = None,
        session: Session | None = None,
    ) -> list[Enrollment]:
        """List enrollments in a section, ordered by enrollment date."""
        with self.read_session(session) as s:
            stmt = select(Enrollment).where(Enrollment.section_id == section_id)
            if status is not None:
                stmt = stmt.where(Enrollment.status == status.value)
            stmt = stmt.order_by(Enrollment.enrollment_date)
            return list(s.execute(stmt).unique().scalars().all())

    def list_section_students(self, section_id: str) -> list[tuple[Enrollment, Student]]:
        """List enrolled students of a section, ordered by student number."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Enrollment, Student)
                .join(Student, Enrollment.student_id == Student.id)
                .where(
                    Enrollment.section_id == section_id,
                    Enrollment.status == EnrollmentStatus.ENROLLED.value,
                )
                .order_by(Student.student_number)
            )
            return [(row[0], row[1]) for row in session.execute(stmt).unique().all()]
        finally:
            session.close()

    def add_enrollment(self, session: Session, enrollment: Enrollment) -> Enrollment:
        """Insert an enrollment row inside an open transaction.

        Raises:
            RecordExistsError: If the student already has a row for the section
        """
        session.add(enrollment)
        try:
            session.flush()
        except IntegrityError as e:
            raise RecordExistsError(
                "Enrollment already exists for this student and section",
                details={"student_id": enrollment.student_id, "section_id": enrollment.section_id},
            ) from e
        return enrollment

    @staticmethod
    def _validate_slots(schedule: Iterable[TimeSlot | dict[str, str]]) -> list[TimeSlot]:
        slots = []
        for raw in schedule:
            if isinstance(raw, TimeSlot):
                slots.append(raw)
                continue
            try:
                slots.append(TimeSlot.model_validate(raw))
            except ValidationError as e:
                raise InvalidRecordError(
                    f"Invalid time slot {raw!r}: {e.errors()[0]['msg']}", details={"slot": raw}
                ) from e
        return slots
