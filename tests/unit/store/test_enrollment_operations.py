"""Unit tests for AcademicStore student and enrollment operations."""

import pytest

from registrar.store import (
    AcademicStore,
    Enrollment,
    EnrollmentNotFoundError,
    EnrollmentStatus,
    RecordExistsError,
    SectionNotFoundError,
    StudentExistsError,
    StudentNotFoundError,
)


@pytest.mark.unit
class TestStudents:
    """Tests for create_student / get_student."""

    def test_create_student_defaults(self, store: AcademicStore) -> None:
        student = store.create_student(
            student_number="2024001", first_name="Ada", last_name="Lovelace"
        )

        assert student.id is not None
        assert student.gpa == 0.0
        assert student.cgpa == 0.0
        assert student.total_credits == 0
        assert student.full_name == "Ada Lovelace"

    def test_duplicate_student_number_raises(self, store: AcademicStore) -> None:
        store.create_student(student_number="2024001", first_name="Ada", last_name="Lovelace")

        with pytest.raises(StudentExistsError):
            store.create_student(student_number="2024001", first_name="Alan", last_name="Turing")

    def test_get_student_not_found_raises(self, store: AcademicStore) -> None:
        with pytest.raises(StudentNotFoundError) as exc_info:
            store.get_student("nonexistent-id")

        assert exc_info.value.details == {"student_id": "nonexistent-id"}

    def test_student_department_loaded(self, store: AcademicStore) -> None:
        department = store.create_department(code="CENG", name="Computer Engineering")
        student = store.create_student(
            student_number="2024001",
            first_name="Ada",
            last_name="Lovelace",
            department_id=department.id,
        )

        assert store.get_student(student.id).department.name == "Computer Engineering"


@pytest.mark.unit
class TestAddEnrollment:
    """Tests for add_enrollment and enrollment lookups."""

    def test_add_and_get(self, store: AcademicStore, make_course, make_section, make_student):
        section = make_section(make_course("CS101"))
        student = make_student()

        with store.transaction() as session:
            enrollment = store.add_enrollment(
                session, Enrollment(student_id=student.id, section_id=section.id)
            )
            enrollment_id = enrollment.id

        retrieved = store.get_enrollment(enrollment_id)
        assert retrieved.enrollment_status == EnrollmentStatus.PENDING
        assert retrieved.section.course.code == "CS101"
        assert retrieved.is_repeat is False
        assert retrieved.enrollment_date is not None

    def test_duplicate_pair_raises(
        self, store: AcademicStore, make_course, make_section, make_student
    ):
        section = make_section(make_course())
        student = make_student()
        with store.transaction() as session:
            store.add_enrollment(session, Enrollment(student_id=student.id, section_id=section.id))

        with pytest.raises(RecordExistsError), store.transaction() as session:
            store.add_enrollment(session, Enrollment(student_id=student.id, section_id=section.id))

    def test_get_enrollment_not_found_raises(self, store: AcademicStore) -> None:
        with pytest.raises(EnrollmentNotFoundError):
            store.get_enrollment("nonexistent-id")

    def test_find_enrollment(self, store: AcademicStore, make_course, make_section, make_student):
        section = make_section(make_course())
        student = make_student()
        assert store.find_enrollment(student.id, section.id) is None

        with store.transaction() as session:
            store.add_enrollment(session, Enrollment(student_id=student.id, section_id=section.id))

        assert store.find_enrollment(student.id, section.id) is not None


@pytest.mark.unit
class TestListEnrollments:
    """Tests for list_enrollments filters."""

    def test_filters(self, store: AcademicStore, make_course, make_section, make_student):
        student = make_student()
        fall = make_section(make_course("CS101"), semester="fall", year=2024)
        spring = make_section(make_course("CS102"), semester="spring", year=2025)
        with store.transaction() as session:
            store.add_enrollment(
                session,
                Enrollment(student_id=student.id, section_id=fall.id, status="enrolled"),
            )
            store.add_enrollment(
                session,
                Enrollment(student_id=student.id, section_id=spring.id, status="dropped"),
            )

        assert len(store.list_enrollments(student.id)) == 2
        enrolled = store.list_enrollments(student.id, statuses=[EnrollmentStatus.ENROLLED])
        assert [e.section_id for e in enrolled] == [fall.id]
        spring_only = store.list_enrollments(student.id, semester="spring", year=2025)
        assert [e.section_id for e in spring_only] == [spring.id]
        by_course = store.list_enrollments(student.id, course_id=fall.course_id)
        assert [e.section_id for e in by_course] == [fall.id]

    def test_section_students_only_enrolled(
        self, store: AcademicStore, make_course, make_section, make_student
    ):
        section = make_section(make_course())
        first = make_student(first_name="Grace")
        second = make_student(first_name="Alan")
        with store.transaction() as session:
            store.add_enrollment(
                session,
                Enrollment(student_id=first.id, section_id=section.id, status="enrolled"),
            )
            store.add_enrollment(
                session,
                Enrollment(student_id=second.id, section_id=section.id, status="dropped"),
            )

        roster = store.list_section_students(section.id)

        assert [student.first_name for _, student in roster] == ["Grace"]
        assert len(store.list_section_enrollments(section.id)) == 2


@pytest.mark.unit
class TestConditionalCounters:
    """Tests for conditional_increment / conditional_decrement."""

    def test_increment_until_full(self, store: AcademicStore, make_course, make_section):
        section = make_section(make_course(), capacity=2)

        results = []
        for _ in range(3):
            with store.transaction() as session:
                results.append(store.conditional_increment(session, section.id))

        assert results == [1, 1, 0]
        assert store.get_section(section.id).enrolled_count == 2

    def test_decrement_stops_at_zero(self, store: AcademicStore, make_course, make_section):
        section = make_section(make_course(), capacity=2)
        with store.transaction() as session:
            store.conditional_increment(session, section.id)

        results = []
        for _ in range(2):
            with store.transaction() as session:
                results.append(store.conditional_decrement(session, section.id))

        assert results == [1, 0]
        assert store.get_section(section.id).enrolled_count == 0

    def test_zero_capacity_never_increments(self, store: AcademicStore, make_course, make_section):
        section = make_section(make_course(), capacity=0)

        with store.transaction() as session:
            assert store.conditional_increment(session, section.id) == 0

    def test_rollback_discards_increment(self, store: AcademicStore, make_course, make_section):
        section = make_section(make_course(), capacity=2)

        with pytest.raises(RuntimeError), store.transaction() as session:
            store.conditional_increment(session, section.id)
            raise RuntimeError("boom")

        assert store.get_section(section.id).enrolled_count == 0

    def test_lock_section_missing_raises(self, store: AcademicStore) -> None:
        with pytest.raises(SectionNotFoundError), store.transaction() as session:
            store.lock_section(session, "nonexistent-id")
