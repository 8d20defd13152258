"""Unit tests for ScheduleConflictDetector."""

import pytest

from registrar.schedule import (
    ScheduleConflictDetector,
    TimeSlot,
    find_overlaps,
    parse_schedule,
    slots_overlap,
)
from registrar.store import AcademicStore, Enrollment


def slot(day: str, start: str, end: str) -> TimeSlot:
    return TimeSlot(day=day, start_time=start, end_time=end)


@pytest.fixture
def detector(store: AcademicStore) -> ScheduleConflictDetector:
    """Create a ScheduleConflictDetector over the in-memory store."""
    return ScheduleConflictDetector(store)


@pytest.fixture
def enroll(store: AcademicStore):
    """Seed an enrolled row without going through the orchestrator."""

    def _enroll(student, section, status: str = "enrolled") -> None:
        with store.transaction() as session:
            store.add_enrollment(
                session,
                Enrollment(student_id=student.id, section_id=section.id, status=status),
            )

    return _enroll


@pytest.mark.unit
class TestSlotsOverlap:
    """Tests for the pure overlap predicate."""

    def test_overlapping_same_day(self) -> None:
        assert slots_overlap(slot("monday", "09:00", "10:30"), slot("monday", "10:00", "11:30"))

    def test_different_days_never_overlap(self) -> None:
        assert not slots_overlap(
            slot("monday", "09:00", "10:30"), slot("tuesday", "09:00", "10:30")
        )

    def test_back_to_back_do_not_overlap(self) -> None:
        assert not slots_overlap(
            slot("monday", "09:00", "10:00"), slot("monday", "10:00", "11:00")
        )

    def test_one_minute_overlap(self) -> None:
        assert slots_overlap(slot("monday", "09:00", "10:01"), slot("monday", "10:00", "11:00"))

    def test_containment(self) -> None:
        assert slots_overlap(slot("friday", "08:00", "12:00"), slot("friday", "09:00", "10:00"))

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            (("monday", "09:00", "10:30"), ("monday", "10:00", "11:30")),
            (("monday", "09:00", "10:00"), ("monday", "10:00", "11:00")),
            (("monday", "08:00", "12:00"), ("monday", "09:00", "10:00")),
            (("monday", "09:00", "10:00"), ("tuesday", "09:00", "10:00")),
        ],
    )
    def test_symmetric(self, a: tuple[str, str, str], b: tuple[str, str, str]) -> None:
        assert slots_overlap(slot(*a), slot(*b)) == slots_overlap(slot(*b), slot(*a))

    def test_find_overlaps_returns_every_pair(self) -> None:
        first = [slot("monday", "09:00", "10:30"), slot("wednesday", "09:00", "10:30")]
        second = [slot("monday", "10:00", "11:00"), slot("wednesday", "10:00", "11:00")]

        pairs = find_overlaps(first, second)

        assert [(a.day, b.day) for a, b in pairs] == [
            ("monday", "monday"),
            ("wednesday", "wednesday"),
        ]


@pytest.mark.unit
class TestParseSchedule:
    """Tests for parse_schedule."""

    def test_empty(self) -> None:
        assert parse_schedule(None) == []
        assert parse_schedule([]) == []

    def test_json_text(self) -> None:
        slots = parse_schedule('[{"day": "monday", "start_time": "09:00", "end_time": "10:00"}]')

        assert slots == [slot("monday", "09:00", "10:00")]

    def test_malformed_entries_skipped(self) -> None:
        slots = parse_schedule(
            [
                {"day": "monday", "start_time": "09:00", "end_time": "10:00"},
                {"day": "monday", "start_time": "bad"},
            ]
        )

        assert len(slots) == 1


@pytest.mark.unit
class TestHasConflict:
    """Tests for has_conflict."""

    def test_overlap_in_same_term(
        self, detector, enroll, make_course, make_section, make_student
    ) -> None:
        """Monday 09:00-10:30 vs Monday 10:00-11:30 conflicts on monday."""
        a = make_section(
            make_course("CS101"),
            schedule=[{"day": "monday", "start_time": "09:00", "end_time": "10:30"}],
        )
        b = make_section(
            make_course("MATH101"),
            schedule=[{"day": "monday", "start_time": "10:00", "end_time": "11:30"}],
        )
        student = make_student()
        enroll(student, a)

        report = detector.has_conflict(student.id, b.id)

        assert report.has_conflict is True
        assert report.days == ["monday"]
        conflict = report.conflicts[0]
        assert conflict.existing.course_code == "CS101"
        assert conflict.candidate.course_code == "MATH101"
        assert conflict.existing_time == "09:00 - 10:30"

    def test_reports_every_pair(
        self, detector, enroll, make_course, make_section, make_student
    ) -> None:
        a = make_section(
            make_course("CS101"),
            schedule=[
                {"day": "monday", "start_time": "09:00", "end_time": "10:30"},
                {"day": "wednesday", "start_time": "09:00", "end_time": "10:30"},
            ],
        )
        b = make_section(
            make_course("MATH101"),
            schedule=[
                {"day": "monday", "start_time": "10:00", "end_time": "11:00"},
                {"day": "wednesday", "start_time": "08:00", "end_time": "09:30"},
            ],
        )
        student = make_student()
        enroll(student, a)

        report = detector.has_conflict(student.id, b.id)

        assert len(report.conflicts) == 2
        assert report.days == ["monday", "wednesday"]

    def test_other_term_ignored(
        self, detector, enroll, make_course, make_section, make_student
    ) -> None:
        monday = [{"day": "monday", "start_time": "09:00", "end_time": "10:30"}]
        a = make_section(make_course("CS101"), semester="spring", year=2024, schedule=monday)
        b = make_section(make_course("MATH101"), semester="fall", year=2024, schedule=monday)
        student = make_student()
        enroll(student, a)

        assert detector.has_conflict(student.id, b.id).has_conflict is False

    def test_non_enrolled_rows_ignored(
        self, detector, enroll, make_course, make_section, make_student
    ) -> None:
        monday = [{"day": "monday", "start_time": "09:00", "end_time": "10:30"}]
        a = make_section(make_course("CS101"), schedule=monday)
        b = make_section(make_course("MATH101"), schedule=monday)
        student = make_student()
        enroll(student, a, status="dropped")

        assert detector.has_conflict(student.id, b.id).has_conflict is False

    def test_back_to_back_sections(
        self, detector, enroll, make_course, make_section, make_student
    ) -> None:
        a = make_section(
            make_course("CS101"),
            schedule=[{"day": "monday", "start_time": "09:00", "end_time": "10:00"}],
        )
        b = make_section(
            make_course("MATH101"),
            schedule=[{"day": "monday", "start_time": "10:00", "end_time": "11:00"}],
        )
        student = make_student()
        enroll(student, a)

        assert detector.has_conflict(student.id, b.id).has_conflict is False

    def test_unknown_section_no_conflict(self, detector, make_student) -> None:
        student = make_student()

        assert detector.has_conflict(student.id, "nonexistent-id").has_conflict is False

    def test_section_without_slots_no_conflict(
        self, detector, enroll, make_course, make_section, make_student
    ) -> None:
        a = make_section(
            make_course("CS101"),
            schedule=[{"day": "monday", "start_time": "09:00", "end_time": "10:00"}],
        )
        b = make_section(make_course("MATH101"))
        student = make_student()
        enroll(student, a)

        assert detector.has_conflict(student.id, b.id).has_conflict is False


@pytest.mark.unit
class TestGetStudentSchedule:
    """Tests for get_student_schedule."""

    def test_sorted_by_day_then_start(
        self, detector, enroll, make_course, make_section, make_student
    ) -> None:
        a = make_section(
            make_course("CS101"),
            schedule=[
                {"day": "wednesday", "start_time": "09:00", "end_time": "10:00"},
                {"day": "monday", "start_time": "13:00", "end_time": "14:00"},
            ],
        )
        b = make_section(
            make_course("MATH101"),
            schedule=[{"day": "monday", "start_time": "09:00", "end_time": "10:00"}],
        )
        other_term = make_section(
            make_course("PHYS101"),
            semester="spring",
            year=2025,
            schedule=[{"day": "monday", "start_time": "08:00", "end_time": "09:00"}],
        )
        student = make_student()
        for section in (a, b, other_term):
            enroll(student, section)

        entries = detector.get_student_schedule(student.id, "fall", 2024)

        assert [(e.day, e.start_time, e.course_code) for e in entries] == [
            ("monday", "09:00", "MATH101"),
            ("monday", "13:00", "CS101"),
            ("wednesday", "09:00", "CS101"),
        ]
        assert entries[0].to_dict()["course"] == {"code": "MATH101", "name": "Course MATH101"}

    def test_empty_schedule(self, detector, make_student) -> None:
        assert detector.get_student_schedule(make_student().id, "fall", 2024) == []
