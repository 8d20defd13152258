"""ScheduleConflictDetector - weekly time-slot overlap detection."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from registrar.schedule.models import (
    WEEKDAYS,
    ConflictReport,
    ScheduleConflict,
    ScheduleEntry,
    SectionRef,
    TimeSlot,
)
from registrar.store.models import EnrollmentStatus, Semester

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from registrar.store import AcademicStore, CourseSection

logger = logging.getLogger(__name__)


def parse_schedule(raw: Any) -> list[TimeSlot]:
    """Parse a stored schedule_json value into time slots.

    Accepts a list of slot mappings or its JSON text. Malformed entries are
    skipped so one bad row cannot hide the rest of a student's timetable.
    """
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unparseable schedule_json: %r", raw)
            return []
    if not isinstance(raw, list):
        return []

    slots = []
    for item in raw:
        try:
            slots.append(item if isinstance(item, TimeSlot) else TimeSlot.model_validate(item))
        except ValidationError:
            logger.warning("Ignoring malformed time slot: %r", item)
    return slots


def slots_overlap(first: TimeSlot, second: TimeSlot) -> bool:
    """Half-open overlap on the same weekday; touching endpoints do not overlap."""
    if first.day != second.day:
        return False
    return first.start_minutes < second.end_minutes and first.end_minutes > second.start_minutes


def find_overlaps(
    first: Iterable[TimeSlot], second: Iterable[TimeSlot]
) -> list[tuple[TimeSlot, TimeSlot]]:
    """Return every overlapping (first, second) pair."""
    second = list(second)
    return [(a, b) for a in first for b in second if slots_overlap(a, b)]


def _section_ref(section: CourseSection) -> SectionRef:
    return SectionRef(
        section_id=section.id,
        section_number=section.section_number,
        course_code=section.course.code,
        course_name=section.course.name,
    )


class ScheduleConflictDetector:
    """Detects weekly time conflicts between a candidate section and a student's term schedule.

    Read-only: never writes and takes no locks, so it is safe to call
    repeatedly and concurrently.
    """

    def __init__(self, store: AcademicStore) -> None:
        """Initialize the detector.

        Args:
            store: AcademicStore used for read queries.
        """
        self.store = store

    def has_conflict(
        self,
        student_id: str,
        section_id: str,
        session: Session | None = None,
    ) -> ConflictReport:
        """Check a candidate section against the student's enrolled sections in the same term.

        Args:
            student_id: The student's unique ID.
            section_id: The candidate section.
            session: Run inside this session (optional).

        Returns:
            ConflictReport listing every conflicting slot pair. An unknown
            section or one without meeting times never conflicts.
        """
        with self.store.read_session(session) as s:
            candidate = self.store.find_section(section_id, session=s)
            if candidate is None:
                return ConflictReport()

            candidate_slots = parse_schedule(candidate.schedule_json)
            if not candidate_slots:
                return ConflictReport()

            held = self.store.list_enrollments(
                student_id,
                statuses=[EnrollmentStatus.ENROLLED],
                semester=candidate.semester,
                year=candidate.year,
                session=s,
            )

            candidate_ref = _section_ref(candidate)
            conflicts = []
            for enrollment in held:
                existing = enrollment.section
                if existing.id == candidate.id:
                    continue
                existing_ref = _section_ref(existing)
                for new_slot, old_slot in find_overlaps(
                    candidate_slots, parse_schedule(existing.schedule_json)
                ):
                    conflicts.append(
                        ScheduleConflict(
                            existing=existing_ref,
                            candidate=candidate_ref,
                            day=new_slot.day,
                            existing_time=old_slot.label,
                            candidate_time=new_slot.label,
                        )
                    )

        if conflicts:
            logger.debug(
                "Student %s: %d slot conflict(s) with section %s",
                student_id,
                len(conflicts),
                section_id,
            )
        return ConflictReport(conflicts=conflicts)

    def get_student_schedule(
        self,
        student_id: str,
        semester: Semester | str,
        year: int,
    ) -> list[ScheduleEntry]:
        """Build a student's weekly timetable for one term.

        Args:
            student_id: The student's unique ID.
            semester: fall, spring or summer.
            year: Calendar year of the term.

        Returns:
            Entries for every meeting of every enrolled section, sorted by
            day of week then start time.
        """
        enrollments = self.store.list_enrollments(
            student_id,
            statuses=[EnrollmentStatus.ENROLLED],
            semester=semester,
            year=year,
        )

        entries = []
        for enrollment in enrollments:
            section = enrollment.section
            for slot in parse_schedule(section.schedule_json):
                entries.append(
                    ScheduleEntry(
                        day=slot.day,
                        start_time=slot.start_time,
                        end_time=slot.end_time,
                        course_code=section.course.code,
                        course_name=section.course.name,
                        section_id=section.id,
                        section_number=section.section_number,
                    )
                )

        entries.sort(key=lambda e: (WEEKDAYS.index(e.day), e.start_time, e.course_code))
        return entries
