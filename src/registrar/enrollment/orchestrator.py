"""EnrollmentOrchestrator - enroll/drop state transitions and seat accounting."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING

from registrar.enrollment.exceptions import (
    CapacityExceededError,
    ConcurrencyConflictError,
    DropWindowExpiredError,
    DuplicateEnrollmentError,
    InactiveSectionError,
    InvalidEnrollmentStateError,
    PrerequisiteUnmetError,
    ScheduleConflictError,
)
from registrar.enrollment.models import CapacityInfo, EligibilityReport
from registrar.exceptions import RegistrarError
from registrar.prerequisites import PrerequisiteCheck, PrerequisiteResolver
from registrar.schedule import ConflictReport, ScheduleConflictDetector
from registrar.store import (
    Enrollment,
    EnrollmentNotFoundError,
    EnrollmentStatus,
    RecordExistsError,
    StoreError,
)
from registrar.store.models import Semester, as_naive_utc, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from registrar.events import EventManager
    from registrar.store import AcademicStore, CourseSection, Student

logger = logging.getLogger(__name__)

DEFAULT_DROP_WINDOW_DAYS = 28

# Statuses that hold (or claim) a seat in the term
ACTIVE_STATUSES = (EnrollmentStatus.ENROLLED, EnrollmentStatus.PENDING)

# Finished attempts considered when flagging a repeat
ATTEMPTED_STATUSES = (EnrollmentStatus.COMPLETED, EnrollmentStatus.FAILED)


class EnrollmentOrchestrator:
    """Owns Enrollment state transitions and CourseSection.enrolled_count.

    Every mutating operation runs in one write transaction that holds the
    section lock from the first check to the commit. Seats are only taken
    or released through the store's conditional counter updates.

    Events are emitted after commit; handler failures never undo or fail
    the operation.
    """

    def __init__(
        self,
        store: AcademicStore,
        resolver: PrerequisiteResolver | None = None,
        detector: ScheduleConflictDetector | None = None,
        event_manager: EventManager | None = None,
        drop_window_days: int = DEFAULT_DROP_WINDOW_DAYS,
        allow_schedule_conflicts: bool = False,
        lock_timeout: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the EnrollmentOrchestrator.

        Args:
            store: AcademicStore for persistence.
            resolver: PrerequisiteResolver (built on the store if omitted).
            detector: ScheduleConflictDetector (built on the store if omitted).
            event_manager: EventManager for notification hooks (optional).
            drop_window_days: Full days after enrollment during which drops are allowed.
            allow_schedule_conflicts: Report conflicts without blocking enrollment.
            lock_timeout: Default seconds to wait for the section lock.
            clock: Returns the current UTC time.
        """
        self.store = store
        self.resolver = resolver if resolver is not None else PrerequisiteResolver(store)
        self.detector = detector if detector is not None else ScheduleConflictDetector(store)
        self.event_manager = event_manager
        self.drop_window_days = drop_window_days
        self.allow_schedule_conflicts = allow_schedule_conflicts
        self.lock_timeout = lock_timeout
        self.clock = clock

    # --- Direct enrollment ---

    def enroll_student(
        self, student_id: str, section_id: str, timeout: float | None = None
    ) -> Enrollment:
        """Enroll a student directly into a section.

        Runs the full check pipeline under the section lock: active section,
        free seat, no duplicate row, no other section of the course this
        term, prerequisites, schedule conflicts. Then takes a seat with the
        conditional increment and inserts the enrollment.

        Args:
            student_id: The student's unique ID.
            section_id: The section's unique ID.
            timeout: Seconds to wait for the section lock (optional).

        Returns:
            The created Enrollment in enrolled status.

        Raises:
            StudentNotFoundError: If the student doesn't exist.
            SectionNotFoundError: If the section doesn't exist.
            InactiveSectionError: If the section or its course is inactive.
            CapacityExceededError: If the section is full.
            DuplicateEnrollmentError: If an existing enrollment blocks this one.
            PrerequisiteUnmetError: If prerequisites are missing.
            ScheduleConflictError: If the section overlaps the student's schedule.
            ConcurrencyConflictError: If the seat was taken between check and update.
            TransactionTimeoutError: If the lock could not be acquired in time.
        """
        logger.info("Enrolling student %s in section %s", student_id, section_id)

        with (
            self._logged_rejection("enroll", student_id, section_id),
            self.store.transaction(timeout=self._timeout(timeout)) as session,
        ):
            self.store.get_student(student_id, session=session)
            section = self.store.lock_section(session, section_id)

            self._require_active(section)
            self._require_capacity(section)
            self._require_no_duplicate(session, student_id, section)
            self._require_prerequisites(session, student_id, section)
            self._require_no_conflict(session, student_id, section)
            is_repeat = self._is_repeat(session, student_id, section)

            self._take_seat(session, section)
            enrollment = self._insert(
                session, student_id, section, EnrollmentStatus.ENROLLED, is_repeat
            )
            enrollment_id = enrollment.id
            course_code = section.course.code

        logger.info(
            "Student %s enrolled in %s section %d (enrollment %s, repeat=%s)",
            student_id,
            course_code,
            section.section_number,
            enrollment_id,
            is_repeat,
        )
        if self.event_manager is not None:
            self.event_manager.emit_enrollment_created(
                enrollment_id=enrollment_id,
                student_id=student_id,
                section_id=section_id,
                course_code=course_code,
                is_repeat=is_repeat,
            )
        return self.store.get_enrollment(enrollment_id)

    def drop_enrollment(
        self, enrollment_id: str, student_id: str, timeout: float | None = None
    ) -> Enrollment:
        """Drop an enrolled enrollment within the drop window and free its seat.

        Args:
            enrollment_id: The enrollment's unique ID.
            student_id: The student who must own the enrollment.
            timeout: Seconds to wait for the section lock (optional).

        Returns:
            The Enrollment in dropped status.

        Raises:
            EnrollmentNotFoundError: If no enrolled enrollment matches the student.
            DropWindowExpiredError: If more than drop_window_days full days have passed.
            TransactionTimeoutError: If the lock could not be acquired in time.
        """
        logger.info("Dropping enrollment %s for student %s", enrollment_id, student_id)

        with (
            self._logged_rejection("drop", student_id, enrollment_id),
            self.store.transaction(timeout=self._timeout(timeout)) as session,
        ):
            enrollment = self.store.get_enrollment(enrollment_id, session=session)
            if (
                enrollment.student_id != student_id
                or enrollment.enrollment_status != EnrollmentStatus.ENROLLED
            ):
                raise EnrollmentNotFoundError(
                    f"No enrolled enrollment '{enrollment_id}' for student '{student_id}'",
                    details={"enrollment_id": enrollment_id, "student_id": student_id},
                )

            section = self.store.lock_section(session, enrollment.section_id)
            now = self._now()
            days_elapsed = (now - as_naive_utc(enrollment.enrollment_date)).days
            if days_elapsed > self.drop_window_days:
                raise DropWindowExpiredError(
                    f"Drop period has expired: {days_elapsed} days since enrollment, "
                    f"drops are allowed within {self.drop_window_days} days",
                    details={
                        "enrollment_id": enrollment_id,
                        "enrollment_date": enrollment.enrollment_date.isoformat(),
                        "days_elapsed": days_elapsed,
                        "drop_window_days": self.drop_window_days,
                    },
                )

            enrollment.enrollment_status = EnrollmentStatus.DROPPED
            enrollment.drop_date = now
            session.flush()
            if self.store.conditional_decrement(session, section.id) == 0:
                logger.error("Section %s seat counter already at zero on drop", section.id)
                raise StoreError(
                    f"Seat counter of section '{section.id}' is already zero",
                    details={"section_id": section.id},
                )
            course_code = section.course.code

        logger.info("Enrollment %s dropped (%s)", enrollment_id, course_code)
        if self.event_manager is not None:
            self.event_manager.emit_enrollment_dropped(
                enrollment_id=enrollment_id,
                student_id=student_id,
                section_id=section.id,
                course_code=course_code,
            )
        return self.store.get_enrollment(enrollment_id)

    # --- Approval-gated enrollment ---

    def request_enrollment(
        self, student_id: str, section_id: str, timeout: float | None = None
    ) -> Enrollment:
        """Create a pending enrollment request after the same checks as enroll.

        No seat is taken until the request is approved.

        Raises:
            Same as enroll_student, except ConcurrencyConflictError.
        """
        logger.info("Enrollment request: student %s, section %s", student_id, section_id)

        with (
            self._logged_rejection("request", student_id, section_id),
            self.store.transaction(timeout=self._timeout(timeout)) as session,
        ):
            self.store.get_student(student_id, session=session)
            section = self.store.lock_section(session, section_id)

            self._require_active(section)
            self._require_capacity(section)
            self._require_no_duplicate(session, student_id, section)
            self._require_prerequisites(session, student_id, section)
            self._require_no_conflict(session, student_id, section)
            is_repeat = self._is_repeat(session, student_id, section)

            enrollment = self._insert(
                session, student_id, section, EnrollmentStatus.PENDING, is_repeat
            )
            enrollment_id = enrollment.id
            course_code = section.course.code

        if self.event_manager is not None:
            self.event_manager.emit_enrollment_requested(
                enrollment_id=enrollment_id,
                student_id=student_id,
                section_id=section_id,
                course_code=course_code,
            )
        return self.store.get_enrollment(enrollment_id)

    def approve_enrollment(
        self,
        enrollment_id: str,
        approver_id: str | None = None,
        timeout: float | None = None,
    ) -> Enrollment:
        """Approve a pending request: take a seat and move it to enrolled.

        The student's schedule may have changed since the request, so the
        same-course and schedule conflict checks run again under the lock.

        Raises:
            EnrollmentNotFoundError: If the enrollment doesn't exist.
            InvalidEnrollmentStateError: If the enrollment is not pending.
            InactiveSectionError: If the section was closed meanwhile.
            DuplicateEnrollmentError: If another section of the course is now held.
            ScheduleConflictError: If the section now overlaps the student's schedule.
            CapacityExceededError: If the section filled up meanwhile.
        """
        with (
            self._logged_rejection("approve", approver_id or "system", enrollment_id),
            self.store.transaction(timeout=self._timeout(timeout)) as session,
        ):
            enrollment = self._get_pending(session, enrollment_id)
            section = self.store.lock_section(session, enrollment.section_id)
            self._require_active(section)
            self._require_no_duplicate(session, enrollment.student_id, section, enrollment)
            self._require_no_conflict(session, enrollment.student_id, section)
            if self.store.conditional_increment(session, section.id) == 0:
                raise CapacityExceededError(
                    f"Section is full: {section.enrolled_count}/{section.capacity} seats taken",
                    details=self._capacity_details(section),
                )

            enrollment.enrollment_status = EnrollmentStatus.ENROLLED
            enrollment.approval_date = self._now()
            enrollment.approved_by = approver_id
            student_id = enrollment.student_id

        logger.info("Enrollment %s approved by %s", enrollment_id, approver_id or "system")
        if self.event_manager is not None:
            self.event_manager.emit_enrollment_approved(enrollment_id, student_id, approver_id)
        return self.store.get_enrollment(enrollment_id)

    def reject_enrollment(
        self, enrollment_id: str, reason: str, timeout: float | None = None
    ) -> Enrollment:
        """Reject a pending request, keeping the row with its reason.

        Raises:
            EnrollmentNotFoundError: If the enrollment doesn't exist.
            InvalidEnrollmentStateError: If the enrollment is not pending.
        """
        with (
            self._logged_rejection("reject", "system", enrollment_id),
            self.store.transaction(timeout=self._timeout(timeout)) as session,
        ):
            enrollment = self._get_pending(session, enrollment_id)
            enrollment.enrollment_status = EnrollmentStatus.REJECTED
            enrollment.rejection_reason = reason
            student_id = enrollment.student_id

        logger.info("Enrollment %s rejected: %s", enrollment_id, reason)
        if self.event_manager is not None:
            self.event_manager.emit_enrollment_rejected(enrollment_id, student_id, reason)
        return self.store.get_enrollment(enrollment_id)

    # --- Read-only queries ---

    def check_eligibility(self, student_id: str, section_id: str) -> EligibilityReport:
        """Run the enrollment checks without taking a lock or writing anything.

        Raises:
            StudentNotFoundError: If the student doesn't exist.
            SectionNotFoundError: If the section doesn't exist.
        """
        with self.store.read_session() as session:
            self.store.get_student(student_id, session=session)
            section = self.store.get_section(section_id, session=session)
            prerequisites = self.resolver.check_satisfied(
                student_id, section.course_id, session=session
            )
            conflicts = self.detector.has_conflict(student_id, section.id, session=session)
            report = EligibilityReport(
                student_id=student_id,
                section_id=section.id,
                course_code=section.course.code,
                is_active=self._is_active(section),
                capacity=CapacityInfo(
                    capacity=section.capacity, enrolled_count=section.enrolled_count
                ),
                prerequisites=prerequisites,
                conflicts=conflicts,
                duplicate_reason=self._duplicate_reason(session, student_id, section),
                conflicts_allowed=self.allow_schedule_conflicts,
            )

        logger.debug(
            "Eligibility of student %s for section %s: %s",
            student_id,
            section_id,
            [issue.value for issue in report.issues] or "eligible",
        )
        return report

    def get_student_enrollments(
        self,
        student_id: str,
        status: EnrollmentStatus | str | None = None,
        semester: Semester | str | None = None,
        year: int | None = None,
    ) -> list[Enrollment]:
        """List a student's enrollments, oldest first.

        Raises:
            StudentNotFoundError: If the student doesn't exist.
        """
        self.store.get_student(student_id)
        statuses = [EnrollmentStatus(status)] if status is not None else None
        return self.store.list_enrollments(
            student_id, statuses=statuses, semester=semester, year=year
        )

    def get_section_students(self, section_id: str) -> list[tuple[Enrollment, Student]]:
        """List the enrolled students of a section by student number.

        Raises:
            SectionNotFoundError: If the section doesn't exist.
        """
        self.store.get_section(section_id)
        return self.store.list_section_students(section_id)

    # --- Checks ---

    @staticmethod
    @contextmanager
    def _logged_rejection(action: str, actor: str, target_id: str) -> Iterator[None]:
        try:
            yield
        except RegistrarError as e:
            logger.warning(
                "Rejected %s by %s on %s (%s): %s",
                action,
                actor,
                target_id,
                e.kind.value,
                e.message,
            )
            raise

    @staticmethod
    def _is_active(section: CourseSection) -> bool:
        return section.is_active and section.course.is_active

    def _require_active(self, section: CourseSection) -> None:
        if not self._is_active(section):
            raise InactiveSectionError(
                f"Section {section.section_number} of {section.course.code} "
                "is not open for enrollment",
                details={"section_id": section.id, "course_code": section.course.code},
            )

    @staticmethod
    def _capacity_details(section: CourseSection) -> dict[str, int | str]:
        return {
            "section_id": section.id,
            "capacity": section.capacity,
            "enrolled_count": section.enrolled_count,
        }

    def _require_capacity(self, section: CourseSection) -> None:
        if section.enrolled_count >= section.capacity:
            raise CapacityExceededError(
                f"Section is full: {section.enrolled_count}/{section.capacity} seats taken",
                details=self._capacity_details(section),
            )

    def _duplicate_reason(
        self, session: Session, student_id: str, section: CourseSection
    ) -> str | None:
        existing = self.store.find_enrollment(student_id, section.id, session=session)
        if existing is not None:
            match existing.enrollment_status:
                case EnrollmentStatus.ENROLLED:
                    return "Student is already enrolled in this section"
                case EnrollmentStatus.DROPPED:
                    return "Student dropped this section and cannot re-enroll"
                case EnrollmentStatus.PENDING:
                    return "Student already has a pending request for this section"
                case status:
                    return f"Student already has a {status.value} enrollment in this section"
        return self._same_course_reason(session, student_id, section)

    def _same_course_reason(
        self,
        session: Session,
        student_id: str,
        section: CourseSection,
        exclude_id: str | None = None,
    ) -> str | None:
        same_course = [
            e
            for e in self.store.list_enrollments(
                student_id,
                statuses=ACTIVE_STATUSES,
                semester=section.semester,
                year=section.year,
                course_id=section.course_id,
                session=session,
            )
            if e.id != exclude_id
        ]
        if same_course:
            other = same_course[0].section
            return (
                f"Student already holds section {other.section_number} of "
                f"{section.course.code} in {section.semester} {section.year}"
            )
        return None

    def _require_no_duplicate(
        self,
        session: Session,
        student_id: str,
        section: CourseSection,
        pending: Enrollment | None = None,
    ) -> None:
        if pending is None:
            reason = self._duplicate_reason(session, student_id, section)
        else:
            reason = self._same_course_reason(session, student_id, section, pending.id)
        if reason is not None:
            raise DuplicateEnrollmentError(
                reason,
                details={
                    "student_id": student_id,
                    "section_id": section.id,
                    "course_code": section.course.code,
                },
            )

    def _require_prerequisites(
        self, session: Session, student_id: str, section: CourseSection
    ) -> None:
        check: PrerequisiteCheck = self.resolver.check_satisfied(
            student_id, section.course_id, session=session
        )
        if not check.satisfied:
            codes = ", ".join(m.code for m in check.missing)
            raise PrerequisiteUnmetError(
                f"Missing prerequisites for {section.course.code}: {codes}",
                details={
                    "course_code": section.course.code,
                    "missing": [m.to_dict() for m in check.missing],
                },
            )

    def _require_no_conflict(
        self, session: Session, student_id: str, section: CourseSection
    ) -> None:
        report: ConflictReport = self.detector.has_conflict(student_id, section.id, session=session)
        if not report.has_conflict:
            return

        first = report.conflicts[0]
        message = (
            f"Schedule conflict with {first.existing.course_code} on {first.day} "
            f"({first.existing_time})"
        )
        if self.allow_schedule_conflicts:
            logger.warning("%s; allowed by policy for student %s", message, student_id)
            return
        raise ScheduleConflictError(
            message,
            details={
                "days": report.days,
                "conflicts": [c.to_dict() for c in report.conflicts],
            },
        )

    def _is_repeat(self, session: Session, student_id: str, section: CourseSection) -> bool:
        attempts = self.store.list_enrollments(
            student_id,
            statuses=ATTEMPTED_STATUSES,
            course_id=section.course_id,
            session=session,
        )
        # Only a retake after a failed latest attempt counts
        return bool(attempts) and attempts[-1].enrollment_status == EnrollmentStatus.FAILED

    # --- Writes ---

    def _take_seat(self, session: Session, section: CourseSection) -> None:
        if self.store.conditional_increment(session, section.id) == 0:
            logger.warning("Lost the race for the last seat in section %s", section.id)
            raise ConcurrencyConflictError(
                "Section filled up while the enrollment was being processed",
                details=self._capacity_details(section),
            )

    def _insert(
        self,
        session: Session,
        student_id: str,
        section: CourseSection,
        status: EnrollmentStatus,
        is_repeat: bool,
    ) -> Enrollment:
        enrollment = Enrollment(
            student_id=student_id,
            section_id=section.id,
            status=status.value,
            enrollment_date=self._now(),
            is_repeat=is_repeat,
        )
        try:
            return self.store.add_enrollment(session, enrollment)
        except RecordExistsError as e:
            raise DuplicateEnrollmentError(
                "Enrollment already exists for this student and section", details=e.details
            ) from e

    def _get_pending(self, session: Session, enrollment_id: str) -> Enrollment:
        enrollment = self.store.get_enrollment(enrollment_id, session=session)
        if enrollment.enrollment_status != EnrollmentStatus.PENDING:
            raise InvalidEnrollmentStateError(
                f"Enrollment is {enrollment.status}, only pending requests can be decided",
                details={"enrollment_id": enrollment_id, "status": enrollment.status},
            )
        return enrollment

    def _now(self) -> datetime:
        return as_naive_utc(self.clock())

    def _timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self.lock_timeout
