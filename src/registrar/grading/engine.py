"""GradeEngine - letter grades, grade points and GPA aggregation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from registrar.exceptions import RegistrarError
from registrar.grading import scale
from registrar.grading.exceptions import GradingNotAllowedError, InvalidGradeRangeError
from registrar.grading.models import (
    COMPONENTS,
    DEFAULT_WEIGHTS,
    NO_HOMEWORK_WEIGHTS,
    BulkGradeResult,
    CGPAReport,
    CourseGrade,
    GradeComponents,
    GradeEntryError,
    GradeEntryResult,
    SemesterGPA,
    Transcript,
)
from registrar.store.models import EnrollmentStatus, LetterGrade, Semester, utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from registrar.events import EventManager
    from registrar.store import AcademicStore, Enrollment

logger = logging.getLogger(__name__)

# Statuses whose grade point counts toward GPA
GRADED_STATUSES = (EnrollmentStatus.COMPLETED, EnrollmentStatus.FAILED)

# Statuses that may receive grade components
GRADABLE_STATUSES = (
    EnrollmentStatus.ENROLLED,
    EnrollmentStatus.COMPLETED,
    EnrollmentStatus.FAILED,
)


def _check_range(name: str, value: float | None) -> None:
    if value is not None and not 0 <= value <= 100:
        raise InvalidGradeRangeError(
            f"{name} grade must be between 0 and 100, got {value}",
            details={"component": name, "value": value},
        )


def _gpa(points: Decimal, credits: int) -> float:
    if credits <= 0:
        return 0.0
    return float(scale.round_half_up(points / Decimal(credits)))


class GradeEngine:
    """Computes grades and owns the grade/GPA-derived fields.

    The only writer of Enrollment average/letter/grade point and of the
    cached Student gpa, cgpa and total_credits. Cached student values are
    always rebuilt from the full enrollment history, never patched.
    """

    def __init__(
        self,
        store: AcademicStore,
        event_manager: EventManager | None = None,
        weights: Mapping[str, float] | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        """Initialize the GradeEngine.

        Args:
            store: AcademicStore for enrollment and student persistence.
            event_manager: Receives grades_updated / gpa_recomputed events (optional).
            weights: Midterm/final/homework weights used when homework is present.
            lock_timeout: Seconds to wait for the write lock on updates.
        """
        self.store = store
        self.event_manager = event_manager
        self.weights = dict(weights) if weights is not None else dict(DEFAULT_WEIGHTS)
        self.lock_timeout = lock_timeout

    # --- Pure calculations ---

    def compute_average(
        self,
        midterm: float,
        final: float,
        homework: float | None = None,
        weights: Mapping[str, float] | None = None,
    ) -> float:
        """Weighted average of grade components.

        With homework: weights (default 0.30 midterm, 0.50 final, 0.20
        homework). Without homework: 0.40 midterm, 0.60 final.

        Raises:
            InvalidGradeRangeError: If a component is outside 0-100.
        """
        return float(self._average(midterm, final, homework, weights))

    def _average(
        self,
        midterm: float,
        final: float,
        homework: float | None,
        weights: Mapping[str, float] | None = None,
    ) -> Decimal:
        _check_range("midterm", midterm)
        _check_range("final", final)
        _check_range("homework", homework)

        if homework is None:
            w = NO_HOMEWORK_WEIGHTS
            return scale.to_decimal(midterm) * scale.to_decimal(w["midterm"]) + scale.to_decimal(
                final
            ) * scale.to_decimal(w["final"])

        w = weights if weights is not None else self.weights
        total = Decimal(0)
        for name, value in zip(COMPONENTS, (midterm, final, homework), strict=True):
            total += scale.to_decimal(value) * scale.to_decimal(w[name])
        return total

    @staticmethod
    def letter_grade(average: float | Decimal) -> LetterGrade:
        """Letter grade for a 0-100 average."""
        return scale.letter_grade(average)

    @staticmethod
    def grade_point(letter: LetterGrade | str) -> float:
        """Grade point for a letter grade."""
        return scale.grade_point(letter)

    # --- Grade entry ---

    def update_grades(
        self,
        enrollment_id: str,
        components: GradeComponents | Mapping[str, Any],
        timeout: float | None = None,
    ) -> Enrollment:
        """Record grade components and, once midterm and final exist, finalize the grade.

        Finalizing sets average, letter grade and grade point and moves the
        enrollment to completed (grade point >= 1.0) or failed. Partial
        entry keeps the current status. The student's cached GPA fields are
        recomputed in the same transaction.

        Args:
            enrollment_id: The enrollment being graded.
            components: Any of midterm, final, homework (0-100).
            timeout: Seconds to wait for the write lock (optional).

        Returns:
            The updated Enrollment.

        Raises:
            InvalidGradeRangeError: If a component is outside 0-100.
            EnrollmentNotFoundError: If the enrollment doesn't exist.
            GradingNotAllowedError: If the enrollment is pending, dropped, rejected or withdrawn.
        """
        grades = self._validate_components(components)

        with self.store.transaction(timeout=self._timeout(timeout)) as session:
            enrollment = self.store.get_enrollment(enrollment_id, session=session)
            status = enrollment.enrollment_status
            if status not in GRADABLE_STATUSES:
                raise GradingNotAllowedError(
                    f"Cannot grade an enrollment in status '{status.value}'",
                    details={"enrollment_id": enrollment_id, "status": status.value},
                )

            supplied = grades.supplied()
            if "midterm" in supplied:
                enrollment.midterm_grade = supplied["midterm"]
            if "final" in supplied:
                enrollment.final_grade = supplied["final"]
            if "homework" in supplied:
                enrollment.homework_grade = supplied["homework"]

            if enrollment.midterm_grade is not None and enrollment.final_grade is not None:
                average = self._average(
                    enrollment.midterm_grade, enrollment.final_grade, enrollment.homework_grade
                )
                letter = scale.letter_grade(average)
                point = scale.grade_point(letter)
                enrollment.average_grade = float(average)
                enrollment.letter_grade = letter.value
                enrollment.grade_point = point
                enrollment.enrollment_status = (
                    EnrollmentStatus.COMPLETED
                    if Decimal(str(point)) >= scale.PASSING_GRADE_POINT
                    else EnrollmentStatus.FAILED
                )
                logger.info(
                    "Enrollment %s graded: average=%s letter=%s point=%.1f status=%s",
                    enrollment_id,
                    enrollment.average_grade,
                    letter.value,
                    point,
                    enrollment.status,
                )
            elif enrollment.letter_grade is not None:
                # A required component was cleared; the final grade no longer stands
                enrollment.average_grade = None
                enrollment.letter_grade = None
                enrollment.grade_point = None
                enrollment.enrollment_status = EnrollmentStatus.ENROLLED
                logger.info(
                    "Enrollment %s grade withdrawn, components now %s", enrollment_id, supplied
                )
            else:
                logger.info("Enrollment %s partial grades recorded: %s", enrollment_id, supplied)

            session.flush()
            student_id = enrollment.student_id
            report = self._recompute(session, student_id)

        updated = self.store.get_enrollment(enrollment_id)
        if self.event_manager is not None:
            self.event_manager.emit_grades_updated(
                enrollment_id=updated.id,
                student_id=student_id,
                status=updated.status,
                letter_grade=updated.letter_grade,
                grade_point=updated.grade_point,
            )
            self.event_manager.emit_gpa_recomputed(
                student_id, report.cgpa, report.latest_gpa, report.total_credits
            )
        return updated

    def bulk_update_grades(
        self,
        section_id: str,
        entries: Iterable[Mapping[str, Any]],
    ) -> BulkGradeResult:
        """Apply grade entries for one section, each independently.

        Each entry is a mapping with ``enrollment_id`` plus any of midterm,
        final, homework. A failing entry is reported and the rest still apply.

        Args:
            section_id: Section the enrollments must belong to.
            entries: Grade entries.

        Returns:
            BulkGradeResult with per-entry results and errors.
        """
        result = BulkGradeResult()
        for entry in entries:
            enrollment_id = entry.get("enrollment_id")
            components = {k: v for k, v in entry.items() if k != "enrollment_id"}
            try:
                if not enrollment_id:
                    raise InvalidGradeRangeError("Grade entry is missing enrollment_id")
                enrollment = self.store.get_enrollment(enrollment_id)
                if enrollment.section_id != section_id:
                    raise GradingNotAllowedError(
                        f"Enrollment '{enrollment_id}' is not in section '{section_id}'",
                        details={"enrollment_id": enrollment_id, "section_id": section_id},
                    )
                updated = self.update_grades(enrollment_id, components)
            except RegistrarError as e:
                logger.warning("Bulk grade entry %s failed: %s", enrollment_id, e)
                result.errors.append(
                    GradeEntryError(enrollment_id=enrollment_id, kind=e.kind.value, message=str(e))
                )
                continue
            result.results.append(
                GradeEntryResult(
                    enrollment_id=updated.id,
                    status=updated.status,
                    letter_grade=updated.letter_grade,
                    grade_point=updated.grade_point,
                )
            )

        logger.info(
            "Bulk grades for section %s: %d updated, %d failed",
            section_id,
            len(result.results),
            len(result.errors),
        )
        return result

    # --- GPA aggregation ---

    def compute_cgpa(self, student_id: str, session: Session | None = None) -> CGPAReport:
        """Cumulative GPA over all completed/failed enrollments with a grade point.

        Every attempt of a repeated course counts as recorded. Semesters are
        ordered by year, then spring < summer < fall. All GPA values are
        rounded half-up to two decimals.

        Args:
            student_id: The student's unique ID.
            session: Run inside this session (optional).

        Returns:
            CGPAReport with per-semester breakdown.

        Raises:
            StudentNotFoundError: If the student doesn't exist.
        """
        with self.store.read_session(session) as s:
            self.store.get_student(student_id, session=s)
            enrollments = self.store.list_enrollments(
                student_id, statuses=GRADED_STATUSES, session=s
            )

        total_points = Decimal(0)
        total_credits = 0
        by_term: dict[tuple[int, str], list[CourseGrade]] = {}

        for enrollment in enrollments:
            if enrollment.grade_point is None:
                continue
            section = enrollment.section
            credits = section.course.credits
            total_points += scale.to_decimal(enrollment.grade_point) * credits
            total_credits += credits
            by_term.setdefault((section.year, section.semester), []).append(
                CourseGrade(
                    enrollment_id=enrollment.id,
                    course_code=section.course.code,
                    course_name=section.course.name,
                    credits=credits,
                    letter_grade=enrollment.letter_grade,
                    grade_point=enrollment.grade_point,
                    is_repeat=enrollment.is_repeat,
                )
            )

        semesters = [
            self._semester_gpa(semester, year, courses)
            for (year, semester), courses in sorted(
                by_term.items(), key=lambda item: (item[0][0], Semester(item[0][1]).order)
            )
        ]

        return CGPAReport(
            student_id=student_id,
            cgpa=_gpa(total_points, total_credits),
            total_credits=total_credits,
            semesters=semesters,
        )

    def compute_semester_gpa(
        self, student_id: str, semester: Semester | str, year: int
    ) -> SemesterGPA:
        """GPA for one term, computed the same way as the cumulative figure."""
        term = Semester(semester)
        enrollments = self.store.list_enrollments(
            student_id, statuses=GRADED_STATUSES, semester=term, year=year
        )
        courses = [
            CourseGrade(
                enrollment_id=e.id,
                course_code=e.section.course.code,
                course_name=e.section.course.name,
                credits=e.section.course.credits,
                letter_grade=e.letter_grade,
                grade_point=e.grade_point,
                is_repeat=e.is_repeat,
            )
            for e in enrollments
            if e.grade_point is not None
        ]
        return self._semester_gpa(term.value, year, courses)

    @staticmethod
    def _semester_gpa(semester: str, year: int, courses: list[CourseGrade]) -> SemesterGPA:
        points = sum(
            (scale.to_decimal(c.grade_point) * c.credits for c in courses), start=Decimal(0)
        )
        credits = sum(c.credits for c in courses)
        return SemesterGPA(
            semester=semester,
            year=year,
            gpa=_gpa(points, credits),
            total_credits=credits,
            courses=courses,
        )

    def recompute_student_gpa(self, student_id: str, timeout: float | None = None) -> CGPAReport:
        """Rebuild the student's cached gpa, cgpa and total_credits from enrollment history.

        Idempotent: repeated or out-of-order calls converge to the same values.

        Raises:
            StudentNotFoundError: If the student doesn't exist.
        """
        with self.store.transaction(timeout=self._timeout(timeout)) as session:
            report = self._recompute(session, student_id)

        if self.event_manager is not None:
            self.event_manager.emit_gpa_recomputed(
                student_id, report.cgpa, report.latest_gpa, report.total_credits
            )
        return report

    def _recompute(self, session: Session, student_id: str) -> CGPAReport:
        report = self.compute_cgpa(student_id, session=session)
        student = self.store.get_student(student_id, session=session)
        student.cgpa = report.cgpa
        student.gpa = report.latest_gpa
        student.total_credits = report.total_credits
        session.flush()
        logger.info(
            "Student %s GPA recomputed: cgpa=%.2f gpa=%.2f credits=%d",
            student_id,
            report.cgpa,
            report.latest_gpa,
            report.total_credits,
        )
        return report

    def get_transcript(self, student_id: str) -> Transcript:
        """Assemble transcript data for a student.

        Raises:
            StudentNotFoundError: If the student doesn't exist.
        """
        student = self.store.get_student(student_id)
        report = self.compute_cgpa(student_id)
        return Transcript(
            student_id=student.id,
            student_number=student.student_number,
            first_name=student.first_name,
            last_name=student.last_name,
            email=student.email,
            department=student.department.name if student.department is not None else None,
            cgpa=report.cgpa,
            total_credits=report.total_credits,
            semesters=report.semesters,
            generated_at=utcnow(),
        )

    def _timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self.lock_timeout

    @staticmethod
    def _validate_components(components: GradeComponents | Mapping[str, Any]) -> GradeComponents:
        if isinstance(components, GradeComponents):
            return components
        try:
            return GradeComponents.model_validate(dict(components))
        except ValidationError as e:
            error = e.errors()[0]
            component = ".".join(str(part) for part in error["loc"]) or "grades"
            raise InvalidGradeRangeError(
                f"Invalid {component} grade: {error['msg']}",
                details={"component": component, "value": error.get("input")},
            ) from e
