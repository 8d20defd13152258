"""PrerequisiteResolver - transitive prerequisite closure and satisfaction checks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from registrar.grading.scale import compare_grades, meets_minimum
from registrar.prerequisites.models import (
    MissingPrerequisite,
    PrerequisiteCheck,
    PrerequisiteRequirement,
)
from registrar.store.models import DEFAULT_MIN_GRADE, EnrollmentStatus, LetterGrade

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from registrar.store import AcademicStore, CoursePrerequisite

logger = logging.getLogger(__name__)


def _requirement(edge: CoursePrerequisite) -> PrerequisiteRequirement:
    course = edge.prerequisite_course
    return PrerequisiteRequirement(
        course_id=course.id,
        code=course.code,
        name=course.name,
        credits=course.credits,
        min_grade=edge.min_grade or DEFAULT_MIN_GRADE.value,
    )


class PrerequisiteResolver:
    """Walks the prerequisite graph and checks completion history against it.

    Pure queries only; nothing here writes or locks.
    """

    def __init__(self, store: AcademicStore) -> None:
        """Initialize the resolver.

        Args:
            store: AcademicStore used for read queries.
        """
        self.store = store

    def direct_prerequisites(
        self, course_id: str, session: Session | None = None
    ) -> list[PrerequisiteRequirement]:
        """Immediate prerequisites of a course, ordered by code."""
        edges = self.store.list_prerequisite_edges(course_id, session=session)
        return sorted((_requirement(edge) for edge in edges), key=lambda r: r.code)

    def resolve(
        self, course_id: str, session: Session | None = None
    ) -> list[PrerequisiteRequirement]:
        """Transitive prerequisite closure of a course.

        Iterative depth-first walk with a visited set, so cycles in the graph
        end the walk instead of looping. Each course appears once, carrying
        the strictest minimum grade among the edges that reach it. The
        target course is never part of its own closure. Unknown course IDs
        resolve to an empty list.

        Args:
            course_id: The target course.
            session: Run inside this session (optional).

        Returns:
            Requirements in discovery order.
        """
        requirements: dict[str, PrerequisiteRequirement] = {}
        visited = {course_id}
        stack = [course_id]

        with self.store.read_session(session) as s:
            while stack:
                current = stack.pop()
                # Reversed so the lowest code is expanded first
                for requirement in reversed(self.direct_prerequisites(current, session=s)):
                    if requirement.course_id == course_id:
                        logger.warning(
                            "Prerequisite cycle: course %s leads back to %s", current, course_id
                        )
                        continue

                    known = requirements.get(requirement.course_id)
                    if known is None or compare_grades(requirement.min_grade, known.min_grade) > 0:
                        requirements[requirement.course_id] = requirement

                    if requirement.course_id in visited:
                        logger.debug("Course %s already expanded, not revisiting", requirement.code)
                        continue
                    visited.add(requirement.course_id)
                    stack.append(requirement.course_id)

        return list(requirements.values())

    def completed_grades(
        self, student_id: str, session: Session | None = None
    ) -> dict[str, LetterGrade]:
        """Best completed letter grade per course ID for a student."""
        enrollments = self.store.list_enrollments(
            student_id, statuses=[EnrollmentStatus.COMPLETED], session=session
        )
        best: dict[str, LetterGrade] = {}
        for enrollment in enrollments:
            if enrollment.letter_grade is None:
                continue
            course_id = enrollment.section.course_id
            grade = LetterGrade(enrollment.letter_grade)
            if course_id not in best or grade.rank > best[course_id].rank:
                best[course_id] = grade
        return best

    def has_completed_course(
        self,
        student_id: str,
        course_id: str,
        min_grade: LetterGrade | str = DEFAULT_MIN_GRADE,
        session: Session | None = None,
    ) -> bool:
        """Whether the student completed a course with at least min_grade."""
        best = self.completed_grades(student_id, session=session).get(course_id)
        return meets_minimum(best, min_grade)

    def check_satisfied(
        self, student_id: str, course_id: str, session: Session | None = None
    ) -> PrerequisiteCheck:
        """Check every course in the closure against the student's best completed grade.

        A prerequisite with no sections, or no completed enrollment meeting
        its floor, is reported as missing.

        Args:
            student_id: The student's unique ID.
            course_id: The target course.
            session: Run inside this session (optional).

        Returns:
            PrerequisiteCheck; satisfied when nothing is missing.
        """
        with self.store.read_session(session) as s:
            closure = self.resolve(course_id, session=s)
            if not closure:
                return PrerequisiteCheck(course_id=course_id)
            grades = self.completed_grades(student_id, session=s)

        missing = []
        for requirement in closure:
            best = grades.get(requirement.course_id)
            if not meets_minimum(best, requirement.min_grade):
                missing.append(
                    MissingPrerequisite(
                        course_id=requirement.course_id,
                        code=requirement.code,
                        name=requirement.name,
                        required_grade=requirement.min_grade,
                        best_grade=best.value if best is not None else None,
                    )
                )

        if missing:
            logger.debug(
                "Student %s missing %d prerequisite(s) for course %s",
                student_id,
                len(missing),
                course_id,
            )
        return PrerequisiteCheck(course_id=course_id, missing=missing)
