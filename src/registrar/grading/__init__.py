"""Grading package - letter grades, grade points and GPA."""

from registrar.grading.engine import GradeEngine
from registrar.grading.exceptions import (
    GradingError,
    GradingNotAllowedError,
    InvalidGradeRangeError,
)
from registrar.grading.models import (
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
from registrar.grading.scale import (
    GRADE_POINTS,
    LETTER_BANDS,
    compare_grades,
    grade_point,
    letter_grade,
    meets_minimum,
)

__all__ = [
    "DEFAULT_WEIGHTS",
    "GRADE_POINTS",
    "LETTER_BANDS",
    "NO_HOMEWORK_WEIGHTS",
    "BulkGradeResult",
    "CGPAReport",
    "CourseGrade",
    "GradeComponents",
    "GradeEngine",
    "GradeEntryError",
    "GradeEntryResult",
    "GradingError",
    "GradingNotAllowedError",
    "InvalidGradeRangeError",
    "SemesterGPA",
    "Transcript",
    "compare_grades",
    "grade_point",
    "letter_grade",
    "meets_minimum",
]
