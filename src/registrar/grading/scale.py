"""Letter-grade bands, grade points and the total order over letter grades."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from registrar.store.models import LetterGrade

# Lower bound of each band, highest first; anything below the last is FF
LETTER_BANDS: tuple[tuple[Decimal, LetterGrade], ...] = (
    (Decimal(90), LetterGrade.AA),
    (Decimal(85), LetterGrade.BA),
    (Decimal(80), LetterGrade.BB),
    (Decimal(75), LetterGrade.CB),
    (Decimal(70), LetterGrade.CC),
    (Decimal(65), LetterGrade.DC),
    (Decimal(60), LetterGrade.DD),
    (Decimal(50), LetterGrade.FD),
)

GRADE_POINTS: dict[LetterGrade, Decimal] = {
    LetterGrade.AA: Decimal("4.0"),
    LetterGrade.BA: Decimal("3.5"),
    LetterGrade.BB: Decimal("3.0"),
    LetterGrade.CB: Decimal("2.5"),
    LetterGrade.CC: Decimal("2.0"),
    LetterGrade.DC: Decimal("1.5"),
    LetterGrade.DD: Decimal("1.0"),
    LetterGrade.FD: Decimal("0.5"),
    LetterGrade.FF: Decimal("0.0"),
}

# Grade point at or above which a finalized enrollment counts as completed
PASSING_GRADE_POINT = Decimal("1.0")

_TWO_PLACES = Decimal("0.01")


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    """Exact decimal for a numeric input; floats go through their shortest repr."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Decimal | float, places: Decimal = _TWO_PLACES) -> Decimal:
    """Round to two decimals with half-up rounding (2.345 -> 2.35)."""
    return to_decimal(value).quantize(places, rounding=ROUND_HALF_UP)


def letter_grade(average: float | int | Decimal) -> LetterGrade:
    """Map a 0-100 average onto the nine letter bands."""
    value = to_decimal(average)
    for lower_bound, grade in LETTER_BANDS:
        if value >= lower_bound:
            return grade
    return LetterGrade.FF


def grade_point(letter: LetterGrade | str) -> float:
    """Grade point (0.0-4.0) for a letter grade.

    Raises:
        ValueError: If the letter is not on the scale.
    """
    return float(GRADE_POINTS[LetterGrade(letter)])


def compare_grades(first: LetterGrade | str, second: LetterGrade | str) -> int:
    """Compare two letter grades on the FF < ... < AA order.

    Returns:
        Positive if first is higher, negative if lower, 0 if equal.

    Raises:
        ValueError: If either letter is not on the scale.
    """
    return LetterGrade(first).rank - LetterGrade(second).rank


def meets_minimum(grade: LetterGrade | str | None, minimum: LetterGrade | str) -> bool:
    """Whether an achieved grade satisfies a minimum-grade floor."""
    if grade is None:
        return False
    return compare_grades(grade, minimum) >= 0
