"""Schedule package - weekly time-slot conflicts and timetables."""

from registrar.schedule.detector import (
    ScheduleConflictDetector,
    find_overlaps,
    parse_schedule,
    slots_overlap,
)
from registrar.schedule.models import (
    WEEKDAYS,
    ConflictReport,
    ScheduleConflict,
    ScheduleEntry,
    SectionRef,
    TimeSlot,
    time_to_minutes,
)

__all__ = [
    "WEEKDAYS",
    "ConflictReport",
    "ScheduleConflict",
    "ScheduleConflictDetector",
    "ScheduleEntry",
    "SectionRef",
    "TimeSlot",
    "find_overlaps",
    "parse_schedule",
    "slots_overlap",
    "time_to_minutes",
]
