"""Data models for the Schedule module."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def time_to_minutes(value: str) -> int:
    """Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight.

    Raises:
        ValueError: If the string is not a valid time of day.
    """
    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59 or (hours == 24 and minutes != 0):
        raise ValueError(f"Invalid time '{value}', out of range")
    return hours * 60 + minutes


class TimeSlot(BaseModel):
    """A weekly recurring meeting: day of week plus [start, end) time."""

    model_config = ConfigDict(frozen=True)

    day: str
    start_time: str
    end_time: str

    @field_validator("day")
    @classmethod
    def normalize_day(cls, value: str) -> str:
        day = value.strip().lower()
        if day not in WEEKDAYS:
            raise ValueError(f"Unknown day '{value}'")
        return day

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, value: str) -> str:
        minutes = time_to_minutes(value)
        return f"{minutes // 60:02d}:{minutes % 60:02d}"

    @model_validator(mode="after")
    def check_order(self) -> TimeSlot:
        if self.end_minutes <= self.start_minutes:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    @property
    def day_index(self) -> int:
        return WEEKDAYS.index(self.day)

    @property
    def label(self) -> str:
        return f"{self.start_time} - {self.end_time}"

    def to_json(self) -> dict[str, str]:
        """Serialize in the stored schedule_json shape."""
        return {"day": self.day, "start_time": self.start_time, "end_time": self.end_time}


@dataclass
class SectionRef:
    """Course and section identity used in conflict and schedule reports."""

    section_id: str
    section_number: int
    course_code: str
    course_name: str


@dataclass
class ScheduleConflict:
    """One overlapping pair of slots between an existing and a candidate section.

    Attributes:
        existing: The section the student already holds.
        candidate: The section being requested.
        day: Shared day of week.
        existing_time: "HH:MM - HH:MM" of the existing slot.
        candidate_time: "HH:MM - HH:MM" of the candidate slot.
    """

    existing: SectionRef
    candidate: SectionRef
    day: str
    existing_time: str
    candidate_time: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "existing_course": self.existing.course_code,
            "existing_section": self.existing.section_number,
            "candidate_course": self.candidate.course_code,
            "candidate_section": self.candidate.section_number,
            "day": self.day,
            "existing_time": self.existing_time,
            "candidate_time": self.candidate_time,
        }


@dataclass
class ConflictReport:
    """Result of a conflict check; lists every conflicting pair."""

    conflicts: list[ScheduleConflict] = field(default_factory=list)

    @property
    def has_conflict(self) -> bool:
        return bool(self.conflicts)

    @property
    def days(self) -> list[str]:
        """Distinct conflicting days in weekday order."""
        return sorted({c.day for c in self.conflicts}, key=WEEKDAYS.index)


@dataclass
class ScheduleEntry:
    """One meeting in a student's weekly schedule."""

    day: str
    start_time: str
    end_time: str
    course_code: str
    course_name: str
    section_id: str
    section_number: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "course": {"code": self.course_code, "name": self.course_name},
            "section_id": self.section_id,
            "section_number": self.section_number,
        }
