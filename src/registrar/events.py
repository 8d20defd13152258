"""Event manager for enrollment and grade notifications."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Types of events that can be emitted."""

    ENROLLMENT_CREATED = "enrollment_created"
    ENROLLMENT_REQUESTED = "enrollment_requested"
    ENROLLMENT_APPROVED = "enrollment_approved"
    ENROLLMENT_REJECTED = "enrollment_rejected"
    ENROLLMENT_DROPPED = "enrollment_dropped"
    GRADES_UPDATED = "grades_updated"
    GPA_RECOMPUTED = "gpa_recomputed"


@dataclass
class Event:
    """A domain event handed to subscribers after the change is committed."""

    event_type: EventType
    data: dict[str, Any]
    student_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "id": self.id,
            "type": self.event_type.value,
            "student_id": self.student_id,
            "occurred_at": self.occurred_at.isoformat(),
            "data": self.data,
        }


EventHandler = Callable[[Event], None]


@dataclass
class Subscriber:
    """A subscriber to the event stream."""

    id: str
    handler: EventHandler
    event_types: frozenset[EventType] | None = None  # None means all event types

    @classmethod
    def create(
        cls, handler: EventHandler, event_types: Iterable[EventType] | None = None
    ) -> Subscriber:
        """Create a new subscriber."""
        types = frozenset(event_types) if event_types is not None else None
        return cls(id=str(uuid4()), handler=handler, event_types=types)

    def accepts(self, event: Event) -> bool:
        return self.event_types is None or event.event_type in self.event_types


@dataclass
class EventManager:
    """Dispatches events to notification hooks.

    Handler failures are logged and never propagate: a broken email or
    in-app notifier must not fail the enrollment or grade update that
    triggered it.
    """

    _subscribers: dict[str, Subscriber] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def subscribe(
        self, handler: EventHandler, event_types: Iterable[EventType] | None = None
    ) -> Subscriber:
        """Subscribe a handler to events.

        Args:
            handler: Callable invoked with each matching Event.
            event_types: Event types to receive. None means all.

        Returns:
            Subscriber instance; keep its id to unsubscribe.
        """
        subscriber = Subscriber.create(handler, event_types)
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unsubscribe a handler.

        Args:
            subscriber_id: ID of the subscriber to remove.
        """
        with self._lock:
            self._subscribers.pop(subscriber_id, None)

    def emit(self, event: Event) -> None:
        """Deliver an event to all matching subscribers.

        Args:
            event: Event to emit.
        """
        with self._lock:
            subscribers = [s for s in self._subscribers.values() if s.accepts(event)]
        for subscriber in subscribers:
            try:
                subscriber.handler(event)
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s event", subscriber.id, event.event_type.value
                )

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        return len(self._subscribers)

    # Convenience methods for emitting specific event types

    def emit_enrollment_created(
        self,
        enrollment_id: str,
        student_id: str,
        section_id: str,
        course_code: str,
        is_repeat: bool,
    ) -> None:
        """Emit an enrollment_created event."""
        self.emit(
            Event(
                event_type=EventType.ENROLLMENT_CREATED,
                student_id=student_id,
                data={
                    "enrollment_id": enrollment_id,
                    "section_id": section_id,
                    "course_code": course_code,
                    "is_repeat": is_repeat,
                },
            )
        )

    def emit_enrollment_requested(
        self, enrollment_id: str, student_id: str, section_id: str, course_code: str
    ) -> None:
        """Emit an enrollment_requested event."""
        self.emit(
            Event(
                event_type=EventType.ENROLLMENT_REQUESTED,
                student_id=student_id,
                data={
                    "enrollment_id": enrollment_id,
                    "section_id": section_id,
                    "course_code": course_code,
                },
            )
        )

    def emit_enrollment_approved(
        self, enrollment_id: str, student_id: str, approved_by: str | None
    ) -> None:
        """Emit an enrollment_approved event."""
        self.emit(
            Event(
                event_type=EventType.ENROLLMENT_APPROVED,
                student_id=student_id,
                data={"enrollment_id": enrollment_id, "approved_by": approved_by},
            )
        )

    def emit_enrollment_rejected(self, enrollment_id: str, student_id: str, reason: str) -> None:
        """Emit an enrollment_rejected event."""
        self.emit(
            Event(
                event_type=EventType.ENROLLMENT_REJECTED,
                student_id=student_id,
                data={"enrollment_id": enrollment_id, "reason": reason},
            )
        )

    def emit_enrollment_dropped(
        self, enrollment_id: str, student_id: str, section_id: str, course_code: str
    ) -> None:
        """Emit an enrollment_dropped event."""
        self.emit(
            Event(
                event_type=EventType.ENROLLMENT_DROPPED,
                student_id=student_id,
                data={
                    "enrollment_id": enrollment_id,
                    "section_id": section_id,
                    "course_code": course_code,
                },
            )
        )

    def emit_grades_updated(
        self,
        enrollment_id: str,
        student_id: str,
        status: str,
        letter_grade: str | None,
        grade_point: float | None,
    ) -> None:
        """Emit a grades_updated event."""
        self.emit(
            Event(
                event_type=EventType.GRADES_UPDATED,
                student_id=student_id,
                data={
                    "enrollment_id": enrollment_id,
                    "status": status,
                    "letter_grade": letter_grade,
                    "grade_point": grade_point,
                },
            )
        )

    def emit_gpa_recomputed(
        self, student_id: str, cgpa: float, gpa: float, total_credits: int
    ) -> None:
        """Emit a gpa_recomputed event."""
        self.emit(
            Event(
                event_type=EventType.GPA_RECOMPUTED,
                student_id=student_id,
                data={"cgpa": cgpa, "gpa": gpa, "total_credits": total_credits},
            )
        )
