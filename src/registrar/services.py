"""Service wiring - builds the engine components from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from registrar.config import RegistrarConfig
from registrar.enrollment import EnrollmentOrchestrator
from registrar.events import EventManager
from registrar.grading import GradeEngine
from registrar.prerequisites import PrerequisiteResolver
from registrar.schedule import ScheduleConflictDetector
from registrar.store import AcademicStore

logger = logging.getLogger(__name__)


@dataclass
class Registrar:
    """The four engine components sharing one store and one event manager."""

    store: AcademicStore
    event_manager: EventManager
    resolver: PrerequisiteResolver
    detector: ScheduleConflictDetector
    grades: GradeEngine
    enrollment: EnrollmentOrchestrator

    def close(self) -> None:
        """Release the database connection."""
        self.store.close()


def build_services(
    config: RegistrarConfig | None = None,
    event_manager: EventManager | None = None,
) -> Registrar:
    """Create the store and all engine components for a configuration.

    Args:
        config: Registrar configuration. Defaults are used when None.
        event_manager: Shared EventManager; a fresh one is created when None.

    Returns:
        Wired Registrar components.
    """
    config = config if config is not None else RegistrarConfig()
    lock_timeout = config.enrollment.lock_timeout_seconds

    store = AcademicStore(config.get_db_path(), busy_timeout=lock_timeout)
    events = event_manager if event_manager is not None else EventManager()
    resolver = PrerequisiteResolver(store)
    detector = ScheduleConflictDetector(store)

    logger.info(
        "Registrar services ready (db=%s, drop_window_days=%d, allow_schedule_conflicts=%s)",
        config.get_db_path(),
        config.enrollment.drop_window_days,
        config.enrollment.allow_schedule_conflicts,
    )

    return Registrar(
        store=store,
        event_manager=events,
        resolver=resolver,
        detector=detector,
        grades=GradeEngine(
            store, event_manager=events, weights=config.grading.weights, lock_timeout=lock_timeout
        ),
        enrollment=EnrollmentOrchestrator(
            store,
            resolver=resolver,
            detector=detector,
            event_manager=events,
            drop_window_days=config.enrollment.drop_window_days,
            allow_schedule_conflicts=config.enrollment.allow_schedule_conflicts,
            lock_timeout=lock_timeout,
        ),
    )
