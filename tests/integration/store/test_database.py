"""Integration tests for the academic store database."""

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from registrar.store import AcademicStore, Enrollment, TransactionTimeoutError
from registrar.store.database import Database


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "registrar.db")


@pytest.fixture
def file_store(db_path: str) -> Iterator[AcademicStore]:
    """AcademicStore backed by a real SQLite file."""
    store = AcademicStore(db_path)
    yield store
    store.close()


@pytest.mark.integration
class TestDatabaseSetup:
    """Tests for database setup."""

    def test_creates_file_and_parent_dirs(self, tmp_path: Path) -> None:
        path = tmp_path / "data" / "nested" / "registrar.db"
        db = Database(str(path))
        db.create_tables()

        assert path.exists()
        db.close()

    def test_creates_tables(self, file_store: AcademicStore) -> None:
        tables = set(inspect(file_store.database.engine).get_table_names())

        assert tables == {
            "departments",
            "courses",
            "course_prerequisites",
            "course_sections",
            "students",
            "enrollments",
        }

    def test_wal_mode(self, file_store: AcademicStore) -> None:
        assert file_store.database.is_wal_mode()

    def test_foreign_keys_enabled(self, file_store: AcademicStore) -> None:
        with file_store.database.engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_create_tables_is_idempotent(self, db_path: str) -> None:
        db = Database(db_path)
        db.create_tables()
        db.create_tables()

        assert len(inspect(db.engine).get_table_names()) == 6
        db.close()

    def test_data_survives_reopen(self, db_path: str) -> None:
        store = AcademicStore(db_path)
        course = store.create_course(code="CS101", name="Intro")
        store.close()

        reopened = AcademicStore(db_path)
        assert reopened.get_course(course.id).code == "CS101"
        reopened.close()


@pytest.mark.integration
class TestConstraints:
    """Tests for constraints enforced by the schema itself."""

    def test_enrolled_count_cannot_exceed_capacity(self, file_store: AcademicStore) -> None:
        course = file_store.create_course(code="CS101", name="Intro")
        section = file_store.create_section(course.id, "fall", 2024, capacity=1)

        with (
            pytest.raises(IntegrityError),
            file_store.transaction() as session,
        ):
            session.execute(
                text("UPDATE course_sections SET enrolled_count = 2 WHERE id = :id"),
                {"id": section.id},
            )

        assert file_store.get_section(section.id).enrolled_count == 0

    def test_enrollment_requires_existing_student(self, file_store: AcademicStore) -> None:
        course = file_store.create_course(code="CS101", name="Intro")
        section = file_store.create_section(course.id, "fall", 2024)

        with pytest.raises(IntegrityError), file_store.transaction() as session:
            session.add(Enrollment(student_id="nonexistent-id", section_id=section.id))
            session.flush()


@pytest.mark.integration
class TestTransactions:
    """Tests for the locked write transaction."""

    def test_timeout_when_write_lock_is_held(self, file_store: AcademicStore, db_path: str) -> None:
        blocker = sqlite3.connect(db_path, isolation_level=None)
        blocker.execute("BEGIN IMMEDIATE")
        try:
            with (
                pytest.raises(TransactionTimeoutError),
                file_store.transaction(timeout=0.1),
            ):
                pass
        finally:
            blocker.execute("ROLLBACK")
            blocker.close()

    def test_lock_released_after_rollback(self, file_store: AcademicStore) -> None:
        with pytest.raises(RuntimeError), file_store.transaction():
            raise RuntimeError("abort")

        with file_store.transaction(timeout=0.1) as session:
            assert session.execute(text("SELECT 1")).scalar() == 1

    def test_rollback_discards_counter_and_row(self, file_store: AcademicStore) -> None:
        """A failed transaction leaves neither a seat nor an enrollment behind."""
        course = file_store.create_course(code="CS101", name="Intro")
        section = file_store.create_section(course.id, "fall", 2024, capacity=5)
        student = file_store.create_student("S00001", "Ada", "King")

        with pytest.raises(RuntimeError), file_store.transaction() as session:
            file_store.conditional_increment(session, section.id)
            file_store.add_enrollment(
                session, Enrollment(student_id=student.id, section_id=section.id)
            )
            raise RuntimeError("timeout in a later step")

        assert file_store.get_section(section.id).enrolled_count == 0
        assert file_store.find_enrollment(student.id, section.id) is None
