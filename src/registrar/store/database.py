"""Database connection manager for the academic store."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from registrar.store.exceptions import StoreError, TransactionTimeoutError
from registrar.store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Connection, Engine

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT = 5.0

# Execution options read by the "begin" listener
BEGIN_MODE_OPTION = "registrar_begin_mode"
BUSY_TIMEOUT_OPTION = "registrar_busy_timeout_ms"


class Database:
    """Database connection manager.

    Manages SQLite database connections with WAL mode enabled. Transaction
    begin is emitted by this class rather than the driver so that write
    transactions can take the database write lock up front.
    """

    def __init__(
        self, db_path: str = "registrar.db", busy_timeout: float = DEFAULT_BUSY_TIMEOUT
    ) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Use ":memory:" for in-memory DB.
            busy_timeout: Default seconds to wait on a locked database.
        """
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            # In-memory databases share one connection across threads
            if self.db_path == ":memory:":
                self._engine = create_engine(
                    "sqlite:///:memory:",
                    echo=False,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                self._engine = create_engine(
                    f"sqlite:///{self.db_path}",
                    echo=False,
                    connect_args={"check_same_thread": False},
                )

            default_busy_ms = int(self.busy_timeout * 1000)

            @event.listens_for(self._engine, "connect")
            def set_sqlite_pragma(dbapi_connection: object, _connection_record: object) -> None:
                # Let the "begin" listener below emit BEGIN instead of pysqlite
                dbapi_connection.isolation_level = None  # type: ignore[attr-defined]
                cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute(f"PRAGMA busy_timeout={default_busy_ms}")
                cursor.close()

            @event.listens_for(self._engine, "begin")
            def do_begin(conn: Connection) -> None:
                options = conn.get_execution_options()
                busy_ms = options.get(BUSY_TIMEOUT_OPTION, default_busy_ms)
                conn.exec_driver_sql(f"PRAGMA busy_timeout={int(busy_ms)}")
                conn.exec_driver_sql(f"BEGIN {options.get(BEGIN_MODE_OPTION, 'DEFERRED')}")

        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_tables(self) -> None:
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            A new SQLAlchemy session.
        """
        return self.session_factory()

    @contextmanager
    def transaction(self, timeout: float | None = None) -> Iterator[Session]:
        """Open a write transaction holding the database write lock.

        The transaction starts with BEGIN IMMEDIATE, so concurrent writers
        are serialized for its whole duration. Commits when the block exits
        normally and rolls back fully on any exception.

        Args:
            timeout: Seconds to wait for the lock before giving up.
                     Defaults to the database busy timeout.

        Yields:
            Session bound to the open transaction.

        Raises:
            TransactionTimeoutError: If the lock could not be acquired in time.
            StoreError: On any other storage-level failure.
        """
        options: dict[str, object] = {BEGIN_MODE_OPTION: "IMMEDIATE"}
        if timeout is not None:
            options[BUSY_TIMEOUT_OPTION] = max(0, int(timeout * 1000))

        session = self.session_factory()
        try:
            session.connection(execution_options=options)
            yield session
            session.commit()
        except OperationalError as e:
            session.rollback()
            message = str(e.orig) if e.orig is not None else str(e)
            if "locked" in message or "busy" in message:
                logger.warning("Transaction timed out waiting for lock: %s", message)
                raise TransactionTimeoutError(
                    "Timed out waiting for the database lock",
                    details={"timeout_seconds": timeout},
                ) from e
            logger.error("Storage failure, transaction rolled back: %s", message)
            raise StoreError(f"Storage failure: {message}") from e
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def is_wal_mode(self) -> bool:
        """Check if WAL mode is enabled.

        Returns:
            True if WAL mode is enabled.
        """
        with self.engine.connect() as conn:
            result = conn.execute(text("PRAGMA journal_mode"))
            mode = result.scalar()
            return mode == "wal"

    def close(self) -> None:
        """Close the database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
