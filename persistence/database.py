"""
Database Initialization and Session Management

Handles SQLite database setup for Decodey. The Database object is created
and owned by the process entry point (open on start, close on shutdown);
repositories receive it explicitly.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from config import config
from errors import StorageError
from .models import Base

logger = logging.getLogger(__name__)


class Database:
    """
    Engine and session factory for one storage resource.

    Within one process, session scopes run under a re-entrant lock. Across
    Database objects and processes, every transaction opens with
    BEGIN IMMEDIATE, so SQLite admits one writer at a time and a
    read-modify-write never interleaves with another.
    """

    def __init__(self, database_url: Optional[str] = None):
        """
        Args:
            database_url: Optional custom database URL. If None, uses the
                          configured SQLite file in the data directory.
        """
        self.database_url = database_url or config.DATABASE_URL
        self._engine: Optional[Engine] = None
        self._session_factory = None
        self._lock = threading.RLock()

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> 'Database':
        """Create the engine and any missing tables. Safe to call twice."""
        if self._engine is not None:
            return self

        if self.database_url == config.DATABASE_URL:
            config.ensure_dirs()

        logger.info(f"Initializing database at: {self.database_url}")

        try:
            # Create engine with SQLite optimizations
            engine = create_engine(
                self.database_url,
                echo=False,  # Set to True for SQL debugging
                connect_args={
                    'check_same_thread': False,  # Required for SQLite with threads
                    'timeout': config.SQLITE_BUSY_TIMEOUT,
                },
                poolclass=StaticPool,  # Better for SQLite
            )

            # Enable foreign key support for SQLite, and let SQLAlchemy
            # emit BEGIN itself instead of the pysqlite driver
            @event.listens_for(engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                dbapi_connection.isolation_level = None
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            # Take the file write lock when the transaction starts. SQLite
            # ignores SELECT ... FOR UPDATE, so without this two connections
            # can both read a statistics row and one update is lost.
            @event.listens_for(engine, "begin")
            def begin_immediate(conn):
                conn.exec_driver_sql("BEGIN IMMEDIATE")

            # Create all tables
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            logger.error(f"Database initialization failed: {e}")
            raise StorageError(f"Cannot open database {self.database_url}: {e}") from e

        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

        logger.info("Database initialized successfully")
        return self

    def close(self):
        """Close the database connection (for cleanup)"""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connection closed")

    def __enter__(self) -> 'Database':
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def engine(self) -> Engine:
        """Get the database engine (for advanced usage)"""
        if self._engine is None:
            raise StorageError("Database is not open")
        return self._engine

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Context manager for database sessions.

        Commits on success, rolls back on any error. SQLAlchemy errors are
        re-raised as StorageError; other errors propagate unchanged.

        Usage:
            with database.session_scope() as session:
                session.add(...)
                session.query(...)
        """
        if self._session_factory is None:
            raise StorageError("Database is not open")

        with self._lock:
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Database error, rolling back: {e}")
                raise StorageError(str(e)) from e
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
