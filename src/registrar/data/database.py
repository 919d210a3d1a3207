"""Database connection manager for the registrar store."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from registrar.data.models import Base
from registrar.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = get_logger("data.database")

MEMORY_URL = "sqlite://"
SQLITE_BUSY_TIMEOUT = 30


def _normalize_url(url: str) -> str:
    """Accept a bare path or ':memory:' in addition to SQLAlchemy URLs."""
    if url == ":memory:":
        return MEMORY_URL
    if "://" not in url:
        return f"sqlite:///{url}"
    return url


class Database:
    """Database connection manager.

    Manages SQLite (WAL mode, immediate write transactions) or Postgres
    connections through one engine and session factory.
    """

    def __init__(self, url: str = "sqlite:///registrar.db") -> None:
        """Initialize database connection.

        Args:
            url: SQLAlchemy database URL. A plain file path or ":memory:" is
                 treated as SQLite.
        """
        self.url = _normalize_url(url)
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.url).get_backend_name() == "sqlite"

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and make_url(self.url).database in (None, "", ":memory:")

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if not self.is_sqlite:
                self._engine = create_engine(self.url, echo=False, pool_pre_ping=True)
                return self._engine

            if self.is_memory:
                # One shared connection so every session sees the same database
                self._engine = create_engine(
                    MEMORY_URL,
                    echo=False,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            else:
                db_file = make_url(self.url).database
                Path(db_file).parent.mkdir(parents=True, exist_ok=True)
                self._engine = create_engine(
                    self.url,
                    echo=False,
                    connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
                )

            @event.listens_for(self._engine, "connect")
            def set_sqlite_pragma(dbapi_connection: object, _connection_record: object) -> None:
                # Let SQLAlchemy emit BEGIN itself (see do_begin)
                dbapi_connection.isolation_level = None  # type: ignore[attr-defined]
                cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            @event.listens_for(self._engine, "begin")
            def do_begin(conn: object) -> None:
                # Take the write lock up front so check-then-insert sequences serialise
                conn.exec_driver_sql("BEGIN IMMEDIATE")  # type: ignore[attr-defined]

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

    def connect(self, retries: int = 5, backoff: float = 0.5) -> None:
        """Verify the database is reachable, retrying with exponential backoff.

        Args:
            retries: Total number of attempts.
            backoff: Delay before the second attempt; doubles after each failure.

        Raises:
            OperationalError: If the last attempt fails.
        """
        delay = backoff
        for attempt in range(1, retries + 1):
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info("Database connection established (%s)", self.safe_url)
                return
            except OperationalError:
                if attempt == retries:
                    logger.error("Database unreachable after %d attempts", retries)
                    raise
                logger.warning(
                    "Database connection attempt %d/%d failed, retrying in %.1fs",
                    attempt,
                    retries,
                    delay,
                )
                time.sleep(delay)
                delay *= 2

    def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except OperationalError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    @property
    def safe_url(self) -> str:
        """Database URL with the password hidden."""
        return make_url(self.url).render_as_string(hide_password=True)

    def create_tables(self) -> None:
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            A new SQLAlchemy session.
        """
        return self.session_factory()

    def close(self) -> None:
        """Close the database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
