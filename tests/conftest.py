"""Shared pytest fixtures and configuration."""

import itertools
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from registrar.config import Settings
from registrar.data import Course, Database, RegistrarStore, Student
from registrar.enrollment import EnrollmentEngine

TEST_SECRET = "test-secret-key-not-for-production"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-pass-123"


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings for an in-memory database with a bootstrap admin."""
    return Settings(
        jwt_secret=TEST_SECRET,
        database_url=":memory:",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        log_dir=str(tmp_path / "logs"),
        db_connect_retries=1,
        db_connect_backoff=0.0,
    )


@pytest.fixture
def database() -> Iterator[Database]:
    """Create an in-memory database with the schema in place."""
    db = Database(":memory:")
    db.create_tables()
    yield db
    db.close()


@pytest.fixture
def store(database: Database) -> RegistrarStore:
    return RegistrarStore(database)


@pytest.fixture
def engine(database: Database) -> EnrollmentEngine:
    return EnrollmentEngine(database)


@pytest.fixture
def make_student(store: RegistrarStore) -> Callable[..., Student]:
    """Factory creating students with unique codes and emails."""
    counter = itertools.count(1)

    def factory(**kwargs) -> Student:
        n = next(counter)
        kwargs.setdefault("student_id", f"STU{n:03d}")
        kwargs.setdefault("first_name", f"First{n}")
        kwargs.setdefault("last_name", f"Last{n}")
        kwargs.setdefault("email", f"student{n}@example.com")
        return store.create_student(**kwargs)

    return factory


@pytest.fixture
def make_course(store: RegistrarStore) -> Callable[..., Course]:
    """Factory creating courses with unique codes."""
    counter = itertools.count(101)

    def factory(**kwargs) -> Course:
        n = next(counter)
        kwargs.setdefault("course_code", f"CS{n}")
        kwargs.setdefault("course_name", f"Computer Science {n}")
        return store.create_course(**kwargs)

    return factory
