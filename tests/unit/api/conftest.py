"""Fixtures for route tests: the full app on an in-memory database."""

import itertools
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from registrar.api import create_app
from registrar.config import Settings

STUDENT_PASSWORD = "student-pass"

Headers = dict[str, str]


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Create a test client; entering it runs startup (schema and admin bootstrap)."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def login(client: TestClient) -> Callable[[str, str], Headers]:
    """Log in and return bearer headers."""

    def do_login(email: str, password: str) -> Headers:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return do_login


@pytest.fixture
def admin_headers(settings: Settings, login: Callable[[str, str], Headers]) -> Headers:
    return login(settings.admin_email, settings.admin_password)


@pytest.fixture
def create_course(client: TestClient, admin_headers: Headers) -> Callable[..., dict[str, Any]]:
    """Factory creating courses through the API."""
    counter = itertools.count(101)

    def factory(**fields: Any) -> dict[str, Any]:
        n = next(counter)
        body = {"courseCode": f"CS{n}", "courseName": f"Computer Science {n}", **fields}
        response = client.post("/api/courses", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return factory


@pytest.fixture
def create_student(
    client: TestClient,
    admin_headers: Headers,
    login: Callable[[str, str], Headers],
) -> Callable[..., tuple[dict[str, Any], Headers]]:
    """Factory creating students with login accounts; returns (student, headers)."""
    counter = itertools.count(1)

    def factory(**fields: Any) -> tuple[dict[str, Any], Headers]:
        n = next(counter)
        body = {
            "studentId": f"STU{n:03d}",
            "firstName": f"First{n}",
            "lastName": f"Last{n}",
            "email": f"student{n}@example.com",
            "password": STUDENT_PASSWORD,
            **fields,
        }
        response = client.post("/api/students", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"], login(body["email"], STUDENT_PASSWORD)

    return factory
