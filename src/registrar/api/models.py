"""Pydantic models for REST API."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
from pydantic.alias_generators import to_camel

from registrar.data import CourseStatus, Gender, RegistrationStatus, StudentStatus

T = TypeVar("T")
S = TypeVar("S")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CamelModel(BaseModel):
    """Base for models exchanged in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalize_email(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# Envelopes


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class Pagination(CamelModel):
    """Page position of a list response."""

    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(BaseModel, Generic[T]):
    """List response with pagination metadata."""

    success: bool = True
    data: list[T]
    pagination: Pagination


def page_to_response(page: Any, items: list[Any]) -> dict[str, Any]:
    """Build PaginatedResponse fields from a store Page and converted items."""
    return {
        "data": items,
        "pagination": Pagination(
            current_page=page.page,
            total_pages=page.total_pages,
            total_count=page.total_count,
            has_next=page.has_next,
            has_prev=page.has_prev,
        ),
    }


class FieldError(BaseModel):
    """One rejected request field."""

    field: str
    message: str
    value: Any = None


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    success: bool = False
    message: str
    code: str | None = None
    errors: list[FieldError] | None = None
    stack: str | None = None


# Auth models


class LoginRequest(BaseModel):
    """Request model for password login."""

    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=6)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        return _normalize_email(value)


class AccountResponse(BaseModel):
    """Response model for an account."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str
    is_active: bool
    last_login: datetime | None


class LoginResponse(BaseModel):
    """Response model for a successful login."""

    success: bool = True
    message: str = "Login successful"
    token: str
    user: AccountResponse


def account_to_response(account: Any) -> AccountResponse:
    """Convert an Account model to AccountResponse."""
    return AccountResponse.model_validate(account)


# Student models


class StudentCreate(CamelModel):
    """Request model for creating a student."""

    student_id: str = Field(..., min_length=3, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    phone: str | None = Field(default=None, max_length=20)
    date_of_birth: date | None = None
    gender: Gender | None = None
    address: str | None = None
    status: StudentStatus | None = None
    password: str | None = Field(default=None, min_length=6)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: Any) -> Any:
        return _normalize_email(value)

    @field_validator("student_id", "first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, value: Any) -> Any:
        return _strip(value)


class StudentUpdate(CamelModel):
    """Request model for updating a student (partial update)."""

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=20)
    date_of_birth: date | None = None
    gender: Gender | None = None
    address: str | None = None
    status: StudentStatus | None = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, value: Any) -> Any:
        return _strip(value)


class StudentResponse(BaseModel):
    """Response model for a student."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None
    student_id: str
    first_name: str
    last_name: str
    email: str
    phone: str | None
    date_of_birth: date | None
    gender: str | None
    address: str | None
    enrollment_date: datetime
    status: str
    created_at: datetime
    updated_at: datetime


def student_to_response(student: Any) -> StudentResponse:
    """Convert a Student model to StudentResponse."""
    return StudentResponse.model_validate(student)


# Course models


class CourseCreate(CamelModel):
    """Request model for creating a course."""

    course_code: str = Field(..., min_length=2, max_length=20)
    course_name: str = Field(..., min_length=3, max_length=255)
    description: str | None = None
    duration: str | None = Field(default=None, max_length=100)
    credits: int = Field(default=3, ge=1, le=10)
    instructor: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, max_length=255)
    semester: str | None = Field(default=None, max_length=50)
    year: int | None = Field(default=None, ge=2020, le=2030)
    max_students: int = Field(default=30, ge=1, le=500)
    status: CourseStatus | None = None

    @field_validator("course_code", "course_name", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return _strip(value)


class CourseUpdate(CamelModel):
    """Request model for updating a course (partial update).

    The course code is fixed at creation.
    """

    course_name: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = None
    duration: str | None = Field(default=None, max_length=100)
    credits: int | None = Field(default=None, ge=1, le=10)
    instructor: str | None = Field(default=None, max_length=255)
    department: str | None = Field(default=None, max_length=255)
    semester: str | None = Field(default=None, max_length=50)
    year: int | None = Field(default=None, ge=2020, le=2030)
    max_students: int | None = Field(default=None, ge=1, le=500)
    status: CourseStatus | None = None


class CourseResponse(BaseModel):
    """Response model for a course with its current enrollment."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    course_code: str
    course_name: str
    description: str | None
    duration: str | None
    credits: int
    instructor: str | None
    department: str | None
    semester: str | None
    year: int | None
    max_students: int
    status: str
    enrolled_count: int
    available_seats: int
    created_at: datetime
    updated_at: datetime


def course_to_response(course: Any) -> CourseResponse:
    """Convert a Course model to CourseResponse."""
    return CourseResponse.model_validate(course)


# Registration models


class RegistrationCreate(CamelModel):
    """Request model for enrolling the caller in a course."""

    course_id: PositiveInt


class RegistrationUpdate(CamelModel):
    """Request model for an admin registration update."""

    status: RegistrationStatus | None = None
    grade: str | None = Field(default=None, max_length=10)


class CourseSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_code: str
    course_name: str
    credits: int
    instructor: str | None
    semester: str | None
    year: int | None


class StudentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: str
    first_name: str
    last_name: str
    email: str


class RegistrationResponse(BaseModel):
    """Response model for a registration with its course and student."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    course_id: int
    registration_date: datetime
    status: str
    grade: str | None
    created_at: datetime
    updated_at: datetime
    course: CourseSummary | None = None
    student: StudentSummary | None = None


def registration_to_response(registration: Any) -> RegistrationResponse:
    """Convert a Registration model to RegistrationResponse."""
    return RegistrationResponse.model_validate(registration)


# Bulk models


class BulkEnrollRequest(CamelModel):
    """Request model for enrolling one student in several courses."""

    course_ids: list[PositiveInt] = Field(..., min_length=1)


class BulkDropRequest(CamelModel):
    """Request model for dropping several of one student's registrations."""

    registration_ids: list[PositiveInt] = Field(..., min_length=1)


class EnrollmentSuccessResponse(CamelModel):
    course_id: int
    course_name: str
    registration_id: int


class DropSuccessResponse(CamelModel):
    registration_id: int
    course_id: int


class BulkFailureResponse(CamelModel):
    id: int
    reason: str
    code: str


class BulkResponse(CamelModel, Generic[S]):
    """Per-item outcome of a bulk operation."""

    success: bool
    message: str
    successful: list[S]
    errors: list[BulkFailureResponse]
    success_count: int
    error_count: int


def bulk_to_response(result: Any, item_model: type[S], action: str) -> BulkResponse[S]:
    """Convert a BulkResult into a BulkResponse.

    Per-item failures never fail the request; the counts carry the outcome.
    """
    successful = [item_model.model_validate(asdict(item)) for item in result.successful]
    errors = [
        BulkFailureResponse(id=failure.item_id, reason=failure.reason, code=failure.code)
        for failure in result.errors
    ]
    return BulkResponse[item_model](
        success=True,
        message=(
            f"{action} completed: {result.success_count} successful, "
            f"{result.error_count} failed"
        ),
        successful=successful,
        errors=errors,
        success_count=result.success_count,
        error_count=result.error_count,
    )


# Health models


class HealthResponse(BaseModel):
    """Response model for the health check."""

    success: bool = True
    status: str = "ok"
    environment: str
    version: str
    uptime_seconds: float
    database: str
