"""Data layer - persistent storage for accounts, students, courses and registrations."""

from registrar.data.database import Database
from registrar.data.exceptions import (
    AccountNotFoundError,
    AlreadyRegisteredError,
    CapacityBelowEnrollmentError,
    CapacityExceededError,
    ConflictError,
    CourseFullError,
    CourseHasEnrollmentsError,
    CourseInactiveError,
    CourseNotFoundError,
    DuplicateCourseCodeError,
    DuplicateEmailError,
    DuplicateStudentIdError,
    InvalidIdError,
    InvalidStateError,
    NotFoundError,
    NoUpdateFieldsError,
    RegistrarError,
    RegistrationNotActiveError,
    RegistrationNotFoundError,
    StudentNotFoundError,
    ValidationFailedError,
)
from registrar.data.models import (
    Account,
    Course,
    CourseStatus,
    Gender,
    Page,
    Registration,
    RegistrationStatus,
    Role,
    Student,
    StudentStatus,
)
from registrar.data.store import RegistrarStore

__all__ = [
    "Account",
    "AccountNotFoundError",
    "AlreadyRegisteredError",
    "CapacityBelowEnrollmentError",
    "CapacityExceededError",
    "ConflictError",
    "Course",
    "CourseFullError",
    "CourseHasEnrollmentsError",
    "CourseInactiveError",
    "CourseNotFoundError",
    "CourseStatus",
    "Database",
    "DuplicateCourseCodeError",
    "DuplicateEmailError",
    "DuplicateStudentIdError",
    "Gender",
    "InvalidIdError",
    "InvalidStateError",
    "NoUpdateFieldsError",
    "NotFoundError",
    "Page",
    "RegistrarError",
    "RegistrarStore",
    "Registration",
    "RegistrationNotActiveError",
    "RegistrationNotFoundError",
    "RegistrationStatus",
    "Role",
    "Student",
    "StudentNotFoundError",
    "StudentStatus",
    "ValidationFailedError",
]
