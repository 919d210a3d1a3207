"""Custom exceptions for the registrar data and enrollment layers.

Every error carries a stable machine-readable ``code`` that the API returns
alongside the human-readable message.
"""


class RegistrarError(Exception):
    """Base exception for registrar domain errors."""

    code = "REGISTRAR_ERROR"


# --- Categories ---


class NotFoundError(RegistrarError):
    """Referenced resource does not exist."""

    code = "NOT_FOUND"


class ConflictError(RegistrarError):
    """Resource would violate a uniqueness rule."""

    code = "CONFLICT"


class InvalidStateError(RegistrarError):
    """Resource is not in a state that allows the operation."""

    code = "INVALID_STATE"


class CapacityExceededError(RegistrarError):
    """Operation would push a course past its capacity."""

    code = "CAPACITY_EXCEEDED"


class ValidationFailedError(RegistrarError):
    """Input is well-formed but not acceptable."""

    code = "VALIDATION_FAILED"


# --- Not found ---


class StudentNotFoundError(NotFoundError):
    """Student with given ID does not exist."""

    code = "STUDENT_NOT_FOUND"


class CourseNotFoundError(NotFoundError):
    """Course with given ID does not exist."""

    code = "COURSE_NOT_FOUND"


class RegistrationNotFoundError(NotFoundError):
    """Registration with given ID does not exist."""

    code = "REGISTRATION_NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account with given ID or email does not exist."""

    code = "ACCOUNT_NOT_FOUND"


# --- Conflicts ---


class DuplicateStudentIdError(ConflictError):
    """Student code already in use."""

    code = "DUPLICATE_STUDENT_ID"


class DuplicateEmailError(ConflictError):
    """Email already in use by a student or account."""

    code = "DUPLICATE_EMAIL"


class DuplicateCourseCodeError(ConflictError):
    """Course code already in use."""

    code = "DUPLICATE_COURSE_CODE"


class AlreadyRegisteredError(ConflictError):
    """A registration for this student and course already exists."""

    code = "ALREADY_REGISTERED"


# --- Invalid state ---


class CourseInactiveError(InvalidStateError):
    """Course is not open for registration."""

    code = "COURSE_INACTIVE"


class CourseHasEnrollmentsError(InvalidStateError):
    """Cannot delete a course with enrolled students."""

    code = "COURSE_HAS_ENROLLMENTS"


class CapacityBelowEnrollmentError(InvalidStateError):
    """Cannot lower capacity below the current enrolled count."""

    code = "CAPACITY_BELOW_ENROLLMENT"


class RegistrationNotActiveError(InvalidStateError):
    """Only enrolled registrations can be dropped."""

    code = "REGISTRATION_NOT_ACTIVE"


# --- Capacity ---


class CourseFullError(CapacityExceededError):
    """Course has no seats left."""

    code = "COURSE_FULL"


# --- Validation ---


class NoUpdateFieldsError(ValidationFailedError):
    """Update request carried no fields."""

    code = "NO_UPDATE_FIELDS"


class InvalidIdError(ValidationFailedError):
    """Identifier is not a positive integer."""

    code = "INVALID_ID"
