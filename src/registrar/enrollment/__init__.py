"""Enrollment - capacity-safe course registration."""

from registrar.enrollment.engine import EnrollmentEngine
from registrar.enrollment.models import (
    BulkFailure,
    BulkResult,
    DropSuccess,
    EnrollmentSuccess,
)

__all__ = [
    "BulkFailure",
    "BulkResult",
    "DropSuccess",
    "EnrollmentEngine",
    "EnrollmentSuccess",
]
