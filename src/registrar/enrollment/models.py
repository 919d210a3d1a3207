"""Data models for the Enrollment module."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EnrollmentSuccess:
    """A course the student was enrolled in during a bulk operation."""

    course_id: int
    course_name: str
    registration_id: int


@dataclass
class DropSuccess:
    """A registration that was dropped during a bulk operation."""

    registration_id: int
    course_id: int


@dataclass
class BulkFailure:
    """One item of a bulk operation that could not be applied.

    Attributes:
        item_id: The course ID (enroll) or registration ID (drop).
        reason: Human-readable explanation.
        code: Machine-readable error code.
    """

    item_id: int
    reason: str
    code: str


@dataclass
class BulkResult:
    """Outcome of a bulk enroll or drop.

    Items are applied independently; failures never undo successes.
    """

    successful: list[EnrollmentSuccess | DropSuccess] = field(default_factory=list)
    errors: list[BulkFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def error_count(self) -> int:
        return len(self.errors)
