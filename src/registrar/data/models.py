"""SQLAlchemy models for the registrar store."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from enum import StrEnum
from typing import Any, Generic, TypeVar

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)

T = TypeVar("T")

REGISTRATION_PAIR_CONSTRAINT = "uq_registrations_student_course"


class Role(StrEnum):
    """Account role."""

    ADMIN = "admin"
    STUDENT = "student"


class StudentStatus(StrEnum):
    """Student record status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    GRADUATED = "graduated"


class Gender(StrEnum):
    """Self-reported gender."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class CourseStatus(StrEnum):
    """Course offering status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class RegistrationStatus(StrEnum):
    """Registration status."""

    ENROLLED = "enrolled"
    DROPPED = "dropped"
    COMPLETED = "completed"


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Account(Base):
    """Login identity."""

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    login_attempts: Mapped[int] = mapped_column(Integer, nullable=False)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    student: Mapped[Student | None] = relationship("Student", back_populates="account")

    def __init__(
        self,
        email: str,
        password_hash: str,
        role: str = Role.STUDENT.value,
        is_active: bool = True,
        login_attempts: int = 0,
        locked_until: datetime | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.email = email
        self.password_hash = password_hash
        self.role = role
        self.is_active = is_active
        self.login_attempts = login_attempts
        self.locked_until = locked_until

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    def __repr__(self) -> str:
        return f"<Account(id={self.id!r}, email={self.email!r}, role={self.role!r})>"


class Student(Base):
    """Student record - a person eligible to enroll."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    student_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    enrollment_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    account: Mapped[Account | None] = relationship("Account", back_populates="student")
    registrations: Mapped[list[Registration]] = relationship(
        "Registration",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __init__(
        self,
        student_id: str,
        first_name: str,
        last_name: str,
        email: str,
        user_id: int | None = None,
        phone: str | None = None,
        date_of_birth: date | None = None,
        gender: str | None = None,
        address: str | None = None,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.student_id = student_id
        self.first_name = first_name
        self.last_name = last_name
        self.email = email
        self.user_id = user_id
        self.phone = phone
        self.date_of_birth = date_of_birth
        self.gender = gender
        self.address = address
        self.status = status if status is not None else StudentStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Student(id={self.id!r}, student_id={self.student_id!r}, email={self.email!r})>"


class Course(Base):
    """Course offering with a bounded number of seats."""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    course_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    course_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration: Mapped[str | None] = mapped_column(String(100), nullable=True)
    credits: Mapped[int] = mapped_column(Integer, nullable=False)
    instructor: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    semester: Mapped[str | None] = mapped_column(String(50), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    registrations: Mapped[list[Registration]] = relationship(
        "Registration",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # Filled in by the store on every read; not a column.
    enrolled_count = 0

    def __init__(
        self,
        course_code: str,
        course_name: str,
        description: str | None = None,
        duration: str | None = None,
        credits: int = 3,
        instructor: str | None = None,
        department: str | None = None,
        semester: str | None = None,
        year: int | None = None,
        max_students: int = 30,
        status: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.course_code = course_code
        self.course_name = course_name
        self.description = description
        self.duration = duration
        self.credits = credits
        self.instructor = instructor
        self.department = department
        self.semester = semester
        self.year = year
        self.max_students = max_students
        self.status = status if status is not None else CourseStatus.ACTIVE.value

    @property
    def available_seats(self) -> int:
        return max(self.max_students - self.enrolled_count, 0)

    def __repr__(self) -> str:
        return f"<Course(id={self.id!r}, course_code={self.course_code!r}, status={self.status!r})>"


class Registration(Base):
    """One student's relationship to one course."""

    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name=REGISTRATION_PAIR_CONSTRAINT),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    registration_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    grade: Mapped[str | None] = mapped_column(String(10), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    student: Mapped[Student] = relationship("Student", back_populates="registrations")
    course: Mapped[Course] = relationship("Course", back_populates="registrations")

    def __init__(
        self,
        student_id: int,
        course_id: int,
        status: str | None = None,
        grade: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.student_id = student_id
        self.course_id = course_id
        self.status = status if status is not None else RegistrationStatus.ENROLLED.value
        self.grade = grade

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id!r}, student_id={self.student_id!r}, "
            f"course_id={self.course_id!r}, status={self.status!r})>"
        )


@dataclass
class Page(Generic[T]):
    """One page of a paginated query."""

    items: list[T]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1
