"""RegistrarStore - CRUD operations for accounts, students, courses and registrations."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from registrar.data.database import Database
from registrar.data.exceptions import (
    AccountNotFoundError,
    CapacityBelowEnrollmentError,
    CourseHasEnrollmentsError,
    CourseNotFoundError,
    DuplicateCourseCodeError,
    DuplicateEmailError,
    DuplicateStudentIdError,
    NoUpdateFieldsError,
    RegistrationNotFoundError,
    StudentNotFoundError,
    ValidationFailedError,
)
from registrar.data.models import (
    Account,
    Course,
    CourseStatus,
    Page,
    Registration,
    RegistrationStatus,
    Role,
    Student,
    StudentStatus,
)
from registrar.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = get_logger("data.store")

T = TypeVar("T")

MAX_PAGE_SIZE = 100
ADMIN_STUDENT_CODE = "ADMIN001"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def registration_query() -> Select[tuple[Registration]]:
    """Select registrations with their course and student loaded."""
    return select(Registration).options(
        selectinload(Registration.course),
        selectinload(Registration.student),
    )


def count_enrolled(session: Session, course_id: int) -> int:
    """Count registrations with status ``enrolled`` for a course."""
    stmt = select(func.count(Registration.id)).where(
        Registration.course_id == course_id,
        Registration.status == RegistrationStatus.ENROLLED.value,
    )
    return session.execute(stmt).scalar_one()


def lock_course(session: Session, course_id: int) -> Course | None:
    """Load a course with a row lock held until the transaction ends."""
    stmt = select(Course).where(Course.id == course_id).with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def _attach_enrolled_counts(session: Session, courses: list[Course]) -> None:
    if not courses:
        return
    stmt = (
        select(Registration.course_id, func.count(Registration.id))
        .where(
            Registration.course_id.in_([c.id for c in courses]),
            Registration.status == RegistrationStatus.ENROLLED.value,
        )
        .group_by(Registration.course_id)
    )
    counts = dict(session.execute(stmt).tuples().all())
    for course in courses:
        course.enrolled_count = counts.get(course.id, 0)


def _check_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationFailedError("Page must be a positive integer")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationFailedError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")


def _paginate(session: Session, stmt: Select[tuple[T]], page: int, limit: int) -> Page[T]:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = session.execute(count_stmt).scalar_one()
    items = list(session.execute(stmt.limit(limit).offset((page - 1) * limit)).scalars().all())
    return Page(items=items, total_count=total, page=page, limit=limit)


def _free_admin_code(session: Session) -> str:
    """First unused admin student code: ADMIN001, ADMIN002, ..."""
    stmt = select(Student.student_id).where(Student.student_id.like("ADMIN%"))
    taken = set(session.execute(stmt).scalars().all())
    n = 1
    while f"ADMIN{n:03d}" in taken:
        n += 1
    return f"ADMIN{n:03d}"


STUDENT_UPDATE_FIELDS = frozenset(
    {"first_name", "last_name", "phone", "date_of_birth", "gender", "address", "status"}
)
STUDENT_REQUIRED_FIELDS = frozenset({"first_name", "last_name", "status"})
COURSE_UPDATE_FIELDS = frozenset(
    {
        "course_name",
        "description",
        "duration",
        "instructor",
        "max_students",
        "credits",
        "department",
        "semester",
        "year",
        "status",
    }
)
COURSE_REQUIRED_FIELDS = frozenset({"course_name", "max_students", "credits", "status"})


def _apply_updates(
    target: Any,
    updates: dict[str, Any],
    allowed: frozenset[str],
    required: frozenset[str],
) -> None:
    """Set every given field on target. ``None`` clears an optional field.

    Raises:
        NoUpdateFieldsError: If no field was given
        ValidationFailedError: If a field is unknown or a required field is set to None
    """
    if not updates:
        raise NoUpdateFieldsError("No fields to update")

    unknown = sorted(set(updates) - allowed)
    if unknown:
        raise ValidationFailedError(f"Cannot update fields: {', '.join(unknown)}")
    cleared = sorted(key for key in required if key in updates and updates[key] is None)
    if cleared:
        raise ValidationFailedError(f"Fields cannot be empty: {', '.join(cleared)}")

    for key, value in updates.items():
        if isinstance(value, StrEnum):
            value = value.value
        setattr(target, key, value)


class RegistrarStore:
    """Main API for persistence operations.

    Provides CRUD operations for Accounts, Students, Courses and Registrations.
    Each method runs in its own session and transaction.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the store on top of a database.

        Args:
            database: Connection manager; tables must already exist.
        """
        self._db = database

    @property
    def database(self) -> Database:
        return self._db

    # --- Account Operations ---

    def create_account(
        self,
        email: str,
        password_hash: str,
        role: Role = Role.STUDENT,
    ) -> Account:
        """Create a login account.

        Raises:
            DuplicateEmailError: If an account with this email exists
        """
        session = self._db.get_session()
        try:
            account = Account(email=email, password_hash=password_hash, role=role.value)
            session.add(account)
            session.commit()
            session.refresh(account)
            return account
        except IntegrityError as e:
            session.rollback()
            raise DuplicateEmailError(f"Account with email '{email}' already exists") from e
        finally:
            session.close()

    def get_account(self, account_id: int) -> Account:
        """Get account by ID.

        Raises:
            AccountNotFoundError: If account doesn't exist
        """
        session = self._db.get_session()
        try:
            account = session.get(Account, account_id)
            if account is None:
                raise AccountNotFoundError(f"Account with id '{account_id}' not found")
            return account
        finally:
            session.close()

    def get_account_by_email(self, email: str) -> Account:
        """Get account by email.

        Raises:
            AccountNotFoundError: If account doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = select(Account).where(Account.email == email)
            account = session.execute(stmt).scalar_one_or_none()
            if account is None:
                raise AccountNotFoundError(f"Account with email '{email}' not found")
            return account
        finally:
            session.close()

    def record_login_failure(
        self, account_id: int, max_attempts: int, lock_for: timedelta
    ) -> Account:
        """Increment failed login attempts, locking the account at the threshold.

        Returns:
            The updated Account
        """
        session = self._db.get_session()
        try:
            account = session.get(Account, account_id)
            if account is None:
                raise AccountNotFoundError(f"Account with id '{account_id}' not found")

            account.login_attempts += 1
            if account.login_attempts >= max_attempts:
                account.locked_until = utcnow() + lock_for

            session.commit()
            session.refresh(account)
            return account
        finally:
            session.close()

    def record_login_success(self, account_id: int) -> Account:
        """Reset failed attempts, clear any lock and stamp last_login."""
        session = self._db.get_session()
        try:
            account = session.get(Account, account_id)
            if account is None:
                raise AccountNotFoundError(f"Account with id '{account_id}' not found")

            account.login_attempts = 0
            account.locked_until = None
            account.last_login = utcnow()

            session.commit()
            session.refresh(account)
            return account
        finally:
            session.close()

    def ensure_admin(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
    ) -> tuple[Account, bool]:
        """Create an admin account and give it a student profile if missing.

        The profile is an existing student with the same email, an unclaimed
        ADMIN001 record, or a new record with the next free ADMINnnn code.

        Returns:
            Tuple of the admin Account and whether it was created now
        """
        session = self._db.get_session()
        try:
            stmt = select(Account).where(Account.email == email)
            existing = session.execute(stmt).scalar_one_or_none()
            if existing is not None:
                return existing, False

            account = Account(email=email, password_hash=password_hash, role=Role.ADMIN.value)
            session.add(account)
            session.flush()

            # Admins enroll through the same endpoints, so they need a profile
            profile_stmt = select(Student).where(Student.email == email)
            profile = session.execute(profile_stmt).scalar_one_or_none()
            if profile is None:
                code_stmt = select(Student).where(Student.student_id == ADMIN_STUDENT_CODE)
                unclaimed = session.execute(code_stmt).scalar_one_or_none()
                if unclaimed is not None and unclaimed.user_id is None:
                    profile = unclaimed
            if profile is None:
                session.add(
                    Student(
                        student_id=_free_admin_code(session),
                        first_name=first_name,
                        last_name=last_name,
                        email=email,
                        user_id=account.id,
                    )
                )
            elif profile.user_id is None:
                profile.user_id = account.id

            session.commit()
            session.refresh(account)
            logger.info("Created admin account %s", email)
            return account, True
        finally:
            session.close()

    # --- Student Operations ---

    def create_student(
        self,
        student_id: str,
        first_name: str,
        last_name: str,
        email: str,
        phone: str | None = None,
        date_of_birth: date | None = None,
        gender: str | None = None,
        address: str | None = None,
        status: StudentStatus | None = None,
        password_hash: str | None = None,
    ) -> Student:
        """Create a student, optionally together with its login account.

        Both uniqueness checks and the insert(s) run in one transaction.

        Args:
            student_id: External student code (unique)
            first_name: Given name
            last_name: Family name
            email: Contact and login email (unique)
            phone: Phone number (optional)
            date_of_birth: Date of birth (optional)
            gender: Gender value (optional)
            address: Postal address (optional)
            status: Initial status, defaults to active
            password_hash: When given, a student-role Account is created and linked

        Returns:
            Created Student object

        Raises:
            DuplicateStudentIdError: If the student code is taken
            DuplicateEmailError: If the email is taken by a student or account
        """
        session = self._db.get_session()
        try:
            stmt = select(Student.id).where(Student.student_id == student_id)
            if session.execute(stmt).first() is not None:
                raise DuplicateStudentIdError(f"Student ID '{student_id}' already exists")

            stmt = select(Student.id).where(Student.email == email)
            if session.execute(stmt).first() is not None:
                raise DuplicateEmailError(f"Email '{email}' already exists")

            user_id = None
            if password_hash is not None:
                stmt = select(Account.id).where(Account.email == email)
                if session.execute(stmt).first() is not None:
                    raise DuplicateEmailError(f"Email '{email}' already exists")
                account = Account(email=email, password_hash=password_hash)
                session.add(account)
                session.flush()
                user_id = account.id

            student = Student(
                student_id=student_id,
                first_name=first_name,
                last_name=last_name,
                email=email,
                user_id=user_id,
                phone=phone,
                date_of_birth=date_of_birth,
                gender=gender,
                address=address,
                status=status.value if status is not None else None,
            )
            session.add(student)
            session.commit()
            session.refresh(student)
            logger.info("Created student %s (id=%s)", student.student_id, student.id)
            return student
        except IntegrityError as e:
            session.rollback()
            if "student_id" in str(e.orig):
                raise DuplicateStudentIdError(f"Student ID '{student_id}' already exists") from e
            raise DuplicateEmailError(f"Email '{email}' already exists") from e
        finally:
            session.close()

    def get_student(self, student_id: int) -> Student:
        """Get student by ID.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session()
        try:
            student = session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")
            return student
        finally:
            session.close()

    def get_student_for_account(self, account_id: int) -> Student:
        """Get the student record linked to an account.

        Raises:
            StudentNotFoundError: If the account has no student profile
        """
        session = self._db.get_session()
        try:
            stmt = select(Student).where(Student.user_id == account_id)
            student = session.execute(stmt).scalar_one_or_none()
            if student is None:
                raise StudentNotFoundError("Student profile not found")
            return student
        finally:
            session.close()

    def list_students(
        self,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        course: str | None = None,
    ) -> Page[Student]:
        """List students with optional filters.

        Args:
            page: 1-based page number
            limit: Page size (1-100)
            search: Substring of first/last name, student code or email
            course: Substring of the name or code of a course the student is registered in

        Returns:
            Page of students, newest first
        """
        _check_page(page, limit)
        session = self._db.get_session()
        try:
            stmt = select(Student)

            if search:
                stmt = stmt.where(
                    or_(
                        Student.first_name.icontains(search, autoescape=True),
                        Student.last_name.icontains(search, autoescape=True),
                        Student.student_id.icontains(search, autoescape=True),
                        Student.email.icontains(search, autoescape=True),
                    )
                )
            if course:
                registered = (
                    select(Registration.student_id)
                    .join(Course, Course.id == Registration.course_id)
                    .where(
                        or_(
                            Course.course_name.icontains(course, autoescape=True),
                            Course.course_code.icontains(course, autoescape=True),
                        )
                    )
                )
                stmt = stmt.where(Student.id.in_(registered))

            stmt = stmt.order_by(Student.created_at.desc(), Student.id.desc())
            return _paginate(session, stmt, page, limit)
        finally:
            session.close()

    def update_student(self, student_id: int, **changes: Any) -> Student:
        """Update student fields. Only the given fields are written.

        Args:
            student_id: The student's database ID
            **changes: Any of first_name, last_name, phone, date_of_birth,
                gender, address, status. ``None`` clears an optional field.

        Raises:
            StudentNotFoundError: If student doesn't exist
            NoUpdateFieldsError: If no field was given
            ValidationFailedError: If a name or the status is set to None
        """
        session = self._db.get_session()
        try:
            student = session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")

            _apply_updates(student, changes, STUDENT_UPDATE_FIELDS, STUDENT_REQUIRED_FIELDS)

            session.commit()
            session.refresh(student)
            return student
        finally:
            session.close()

    def delete_student(self, student_id: int) -> None:
        """Delete a student, its registrations and its student-role login account.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session()
        try:
            student = session.get(Student, student_id)
            if student is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")

            account = session.get(Account, student.user_id) if student.user_id else None
            session.delete(student)
            if account is not None and account.role == Role.STUDENT.value:
                session.delete(account)

            session.commit()
            logger.info("Deleted student %s", student_id)
        finally:
            session.close()

    def list_student_registrations(self, student_id: int) -> list[Registration]:
        """List a student's registrations, most recent first.

        Raises:
            StudentNotFoundError: If student doesn't exist
        """
        session = self._db.get_session()
        try:
            if session.get(Student, student_id) is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")

            stmt = (
                registration_query()
                .where(Registration.student_id == student_id)
                .order_by(Registration.registration_date.desc(), Registration.id.desc())
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Course Operations ---

    def create_course(
        self,
        course_code: str,
        course_name: str,
        max_students: int = 30,
        credits: int = 3,
        description: str | None = None,
        duration: str | None = None,
        instructor: str | None = None,
        department: str | None = None,
        semester: str | None = None,
        year: int | None = None,
        status: CourseStatus | None = None,
    ) -> Course:
        """Create a new course offering.

        Raises:
            DuplicateCourseCodeError: If the course code is taken
            ValidationFailedError: If capacity is below 1
        """
        if max_students < 1:
            raise ValidationFailedError("Max students must be at least 1")

        session = self._db.get_session()
        try:
            stmt = select(Course.id).where(Course.course_code == course_code)
            if session.execute(stmt).first() is not None:
                raise DuplicateCourseCodeError(f"Course code '{course_code}' already exists")

            course = Course(
                course_code=course_code,
                course_name=course_name,
                description=description,
                duration=duration,
                credits=credits,
                instructor=instructor,
                department=department,
                semester=semester,
                year=year,
                max_students=max_students,
                status=status.value if status is not None else None,
            )
            session.add(course)
            session.commit()
            session.refresh(course)
            course.enrolled_count = 0
            logger.info("Created course %s (id=%s)", course.course_code, course.id)
            return course
        except IntegrityError as e:
            session.rollback()
            raise DuplicateCourseCodeError(f"Course code '{course_code}' already exists") from e
        finally:
            session.close()

    def get_course(self, course_id: int) -> Course:
        """Get course by ID with its enrolled count.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with ID {course_id} not found")
            course.enrolled_count = count_enrolled(session, course_id)
            return course
        finally:
            session.close()

    def list_courses(
        self,
        page: int = 1,
        limit: int = 12,
        search: str | None = None,
        department: str | None = None,
        semester: str | None = None,
        status: CourseStatus | None = CourseStatus.ACTIVE,
    ) -> Page[Course]:
        """List courses with optional filters.

        Args:
            page: 1-based page number
            limit: Page size (1-100)
            search: Substring of course code, name or instructor
            department: Substring of department
            semester: Exact semester
            status: Status filter; None lists every status

        Returns:
            Page of courses ordered by course code, each with enrolled_count set
        """
        _check_page(page, limit)
        session = self._db.get_session()
        try:
            stmt = select(Course)

            if status is not None:
                stmt = stmt.where(Course.status == status.value)
            if search:
                stmt = stmt.where(
                    or_(
                        Course.course_code.icontains(search, autoescape=True),
                        Course.course_name.icontains(search, autoescape=True),
                        Course.instructor.icontains(search, autoescape=True),
                    )
                )
            if department:
                stmt = stmt.where(Course.department.icontains(department, autoescape=True))
            if semester:
                stmt = stmt.where(Course.semester == semester)

            stmt = stmt.order_by(Course.course_code.asc())
            result = _paginate(session, stmt, page, limit)
            _attach_enrolled_counts(session, result.items)
            return result
        finally:
            session.close()

    def update_course(self, course_id: int, **changes: Any) -> Course:
        """Update course fields. Only the given fields are written.

        Args:
            course_id: The course's database ID
            **changes: Any of course_name, description, duration, instructor,
                max_students, credits, department, semester, year, status.
                ``None`` clears an optional field.

        Raises:
            CourseNotFoundError: If course doesn't exist
            NoUpdateFieldsError: If no field was given
            ValidationFailedError: If a required field is set to None
            CapacityBelowEnrollmentError: If max_students < current enrolled count
        """
        session = self._db.get_session()
        try:
            course = lock_course(session, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with ID {course_id} not found")

            enrolled = count_enrolled(session, course_id)
            max_students = changes.get("max_students")
            if max_students is not None and max_students < enrolled:
                raise CapacityBelowEnrollmentError(
                    f"Max students cannot be lower than the {enrolled} students enrolled"
                )

            _apply_updates(course, changes, COURSE_UPDATE_FIELDS, COURSE_REQUIRED_FIELDS)

            session.commit()
            session.refresh(course)
            course.enrolled_count = enrolled
            return course
        finally:
            session.close()

    def delete_course(self, course_id: int) -> None:
        """Delete a course. Fails while students are enrolled.

        Dropped and completed registrations are deleted with the course.

        Raises:
            CourseNotFoundError: If course doesn't exist
            CourseHasEnrollmentsError: If any registration is still enrolled
        """
        session = self._db.get_session()
        try:
            course = lock_course(session, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with ID {course_id} not found")

            enrolled = count_enrolled(session, course_id)
            if enrolled > 0:
                raise CourseHasEnrollmentsError(
                    f"Cannot delete course. {enrolled} students are currently enrolled."
                )

            session.delete(course)
            session.commit()
            logger.info("Deleted course %s", course_id)
        finally:
            session.close()

    def list_course_registrations(self, course_id: int) -> list[Registration]:
        """List every registration for a course (the roster), most recent first.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            if session.get(Course, course_id) is None:
                raise CourseNotFoundError(f"Course with ID {course_id} not found")

            stmt = (
                registration_query()
                .where(Registration.course_id == course_id)
                .order_by(Registration.registration_date.desc(), Registration.id.desc())
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    # --- Registration Operations ---

    def get_registration(self, registration_id: int) -> Registration:
        """Get registration by ID with course and student loaded.

        Raises:
            RegistrationNotFoundError: If registration doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = registration_query().where(Registration.id == registration_id)
            registration = session.execute(stmt).scalar_one_or_none()
            if registration is None:
                raise RegistrationNotFoundError(f"Registration {registration_id} not found")
            return registration
        finally:
            session.close()

    def list_registrations(
        self,
        page: int = 1,
        limit: int = 10,
        status: RegistrationStatus | None = None,
        course_id: int | None = None,
        student_id: int | None = None,
    ) -> Page[Registration]:
        """List registrations with optional filters.

        Returns:
            Page of registrations, most recent first
        """
        _check_page(page, limit)
        session = self._db.get_session()
        try:
            stmt = registration_query()

            if status is not None:
                stmt = stmt.where(Registration.status == status.value)
            if course_id is not None:
                stmt = stmt.where(Registration.course_id == course_id)
            if student_id is not None:
                stmt = stmt.where(Registration.student_id == student_id)

            stmt = stmt.order_by(Registration.registration_date.desc(), Registration.id.desc())
            return _paginate(session, stmt, page, limit)
        finally:
            session.close()
