"""EnrollmentEngine - admits students into courses under the capacity invariant."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from registrar.auth.exceptions import AccessDeniedError
from registrar.data import (
    AlreadyRegisteredError,
    CourseFullError,
    CourseInactiveError,
    CourseNotFoundError,
    CourseStatus,
    NoUpdateFieldsError,
    RegistrarError,
    Registration,
    RegistrationNotActiveError,
    RegistrationNotFoundError,
    RegistrationStatus,
    Student,
    StudentNotFoundError,
)
from registrar.data.models import REGISTRATION_PAIR_CONSTRAINT
from registrar.data.store import count_enrolled, lock_course, registration_query
from registrar.enrollment.models import (
    BulkFailure,
    BulkResult,
    DropSuccess,
    EnrollmentSuccess,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from registrar.data import Account, Database

logger = logging.getLogger(__name__)

SERVER_ERROR_CODE = "INTERNAL_SERVER_ERROR"

# SQLite names the columns instead of the constraint
SQLITE_PAIR_VIOLATION = "registrations.student_id, registrations.course_id"


def is_duplicate_registration(error: IntegrityError) -> bool:
    """Whether an IntegrityError came from the one-registration-per-pair constraint."""
    message = str(error.orig)
    return REGISTRATION_PAIR_CONSTRAINT in message or SQLITE_PAIR_VIOLATION in message


def _load(session: Session, registration_id: int) -> Registration:
    stmt = (
        registration_query()
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    return session.execute(stmt).scalar_one()


class EnrollmentEngine:
    """Validates and commits enrollments.

    Every enrollment runs its checks and its insert inside one transaction.
    The course row is locked first (``SELECT ... FOR UPDATE`` on Postgres,
    ``BEGIN IMMEDIATE`` on SQLite), so concurrent enrollments in the same
    course are serialised and cannot both observe the last free seat.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the engine.

        Args:
            database: Connection manager shared with the store.
        """
        self._db = database

    def enroll(self, student_id: int, course_id: int) -> Registration:
        """Enroll a student in a course.

        Checks, in order: student exists, course exists, course is active,
        no registration for the pair exists in any status, enrolled count is
        below capacity. Any failure rolls back without side effects.

        Args:
            student_id: The student's database ID
            course_id: The course's database ID

        Returns:
            The new registration with course and student loaded

        Raises:
            StudentNotFoundError: If the student doesn't exist
            CourseNotFoundError: If the course doesn't exist
            CourseInactiveError: If the course is not active
            AlreadyRegisteredError: If the pair was ever registered before
            CourseFullError: If the course has no seats left
        """
        session = self._db.get_session()
        try:
            if session.get(Student, student_id) is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")

            course = lock_course(session, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with ID {course_id} not found")

            if course.status != CourseStatus.ACTIVE.value:
                raise CourseInactiveError(
                    f"Course {course.course_name} is not available for registration"
                )

            stmt = select(Registration.id).where(
                Registration.student_id == student_id,
                Registration.course_id == course_id,
            )
            if session.execute(stmt).first() is not None:
                raise AlreadyRegisteredError(f"Already registered for {course.course_name}")

            enrolled = count_enrolled(session, course_id)
            if enrolled >= course.max_students:
                raise CourseFullError(f"Course {course.course_name} is full")

            registration = Registration(student_id=student_id, course_id=course_id)
            session.add(registration)
            session.flush()
            registration = _load(session, registration.id)
            session.commit()

            logger.info(
                "Enrolled student %s in course %s (registration %s, %d/%d seats)",
                student_id,
                course.course_code,
                registration.id,
                enrolled + 1,
                course.max_students,
            )
            return registration
        except IntegrityError as e:
            session.rollback()
            if not is_duplicate_registration(e):
                logger.error(
                    "Enrollment of student %s in course %s violated a constraint: %s",
                    student_id,
                    course_id,
                    e.orig,
                )
                raise
            # Unique (student_id, course_id) constraint caught a concurrent duplicate
            logger.info("Duplicate enrollment of student %s in course %s", student_id, course_id)
            raise AlreadyRegisteredError("Already registered for this course") from e
        except RegistrarError as e:
            session.rollback()
            logger.info(
                "Enrollment of student %s in course %s rejected: %s", student_id, course_id, e
            )
            raise
        finally:
            session.close()

    def drop(self, registration_id: int, account: Account) -> Registration:
        """Drop a registration on behalf of an account.

        Students soft-drop their own enrolled registrations. Admins remove the
        row entirely.

        Args:
            registration_id: The registration's database ID
            account: The acting account

        Returns:
            The dropped (student) or deleted (admin) registration

        Raises:
            RegistrationNotFoundError: If the registration doesn't exist
            StudentNotFoundError: If a student account has no student profile
            AccessDeniedError: If the registration belongs to another student
            RegistrationNotActiveError: If the registration is not enrolled
        """
        if account.is_admin:
            return self.delete_registration(registration_id)

        session = self._db.get_session()
        try:
            stmt = select(Student).where(Student.user_id == account.id)
            student = session.execute(stmt).scalar_one_or_none()
            if student is None:
                raise StudentNotFoundError("Student profile not found")

            registration = session.get(Registration, registration_id)
            if registration is None:
                raise RegistrationNotFoundError(f"Registration {registration_id} not found")
            if registration.student_id != student.id:
                raise AccessDeniedError("Registration belongs to another student")

            return self._soft_drop(session, registration)
        finally:
            session.close()

    def delete_registration(self, registration_id: int) -> Registration:
        """Hard-delete a registration (admin).

        Raises:
            RegistrationNotFoundError: If the registration doesn't exist
        """
        session = self._db.get_session()
        try:
            stmt = registration_query().where(Registration.id == registration_id)
            registration = session.execute(stmt).scalar_one_or_none()
            if registration is None:
                raise RegistrationNotFoundError(f"Registration {registration_id} not found")

            session.delete(registration)
            session.commit()
            logger.info("Deleted registration %s", registration_id)
            return registration
        finally:
            session.close()

    def update_registration(
        self,
        registration_id: int,
        status: RegistrationStatus | None = None,
        grade: str | None = None,
    ) -> Registration:
        """Update a registration's status and/or grade (admin).

        Returning a registration to ``enrolled`` takes a seat, so capacity is
        re-checked under the course lock.

        Raises:
            NoUpdateFieldsError: If neither field was provided
            RegistrationNotFoundError: If the registration doesn't exist
            CourseFullError: If re-enrolling would exceed capacity
        """
        if status is None and grade is None:
            raise NoUpdateFieldsError("No fields to update")

        session = self._db.get_session()
        try:
            registration = session.get(Registration, registration_id)
            if registration is None:
                raise RegistrationNotFoundError(f"Registration {registration_id} not found")

            if (
                status == RegistrationStatus.ENROLLED
                and registration.status != RegistrationStatus.ENROLLED.value
            ):
                course = lock_course(session, registration.course_id)
                if course is not None and count_enrolled(session, course.id) >= course.max_students:
                    raise CourseFullError(f"Course {course.course_name} is full")

            if status is not None:
                registration.status = status.value
            if grade is not None:
                registration.grade = grade

            session.flush()
            registration = _load(session, registration_id)
            session.commit()
            return registration
        except RegistrarError:
            session.rollback()
            raise
        finally:
            session.close()

    def bulk_enroll(self, student_id: int, course_ids: Iterable[int]) -> BulkResult:
        """Enroll a student in several courses, each in its own transaction.

        Args:
            student_id: The student's database ID
            course_ids: Courses to enroll in, processed in order

        Returns:
            BulkResult listing per-course successes and failures

        Raises:
            StudentNotFoundError: If the student doesn't exist
        """
        self._require_student(student_id)

        result = BulkResult()
        for course_id in course_ids:
            try:
                registration = self.enroll(student_id, course_id)
            except RegistrarError as e:
                result.errors.append(BulkFailure(item_id=course_id, reason=str(e), code=e.code))
                continue
            except SQLAlchemyError as e:
                logger.exception(
                    "Bulk enroll of student %s in course %s failed", student_id, course_id
                )
                result.errors.append(
                    BulkFailure(
                        item_id=course_id,
                        reason=f"Error enrolling in course {course_id}: {type(e).__name__}",
                        code=SERVER_ERROR_CODE,
                    )
                )
                continue

            result.successful.append(
                EnrollmentSuccess(
                    course_id=course_id,
                    course_name=registration.course.course_name,
                    registration_id=registration.id,
                )
            )

        logger.info(
            "Bulk enroll for student %s: %d succeeded, %d failed",
            student_id,
            result.success_count,
            result.error_count,
        )
        return result

    def bulk_drop(self, student_id: int, registration_ids: Iterable[int]) -> BulkResult:
        """Drop several of a student's registrations independently.

        Args:
            student_id: The student's database ID
            registration_ids: Registrations to drop; each must belong to the student

        Returns:
            BulkResult listing per-registration successes and failures

        Raises:
            StudentNotFoundError: If the student doesn't exist
        """
        self._require_student(student_id)

        result = BulkResult()
        for registration_id in registration_ids:
            try:
                registration = self._drop_for_student(student_id, registration_id)
            except RegistrarError as e:
                result.errors.append(
                    BulkFailure(item_id=registration_id, reason=str(e), code=e.code)
                )
                continue
            except SQLAlchemyError as e:
                logger.exception("Bulk drop of registration %s failed", registration_id)
                result.errors.append(
                    BulkFailure(
                        item_id=registration_id,
                        reason=f"Error dropping registration {registration_id}: {type(e).__name__}",
                        code=SERVER_ERROR_CODE,
                    )
                )
                continue

            result.successful.append(
                DropSuccess(registration_id=registration.id, course_id=registration.course_id)
            )

        logger.info(
            "Bulk drop for student %s: %d succeeded, %d failed",
            student_id,
            result.success_count,
            result.error_count,
        )
        return result

    # --- Helpers ---

    def _require_student(self, student_id: int) -> None:
        session = self._db.get_session()
        try:
            if session.get(Student, student_id) is None:
                raise StudentNotFoundError(f"Student with id '{student_id}' not found")
        finally:
            session.close()

    def _drop_for_student(self, student_id: int, registration_id: int) -> Registration:
        session = self._db.get_session()
        try:
            stmt = select(Registration).where(
                Registration.id == registration_id,
                Registration.student_id == student_id,
            )
            registration = session.execute(stmt).scalar_one_or_none()
            if registration is None:
                raise RegistrationNotFoundError(f"Registration {registration_id} not found")
            return self._soft_drop(session, registration)
        finally:
            session.close()

    def _soft_drop(self, session: Session, registration: Registration) -> Registration:
        if registration.status != RegistrationStatus.ENROLLED.value:
            raise RegistrationNotActiveError(
                f"Registration {registration.id} is {registration.status}, not enrolled"
            )

        registration.status = RegistrationStatus.DROPPED.value
        session.flush()
        registration = _load(session, registration.id)
        session.commit()
        logger.info(
            "Dropped registration %s (student %s, course %s)",
            registration.id,
            registration.student_id,
            registration.course_id,
        )
        return registration
