"""Unit tests for EnrollmentEngine single-item operations."""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError

from registrar.auth import AccessDeniedError
from registrar.data import (
    AlreadyRegisteredError,
    CourseFullError,
    CourseInactiveError,
    CourseNotFoundError,
    CourseStatus,
    NoUpdateFieldsError,
    RegistrarStore,
    RegistrationNotActiveError,
    RegistrationNotFoundError,
    RegistrationStatus,
    Role,
    StudentNotFoundError,
)
from registrar.enrollment import EnrollmentEngine
from registrar.enrollment import engine as engine_module
from registrar.enrollment.engine import is_duplicate_registration


@pytest.fixture
def student_account(store: RegistrarStore, make_student):
    """A student with a login account; returns (student, account)."""
    student = make_student(password_hash="hash")
    return student, store.get_account(student.user_id)


@pytest.mark.unit
class TestEnroll:
    """Tests for enroll."""

    def test_enroll(
        self, store: RegistrarStore, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        student = make_student()
        course = make_course()

        registration = engine.enroll(student.id, course.id)

        assert registration.id is not None
        assert registration.status == RegistrationStatus.ENROLLED.value
        assert registration.registration_date is not None
        assert registration.course.course_name == course.course_name
        assert registration.student.id == student.id
        assert store.get_course(course.id).enrolled_count == 1

    def test_missing_student(self, engine: EnrollmentEngine, make_course) -> None:
        course = make_course()

        with pytest.raises(StudentNotFoundError):
            engine.enroll(999, course.id)

    def test_missing_course(self, engine: EnrollmentEngine, make_student) -> None:
        student = make_student()

        with pytest.raises(CourseNotFoundError, match="Course with ID 999 not found"):
            engine.enroll(student.id, 999)

    def test_inactive_course(self, engine: EnrollmentEngine, make_student, make_course) -> None:
        course = make_course(course_name="Old Course", status=CourseStatus.INACTIVE)

        with pytest.raises(CourseInactiveError, match="Old Course is not available"):
            engine.enroll(make_student().id, course.id)

    def test_already_registered(
        self, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        student = make_student()
        course = make_course(course_name="Algebra")
        engine.enroll(student.id, course.id)

        with pytest.raises(AlreadyRegisteredError, match="Already registered for Algebra"):
            engine.enroll(student.id, course.id)

    def test_reenroll_after_drop_is_conflict(
        self, engine: EnrollmentEngine, student_account, make_course
    ) -> None:
        student, account = student_account
        course = make_course()
        registration = engine.enroll(student.id, course.id)
        engine.drop(registration.id, account)

        with pytest.raises(AlreadyRegisteredError):
            engine.enroll(student.id, course.id)

    def test_course_full(
        self, store: RegistrarStore, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        course = make_course(course_name="Tiny", max_students=1)
        engine.enroll(make_student().id, course.id)

        with pytest.raises(CourseFullError, match="Course Tiny is full"):
            engine.enroll(make_student().id, course.id)

        assert store.get_course(course.id).enrolled_count == 1

    def test_inactive_checked_before_duplicate(
        self, store: RegistrarStore, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        student = make_student()
        course = make_course()
        engine.enroll(student.id, course.id)
        store.update_course(course.id, status=CourseStatus.INACTIVE)

        with pytest.raises(CourseInactiveError):
            engine.enroll(student.id, course.id)

    def test_duplicate_checked_before_capacity(
        self, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        student = make_student()
        course = make_course(max_students=1)
        engine.enroll(student.id, course.id)

        with pytest.raises(AlreadyRegisteredError):
            engine.enroll(student.id, course.id)

    def test_failure_leaves_no_registration(
        self, store: RegistrarStore, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        course = make_course(max_students=1)
        engine.enroll(make_student().id, course.id)

        with pytest.raises(CourseFullError):
            engine.enroll(make_student().id, course.id)

        assert store.list_registrations().total_count == 1


@pytest.mark.unit
class TestDrop:
    """Tests for drop."""

    def test_student_soft_drops_own(
        self, store: RegistrarStore, engine: EnrollmentEngine, student_account, make_course
    ) -> None:
        student, account = student_account
        course = make_course()
        registration = engine.enroll(student.id, course.id)

        dropped = engine.drop(registration.id, account)

        assert dropped.status == RegistrationStatus.DROPPED.value
        assert store.get_registration(registration.id).status == "dropped"
        assert store.get_course(course.id).enrolled_count == 0

    def test_student_cannot_drop_twice(
        self, engine: EnrollmentEngine, student_account, make_course
    ) -> None:
        student, account = student_account
        registration = engine.enroll(student.id, make_course().id)
        engine.drop(registration.id, account)

        with pytest.raises(RegistrationNotActiveError):
            engine.drop(registration.id, account)

    def test_student_cannot_drop_completed(
        self, engine: EnrollmentEngine, student_account, make_course
    ) -> None:
        student, account = student_account
        registration = engine.enroll(student.id, make_course().id)
        engine.update_registration(registration.id, status=RegistrationStatus.COMPLETED)

        with pytest.raises(RegistrationNotActiveError):
            engine.drop(registration.id, account)

    def test_student_cannot_drop_others(
        self, engine: EnrollmentEngine, student_account, make_student, make_course
    ) -> None:
        _, account = student_account
        other = make_student()
        registration = engine.enroll(other.id, make_course().id)

        with pytest.raises(AccessDeniedError):
            engine.drop(registration.id, account)

    def test_missing_registration(self, engine: EnrollmentEngine, student_account) -> None:
        _, account = student_account

        with pytest.raises(RegistrationNotFoundError):
            engine.drop(999, account)

    def test_account_without_profile(self, store: RegistrarStore, engine: EnrollmentEngine) -> None:
        account = store.create_account("nobody@example.com", "hash")

        with pytest.raises(StudentNotFoundError):
            engine.drop(1, account)

    def test_admin_deletes(
        self, store: RegistrarStore, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        admin = store.create_account("boss@example.com", "hash", role=Role.ADMIN)
        registration = engine.enroll(make_student().id, make_course().id)

        deleted = engine.drop(registration.id, admin)

        assert deleted.id == registration.id
        with pytest.raises(RegistrationNotFoundError):
            store.get_registration(registration.id)

    def test_admin_delete_missing(self, store: RegistrarStore, engine: EnrollmentEngine) -> None:
        admin = store.create_account("boss@example.com", "hash", role=Role.ADMIN)

        with pytest.raises(RegistrationNotFoundError):
            engine.drop(999, admin)


@pytest.mark.unit
class TestUpdateRegistration:
    """Tests for update_registration."""

    def test_set_grade(self, engine: EnrollmentEngine, make_student, make_course) -> None:
        registration = engine.enroll(make_student().id, make_course().id)

        updated = engine.update_registration(
            registration.id, status=RegistrationStatus.COMPLETED, grade="A"
        )

        assert updated.status == "completed"
        assert updated.grade == "A"
        assert updated.course is not None

    def test_no_fields(self, engine: EnrollmentEngine) -> None:
        with pytest.raises(NoUpdateFieldsError):
            engine.update_registration(1)

    def test_missing(self, engine: EnrollmentEngine) -> None:
        with pytest.raises(RegistrationNotFoundError):
            engine.update_registration(999, grade="B")

    def test_reenroll_respects_capacity(
        self, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        course = make_course(max_students=1)
        first = engine.enroll(make_student().id, course.id)
        engine.update_registration(first.id, status=RegistrationStatus.DROPPED)
        engine.enroll(make_student().id, course.id)

        with pytest.raises(CourseFullError):
            engine.update_registration(first.id, status=RegistrationStatus.ENROLLED)

    def test_reenroll_with_free_seat(
        self, engine: EnrollmentEngine, make_student, make_course
    ) -> None:
        course = make_course(max_students=2)
        registration = engine.enroll(make_student().id, course.id)
        engine.update_registration(registration.id, status=RegistrationStatus.DROPPED)

        updated = engine.update_registration(registration.id, status=RegistrationStatus.ENROLLED)

        assert updated.status == "enrolled"


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO registrations", {}, sqlite3.IntegrityError(message))


@pytest.mark.unit
class TestIntegrityErrors:
    """Only the one-registration-per-pair constraint means "already registered"."""

    @pytest.mark.parametrize(
        "message",
        [
            "UNIQUE constraint failed: registrations.student_id, registrations.course_id",
            'duplicate key value violates unique constraint "uq_registrations_student_course"',
        ],
    )
    def test_pair_violation_is_duplicate(self, message: str) -> None:
        assert is_duplicate_registration(_integrity_error(message)) is True

    @pytest.mark.parametrize(
        "message",
        [
            "FOREIGN KEY constraint failed",
            'insert or update on table "registrations" violates foreign key constraint '
            '"registrations_student_id_fkey"',
        ],
    )
    def test_other_violation_is_not_duplicate(self, message: str) -> None:
        assert is_duplicate_registration(_integrity_error(message)) is False

    def test_foreign_key_violation_propagates(
        self,
        monkeypatch: pytest.MonkeyPatch,
        engine: EnrollmentEngine,
        make_student,
        make_course,
    ) -> None:
        student = make_student()
        course = make_course()

        def fail(*_args: object) -> int:
            raise _integrity_error("FOREIGN KEY constraint failed")

        monkeypatch.setattr(engine_module, "count_enrolled", fail)

        with pytest.raises(IntegrityError):
            engine.enroll(student.id, course.id)

    def test_pair_violation_becomes_already_registered(
        self,
        monkeypatch: pytest.MonkeyPatch,
        engine: EnrollmentEngine,
        make_student,
        make_course,
    ) -> None:
        student = make_student()
        course = make_course()

        def fail(*_args: object) -> int:
            raise _integrity_error(
                "UNIQUE constraint failed: registrations.student_id, registrations.course_id"
            )

        monkeypatch.setattr(engine_module, "count_enrolled", fail)

        with pytest.raises(AlreadyRegisteredError):
            engine.enroll(student.id, course.id)

    def test_bulk_reports_foreign_key_violation_as_server_error(
        self,
        monkeypatch: pytest.MonkeyPatch,
        engine: EnrollmentEngine,
        make_student,
        make_course,
    ) -> None:
        student = make_student()
        course = make_course()

        def fail(*_args: object) -> int:
            raise _integrity_error("FOREIGN KEY constraint failed")

        monkeypatch.setattr(engine_module, "count_enrolled", fail)

        result = engine.bulk_enroll(student.id, [course.id])

        assert result.success_count == 0
        assert result.errors[0].code == "INTERNAL_SERVER_ERROR"
