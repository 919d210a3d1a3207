"""Student endpoints."""

from fastapi import APIRouter, Path, Query, status

from registrar.api.dependencies import AdminAccount, CurrentAccount, EngineDep, StoreDep
from registrar.api.models import (
    APIResponse,
    BulkDropRequest,
    BulkEnrollRequest,
    BulkResponse,
    DropSuccessResponse,
    EnrollmentSuccessResponse,
    PaginatedResponse,
    RegistrationResponse,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
    bulk_to_response,
    page_to_response,
    registration_to_response,
    student_to_response,
)
from registrar.auth import AccessDeniedError, hash_password
from registrar.data import Account, InvalidIdError, RegistrarStore

router = APIRouter(prefix="/students", tags=["students"])

SELF = "me"


def parse_id(value: str, label: str = "ID") -> int:
    """Parse a positive integer identifier from a path segment."""
    if not (value.isascii() and value.isdigit()) or int(value) < 1:
        raise InvalidIdError(f"Invalid {label}")
    return int(value)


def resolve_student(ref: str, account: Account, store: RegistrarStore) -> int:
    """Turn an ``{id}`` or ``me`` path segment into a student ID the caller may see.

    Admins may address any student; everyone else only their own record.
    """
    if ref == SELF:
        return store.get_student_for_account(account.id).id

    student_id = parse_id(ref, "student ID")
    if not account.is_admin:
        own = store.get_student_for_account(account.id)
        if own.id != student_id:
            raise AccessDeniedError("You can only access your own student record")
    return student_id


@router.get("", response_model=PaginatedResponse[StudentResponse])
def list_students(
    store: StoreDep,
    _admin: AdminAccount,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None, max_length=100),
    course: str | None = Query(default=None, max_length=255),
) -> PaginatedResponse[StudentResponse]:
    """List students, filtered by name/code/email or by enrolled course."""
    result = store.list_students(page=page, limit=limit, search=search, course=course)
    items = [student_to_response(s) for s in result.items]
    return PaginatedResponse(**page_to_response(result, items))


@router.post(
    "",
    response_model=APIResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_student(
    student: StudentCreate, store: StoreDep, _admin: AdminAccount
) -> APIResponse[StudentResponse]:
    """Create a student, with a login account when a password is given."""
    created = store.create_student(
        student_id=student.student_id,
        first_name=student.first_name,
        last_name=student.last_name,
        email=student.email,
        phone=student.phone,
        date_of_birth=student.date_of_birth,
        gender=student.gender,
        address=student.address,
        status=student.status,
        password_hash=hash_password(student.password) if student.password else None,
    )
    return APIResponse(message="Student created successfully", data=student_to_response(created))


@router.get("/{student_ref}", response_model=APIResponse[StudentResponse])
def get_student(
    student_ref: str, store: StoreDep, account: CurrentAccount
) -> APIResponse[StudentResponse]:
    """Get a student by ID, or the caller's own record via ``me``."""
    student_id = resolve_student(student_ref, account, store)
    return APIResponse(data=student_to_response(store.get_student(student_id)))


@router.put("/{student_id}", response_model=APIResponse[StudentResponse])
def update_student(
    student: StudentUpdate,
    store: StoreDep,
    account: CurrentAccount,
    student_id: int = Path(ge=1),
) -> APIResponse[StudentResponse]:
    """Update a student (partial update).

    Students may edit their own contact details but not their status.
    """
    if not account.is_admin:
        resolve_student(str(student_id), account, store)
        if "status" in student.model_fields_set:
            raise AccessDeniedError("Students cannot change their own status")

    updated = store.update_student(student_id, **student.model_dump(exclude_unset=True))
    return APIResponse(message="Student updated successfully", data=student_to_response(updated))


@router.delete("/{student_id}", response_model=APIResponse[None])
def delete_student(
    store: StoreDep, _admin: AdminAccount, student_id: int = Path(ge=1)
) -> APIResponse[None]:
    """Delete a student together with their registrations."""
    store.delete_student(student_id)
    return APIResponse(message="Student deleted successfully")


@router.get(
    "/{student_ref}/registrations",
    response_model=APIResponse[list[RegistrationResponse]],
)
def list_student_registrations(
    student_ref: str, store: StoreDep, account: CurrentAccount
) -> APIResponse[list[RegistrationResponse]]:
    """List every registration of a student, newest first."""
    student_id = resolve_student(student_ref, account, store)
    registrations = store.list_student_registrations(student_id)
    return APIResponse(data=[registration_to_response(r) for r in registrations])


@router.post("/{student_id}/enroll", response_model=BulkResponse[EnrollmentSuccessResponse])
def bulk_enroll(
    request: BulkEnrollRequest,
    engine: EngineDep,
    _admin: AdminAccount,
    student_id: int = Path(ge=1),
) -> BulkResponse[EnrollmentSuccessResponse]:
    """Enroll a student in several courses, reporting each outcome."""
    result = engine.bulk_enroll(student_id, request.course_ids)
    return bulk_to_response(result, EnrollmentSuccessResponse, "Enrollment")


@router.post("/{student_id}/unenroll", response_model=BulkResponse[DropSuccessResponse])
def bulk_drop(
    request: BulkDropRequest,
    engine: EngineDep,
    _admin: AdminAccount,
    student_id: int = Path(ge=1),
) -> BulkResponse[DropSuccessResponse]:
    """Drop several of a student's registrations, reporting each outcome."""
    result = engine.bulk_drop(student_id, request.registration_ids)
    return bulk_to_response(result, DropSuccessResponse, "Unenrollment")
