"""Registration endpoints."""

from fastapi import APIRouter, Path, Query, status

from registrar.api.dependencies import AdminAccount, CurrentAccount, EngineDep, StoreDep
from registrar.api.models import (
    APIResponse,
    PaginatedResponse,
    RegistrationCreate,
    RegistrationResponse,
    RegistrationUpdate,
    page_to_response,
    registration_to_response,
)
from registrar.data import RegistrationStatus

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.post(
    "",
    response_model=APIResponse[RegistrationResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(
    request: RegistrationCreate,
    store: StoreDep,
    engine: EngineDep,
    account: CurrentAccount,
) -> APIResponse[RegistrationResponse]:
    """Enroll the caller's own student record in a course."""
    student = store.get_student_for_account(account.id)
    registration = engine.enroll(student.id, request.course_id)
    return APIResponse(
        message=f"Successfully registered for {registration.course.course_name}",
        data=registration_to_response(registration),
    )


@router.delete("/{registration_id}", response_model=APIResponse[RegistrationResponse])
def drop(
    engine: EngineDep,
    account: CurrentAccount,
    registration_id: int = Path(ge=1),
) -> APIResponse[RegistrationResponse]:
    """Drop one of the caller's registrations; admins delete it outright."""
    registration = engine.drop(registration_id, account)
    message = "Registration deleted" if account.is_admin else "Successfully dropped course"
    return APIResponse(message=message, data=registration_to_response(registration))


@router.get("", response_model=PaginatedResponse[RegistrationResponse])
def list_registrations(
    store: StoreDep,
    _admin: AdminAccount,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    registration_status: RegistrationStatus | None = Query(default=None, alias="status"),
    course_id: int | None = Query(default=None, ge=1, alias="courseId"),
    student_id: int | None = Query(default=None, ge=1, alias="studentId"),
) -> PaginatedResponse[RegistrationResponse]:
    """List registrations across all students."""
    result = store.list_registrations(
        page=page,
        limit=limit,
        status=registration_status,
        course_id=course_id,
        student_id=student_id,
    )
    items = [registration_to_response(r) for r in result.items]
    return PaginatedResponse(**page_to_response(result, items))


@router.put("/{registration_id}", response_model=APIResponse[RegistrationResponse])
def update_registration(
    request: RegistrationUpdate,
    engine: EngineDep,
    _admin: AdminAccount,
    registration_id: int = Path(ge=1),
) -> APIResponse[RegistrationResponse]:
    """Change a registration's status or grade."""
    registration = engine.update_registration(
        registration_id, status=request.status, grade=request.grade
    )
    return APIResponse(
        message="Registration updated successfully",
        data=registration_to_response(registration),
    )
