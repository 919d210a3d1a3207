"""Course catalog endpoints."""

from typing import Literal

from fastapi import APIRouter, Path, Query, status

from registrar.api.dependencies import AdminAccount, CurrentAccount, StoreDep
from registrar.api.models import (
    APIResponse,
    CourseCreate,
    CourseResponse,
    CourseUpdate,
    PaginatedResponse,
    RegistrationResponse,
    course_to_response,
    page_to_response,
    registration_to_response,
)
from registrar.data import CourseStatus

router = APIRouter(prefix="/courses", tags=["courses"])

ALL_STATUSES = "all"


@router.get("", response_model=PaginatedResponse[CourseResponse])
def list_courses(
    store: StoreDep,
    _account: CurrentAccount,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
    search: str | None = Query(default=None, max_length=100),
    department: str | None = Query(default=None, max_length=255),
    semester: str | None = Query(default=None, max_length=50),
    course_status: Literal["active", "inactive", "archived", "all"] = Query(
        default="active", alias="status"
    ),
) -> PaginatedResponse[CourseResponse]:
    """List courses; only active ones unless another status (or ``all``) is asked for."""
    result = store.list_courses(
        page=page,
        limit=limit,
        search=search,
        department=department,
        semester=semester,
        status=None if course_status == ALL_STATUSES else CourseStatus(course_status),
    )
    items = [course_to_response(c) for c in result.items]
    return PaginatedResponse(**page_to_response(result, items))


@router.post(
    "",
    response_model=APIResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_course(
    course: CourseCreate, store: StoreDep, _admin: AdminAccount
) -> APIResponse[CourseResponse]:
    """Create a new course."""
    created = store.create_course(
        course_code=course.course_code,
        course_name=course.course_name,
        max_students=course.max_students,
        credits=course.credits,
        description=course.description,
        duration=course.duration,
        instructor=course.instructor,
        department=course.department,
        semester=course.semester,
        year=course.year,
        status=course.status,
    )
    return APIResponse(message="Course created successfully", data=course_to_response(created))


@router.get("/{course_id}", response_model=APIResponse[CourseResponse])
def get_course(
    store: StoreDep, _account: CurrentAccount, course_id: int = Path(ge=1)
) -> APIResponse[CourseResponse]:
    """Get a course with its enrolled count."""
    return APIResponse(data=course_to_response(store.get_course(course_id)))


@router.put("/{course_id}", response_model=APIResponse[CourseResponse])
def update_course(
    course: CourseUpdate,
    store: StoreDep,
    _admin: AdminAccount,
    course_id: int = Path(ge=1),
) -> APIResponse[CourseResponse]:
    """Update a course (partial update)."""
    updated = store.update_course(course_id, **course.model_dump(exclude_unset=True))
    return APIResponse(message="Course updated successfully", data=course_to_response(updated))


@router.delete("/{course_id}", response_model=APIResponse[None])
def delete_course(
    store: StoreDep, _admin: AdminAccount, course_id: int = Path(ge=1)
) -> APIResponse[None]:
    """Delete a course that has no enrolled students."""
    store.delete_course(course_id)
    return APIResponse(message="Course deleted successfully")


@router.get(
    "/{course_id}/registrations",
    response_model=APIResponse[list[RegistrationResponse]],
)
def list_course_registrations(
    store: StoreDep, _admin: AdminAccount, course_id: int = Path(ge=1)
) -> APIResponse[list[RegistrationResponse]]:
    """Get the roster of a course."""
    registrations = store.list_course_registrations(course_id)
    return APIResponse(data=[registration_to_response(r) for r in registrations])
