"""REST API for the registrar."""

from registrar.api.app import create_app
from registrar.api.models import (
    APIResponse,
    ErrorResponse,
    PaginatedResponse,
)

__all__ = [
    "APIResponse",
    "ErrorResponse",
    "PaginatedResponse",
    "create_app",
]
