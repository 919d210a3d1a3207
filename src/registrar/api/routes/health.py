"""API index and health endpoints."""

from typing import Any

from fastapi import APIRouter

from registrar import __version__
from registrar.api.dependencies import ServicesDep
from registrar.api.models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("")
def api_index() -> dict[str, Any]:
    """Describe the available endpoint groups."""
    return {
        "success": True,
        "message": "Registrar API",
        "version": __version__,
        "endpoints": {
            "auth": "/api/auth",
            "students": "/api/students",
            "courses": "/api/courses",
            "registrations": "/api/registrations",
            "health": "/api/health",
        },
    }


@router.get("/health", response_model=HealthResponse)
def health(services: ServicesDep) -> HealthResponse:
    """Report service status, environment, version and uptime."""
    database_ok = services.database.ping()
    return HealthResponse(
        status="ok" if database_ok else "degraded",
        environment=services.settings.environment,
        version=__version__,
        uptime_seconds=round(services.uptime, 3),
        database="connected" if database_ok else "unreachable",
    )
