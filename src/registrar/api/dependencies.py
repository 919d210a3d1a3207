"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

import time
from collections.abc import Callable, Generator  # noqa: TC003
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from registrar.auth import AuthService, TokenIssuer, hash_password
from registrar.config import Settings
from registrar.data import Account, Database, RegistrarStore, Role
from registrar.enrollment import EnrollmentEngine
from registrar.logging import get_logger

logger = get_logger("api")


@dataclass
class Services:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    database: Database
    store: RegistrarStore
    engine: EnrollmentEngine
    auth: AuthService
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at


# Global services (initialized on app startup)
_services: Services | None = None


def build_services(settings: Settings) -> Services:
    """Wire the database, store, engine and auth service from settings."""
    database = Database(settings.database_url)
    store = RegistrarStore(database)
    tokens = TokenIssuer(settings.jwt_secret, timedelta(minutes=settings.jwt_expires_minutes))
    auth = AuthService(
        store,
        tokens,
        max_login_attempts=settings.max_login_attempts,
        lock_for=timedelta(minutes=settings.lock_minutes),
    )
    return Services(
        settings=settings,
        database=database,
        store=store,
        engine=EnrollmentEngine(database),
        auth=auth,
    )


def bootstrap_admin(services: Services) -> Account | None:
    """Create the configured admin account if it does not exist yet.

    Skipped when no admin password is configured.
    """
    settings = services.settings
    if not settings.admin_password:
        logger.warning("No admin password configured; skipping admin bootstrap")
        return None

    account, _created = services.store.ensure_admin(
        email=settings.admin_email,
        password_hash=hash_password(settings.admin_password),
        first_name=settings.admin_first_name,
        last_name=settings.admin_last_name,
    )
    return account


def init_services(settings: Settings) -> Services:
    """Initialize the global services, preparing the database schema."""
    global _services  # noqa: PLW0603
    services = build_services(settings)
    services.database.connect(
        retries=settings.db_connect_retries, backoff=settings.db_connect_backoff
    )
    services.database.create_tables()
    bootstrap_admin(services)
    _services = services
    return services


def close_services() -> None:
    """Close the global services."""
    global _services  # noqa: PLW0603
    if _services is not None:
        _services.database.close()
        _services = None


def get_services() -> Services:
    """Dependency that provides the initialized services."""
    if _services is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _services


ServicesDep = Annotated[Services, Depends(get_services)]


def get_store(services: ServicesDep) -> Generator[RegistrarStore, None, None]:
    """Dependency that provides the RegistrarStore instance."""
    yield services.store


def get_engine(services: ServicesDep) -> Generator[EnrollmentEngine, None, None]:
    """Dependency that provides the EnrollmentEngine instance."""
    yield services.engine


def get_auth_service(services: ServicesDep) -> AuthService:
    return services.auth


# Type aliases for dependency injection
StoreDep = Annotated[RegistrarStore, Depends(get_store)]
EngineDep = Annotated[EnrollmentEngine, Depends(get_engine)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]

_bearer = HTTPBearer(auto_error=False)


def get_current_account(
    auth: AuthServiceDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> Account:
    """Dependency that resolves the bearer token to an account."""
    token = credentials.credentials if credentials is not None else None
    return auth.authenticate(token)


CurrentAccount = Annotated[Account, Depends(get_current_account)]


def require_role(*roles: Role) -> Callable[..., Account]:
    """Build a dependency that admits only accounts holding one of ``roles``."""

    def dependency(account: CurrentAccount, auth: AuthServiceDep) -> Account:
        auth.authorize(account, roles)
        return account

    return dependency


AdminAccount = Annotated[Account, Depends(require_role(Role.ADMIN))]
