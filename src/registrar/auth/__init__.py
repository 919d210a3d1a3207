"""Auth - password login, bearer tokens and role checks."""

from registrar.auth.exceptions import (
    AccessDeniedError,
    AccountDeactivatedError,
    AccountLockedError,
    AuthError,
    ForbiddenError,
    InsufficientPermissionsError,
    InvalidCredentialsError,
    TokenExpiredError,
    TokenInvalidError,
    TokenMissingError,
    UnauthorizedError,
    UserNotFoundError,
)
from registrar.auth.service import AuthService, hash_password, verify_password
from registrar.auth.tokens import TokenClaims, TokenIssuer

__all__ = [
    "AccessDeniedError",
    "AccountDeactivatedError",
    "AccountLockedError",
    "AuthError",
    "AuthService",
    "ForbiddenError",
    "InsufficientPermissionsError",
    "InvalidCredentialsError",
    "TokenClaims",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenIssuer",
    "TokenMissingError",
    "UnauthorizedError",
    "UserNotFoundError",
    "hash_password",
    "verify_password",
]
