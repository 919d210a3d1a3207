"""Custom exceptions for authentication and authorization."""


class AuthError(Exception):
    """Base exception for auth errors."""

    code = "AUTH_ERROR"


class UnauthorizedError(AuthError):
    """Caller could not be authenticated."""

    code = "UNAUTHORIZED"


class ForbiddenError(AuthError):
    """Caller is authenticated but not allowed to do this."""

    code = "FORBIDDEN"


class TokenMissingError(UnauthorizedError):
    """No bearer token was presented."""

    code = "TOKEN_MISSING"


class TokenExpiredError(UnauthorizedError):
    """Bearer token is past its expiry."""

    code = "TOKEN_EXPIRED"


class TokenInvalidError(UnauthorizedError):
    """Bearer token is malformed or its signature does not verify."""

    code = "TOKEN_INVALID"


class UserNotFoundError(UnauthorizedError):
    """Token refers to an account that no longer exists."""

    code = "USER_NOT_FOUND"


class InvalidCredentialsError(UnauthorizedError):
    """Email/password pair did not match."""

    code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid credentials", attempts_remaining: int | None = None):
        super().__init__(message)
        self.attempts_remaining = attempts_remaining


class AccountDeactivatedError(UnauthorizedError):
    """Account is disabled."""

    code = "ACCOUNT_DEACTIVATED"


class AccountLockedError(UnauthorizedError):
    """Account is locked after too many failed logins."""

    code = "ACCOUNT_LOCKED"


class InsufficientPermissionsError(ForbiddenError):
    """Account role is not allowed for this operation."""

    code = "INSUFFICIENT_PERMISSIONS"


class AccessDeniedError(ForbiddenError):
    """Resource belongs to someone else."""

    code = "ACCESS_DENIED"
