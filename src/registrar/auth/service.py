"""AuthService - login, token authentication and role checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import TYPE_CHECKING

from werkzeug.security import check_password_hash, generate_password_hash

from registrar.auth.exceptions import (
    AccountDeactivatedError,
    AccountLockedError,
    InsufficientPermissionsError,
    InvalidCredentialsError,
    TokenMissingError,
    UserNotFoundError,
)
from registrar.data import AccountNotFoundError, Role
from registrar.data.store import utcnow

if TYPE_CHECKING:
    from registrar.auth.tokens import TokenIssuer
    from registrar.data import Account, RegistrarStore

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Check a password against a stored hash."""
    return check_password_hash(password_hash, password)


class AuthService:
    """Authenticates accounts by password or bearer token."""

    def __init__(
        self,
        store: RegistrarStore,
        tokens: TokenIssuer,
        max_login_attempts: int = 5,
        lock_for: timedelta = timedelta(minutes=15),
    ) -> None:
        """Initialize the service.

        Args:
            store: Store used to load and update accounts.
            tokens: Issuer used to sign and verify bearer tokens.
            max_login_attempts: Failed logins before the account is locked.
            lock_for: How long a locked account stays locked.
        """
        self.store = store
        self.tokens = tokens
        self.max_login_attempts = max_login_attempts
        self.lock_for = lock_for

    def login(self, email: str, password: str) -> tuple[str, Account]:
        """Verify credentials and issue a token.

        Unknown emails and wrong passwords produce the same error.

        Returns:
            Tuple of the signed token and the account

        Raises:
            InvalidCredentialsError: If the email or password is wrong
            AccountDeactivatedError: If the account is disabled
            AccountLockedError: If the account is locked
        """
        try:
            account = self.store.get_account_by_email(email)
        except AccountNotFoundError as e:
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError() from e

        self._check_usable(account)

        if not verify_password(account.password_hash, password):
            account = self.store.record_login_failure(
                account.id, self.max_login_attempts, self.lock_for
            )
            remaining = max(0, self.max_login_attempts - account.login_attempts)
            if remaining == 0:
                logger.warning(
                    "Account %s locked after %d failed logins", account.id, account.login_attempts
                )
            else:
                logger.info(
                    "Login failed for account %s (%d attempts left)", account.id, remaining
                )
            raise InvalidCredentialsError(attempts_remaining=remaining)

        account = self.store.record_login_success(account.id)
        token = self.tokens.issue(account.id, account.email, account.role)
        logger.info("Account %s logged in", account.id)
        return token, account

    def authenticate(self, token: str | None) -> Account:
        """Resolve a bearer token to a usable account.

        Raises:
            TokenMissingError: If no token was given
            TokenExpiredError: If the token has expired
            TokenInvalidError: If the token does not verify
            UserNotFoundError: If the account no longer exists
            AccountDeactivatedError: If the account is disabled
            AccountLockedError: If the account is locked
        """
        if not token:
            raise TokenMissingError("Access token required")

        claims = self.tokens.verify(token)
        try:
            account = self.store.get_account(claims.account_id)
        except AccountNotFoundError as e:
            raise UserNotFoundError("User not found") from e

        self._check_usable(account)
        return account

    def authorize(self, account: Account, roles: Iterable[Role]) -> None:
        """Require the account's role to be one of ``roles``.

        Raises:
            InsufficientPermissionsError: If the role is not allowed
        """
        allowed = {role.value for role in roles}
        if account.role not in allowed:
            raise InsufficientPermissionsError("Insufficient permissions")

    def _check_usable(self, account: Account) -> None:
        if not account.is_active:
            raise AccountDeactivatedError("Account is deactivated")
        if account.locked_until is not None and account.locked_until > utcnow():
            raise AccountLockedError(
                "Account is temporarily locked due to too many failed login attempts"
            )
