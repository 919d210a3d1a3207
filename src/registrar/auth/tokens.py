"""Signed bearer tokens (HS256 JWT)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from registrar.auth.exceptions import TokenExpiredError, TokenInvalidError

ALGORITHM = "HS256"


@dataclass
class TokenClaims:
    """Identity carried by a verified token."""

    account_id: int
    email: str
    role: str
    expires_at: datetime


class TokenIssuer:
    """Issues and verifies bearer tokens with a shared secret."""

    def __init__(self, secret: str, expires_in: timedelta) -> None:
        self._secret = secret
        self.expires_in = expires_in

    def issue(self, account_id: int, email: str, role: str, now: datetime | None = None) -> str:
        """Sign a token for an account.

        Args:
            account_id: Account database ID, stored as the ``sub`` claim
            email: Account email
            role: Account role
            now: Issue time (defaults to the current time)

        Returns:
            Encoded JWT
        """
        issued_at = now or datetime.now(UTC)
        payload = {
            "sub": str(account_id),
            "email": email,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self.expires_in,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Decode a token and check its signature and expiry.

        Raises:
            TokenExpiredError: If the token has expired
            TokenInvalidError: If the token is malformed or tampered with
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError("Invalid token") from e

        try:
            account_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise TokenInvalidError("Invalid token") from e

        return TokenClaims(
            account_id=account_id,
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )
