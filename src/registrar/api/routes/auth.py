"""Login and token endpoints."""

from typing import Any

from fastapi import APIRouter

from registrar.api.dependencies import AuthServiceDep, CurrentAccount
from registrar.api.models import (
    AccountResponse,
    APIResponse,
    LoginRequest,
    LoginResponse,
    account_to_response,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(credentials: LoginRequest, auth: AuthServiceDep) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    token, account = auth.login(credentials.email, credentials.password)
    return LoginResponse(token=token, user=account_to_response(account))


@router.get("/verify")
def verify(account: CurrentAccount) -> dict[str, Any]:
    """Confirm the bearer token is valid."""
    return {
        "success": True,
        "valid": True,
        "user": account_to_response(account).model_dump(mode="json"),
    }


@router.get("/profile", response_model=APIResponse[AccountResponse])
def profile(account: CurrentAccount) -> APIResponse[AccountResponse]:
    """Get the account behind the bearer token."""
    return APIResponse(data=account_to_response(account))
