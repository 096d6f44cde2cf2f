"""
FastAPI router for auth endpoints.

Provides registration, login, logout, token refresh, email verification,
password recovery and profile endpoints.
"""

import html
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from common.utils import success_response, ValidationException
from identity.auth.dependencies import (
    get_orchestrator,
    rate_limit,
    require_auth,
    require_gateway,
    require_verified_email,
)
from identity.auth.orchestrator import AuthFlowOrchestrator
from identity.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(require_gateway)],
)

Orchestrator = Annotated[AuthFlowOrchestrator, Depends(get_orchestrator)]

VERIFIED_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Email verified</title>
</head>
<body style="font-family: Arial, sans-serif; text-align: center; padding: 60px 20px; color: #333333;">
    <h1 style="color: #2D4A47;">Email verified</h1>
    <p>Thanks, {email} is now verified. You can close this page and sign in.</p>
</body>
</html>
"""


@router.post("/register", status_code=201, dependencies=[Depends(rate_limit)])
async def register(body: RegisterRequest, orchestrator: Orchestrator):
    """
    Register a new account.

    Returns the account and its first token pair; a verification email is
    sent in the background.
    """
    errors = body.role_field_errors()
    if errors:
        raise ValidationException(message=errors[0]["message"], errors=errors)

    result = await orchestrator.register(body.to_account_fields())

    return success_response(result, message="User registered successfully.")


@router.post("/login", dependencies=[Depends(rate_limit)])
async def login(body: LoginRequest, orchestrator: Orchestrator):
    """Log in with email and password; opens an additional session."""
    result = await orchestrator.login(str(body.email), body.password)

    return success_response(result, message="Login successful.")


@router.post("/refresh")
async def refresh(body: RefreshTokenRequest, orchestrator: Orchestrator):
    """Exchange a live refresh token for a new access token."""
    tokens = await orchestrator.refresh_access_token(body.refreshToken)

    return success_response({"tokens": tokens}, message="Token refreshed successfully")


@router.post("/logout")
async def logout(
    body: LogoutRequest,
    user: Annotated[dict, Depends(require_auth)],
    orchestrator: Orchestrator,
):
    """Close the session of the presented refresh token."""
    await orchestrator.logout(user, body.refreshToken)

    return success_response(message="Logged out successfully")


@router.post("/logout-all")
async def logout_all(
    user: Annotated[dict, Depends(require_auth)],
    orchestrator: Orchestrator,
):
    """Close every session of the authenticated account."""
    await orchestrator.logout_all(user)

    return success_response(message="Logged out from all devices successfully")


@router.get(
    "/verify-email",
    response_class=HTMLResponse,
    dependencies=[Depends(rate_limit)],
)
async def verify_email(
    orchestrator: Orchestrator,
    token: str = Query(""),
):
    """Redeem an email-verification link and show a confirmation page."""
    account = await orchestrator.verify_email(token)

    return HTMLResponse(VERIFIED_PAGE.format(email=html.escape(account["email"])))


@router.post("/forgot-password", dependencies=[Depends(rate_limit)])
async def forgot_password(body: ForgotPasswordRequest, orchestrator: Orchestrator):
    """Email a password reset link to the account owner."""
    await orchestrator.forgot_password(str(body.email))

    return success_response(message="Password reset link sent to email")


@router.post("/reset-password", dependencies=[Depends(rate_limit)])
async def reset_password(
    body: ResetPasswordRequest,
    orchestrator: Orchestrator,
    token: str = Query(""),
):
    """Set a new password using a reset token; signs out every device."""
    await orchestrator.reset_password(token, body.password)

    return success_response(message="Password reset successful")


@router.get("/profile")
async def get_profile(
    user: Annotated[dict, Depends(require_verified_email)],
    orchestrator: Orchestrator,
):
    """Get the profile of the authenticated, verified account."""
    view, source = await orchestrator.get_profile(user)

    return success_response({"user": view}, source=source)
