# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication API routes."""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from scripelle_server.auth import (
    clear_refresh_cookie,
    get_credential_manager,
    get_current_user_id,
    set_refresh_cookie,
)
from scripelle_server.config import settings
from scripelle_server.credentials import CredentialManager, check_password_strength
from scripelle_server.database import get_db
from scripelle_server.errors import AuthError, EmailDeliveryError, EmailTaken
from scripelle_server.models import User
from scripelle_server.api.schemas import (
    AdminCreate,
    AuthResponse,
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserCreate,
    UserLogin,
    UserResponse,
)
from scripelle_server.rate_limit import rate_limit_auth_dep
from scripelle_server.services import sessions, users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(rate_limit_auth_dep)])

FORGOT_PASSWORD_MESSAGE = (
    "If the email exists in our system, you will receive a password reset link shortly."
)


def _auth_response(
    response: Response, manager: CredentialManager, user: User, message: str
) -> AuthResponse:
    """Issue a token pair: refresh token into the cookie, access token into the body."""
    pair = sessions.issue_tokens(manager, user)
    set_refresh_cookie(response, pair.refresh_token, manager)
    return AuthResponse(
        message=message,
        access_token=pair.access_token,
        user=UserResponse.model_validate(user),
    )


async def _ensure_email_free(db: AsyncSession, email: str) -> None:
    if await users.get_user_by_email(db, email):
        raise EmailTaken()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
) -> AuthResponse:
    """Create an account and sign it in."""
    check_password_strength(data.password, settings.min_password_length)
    await _ensure_email_free(db, data.email)
    user = await users.create_user(
        db,
        email=data.email,
        password_hash=manager.hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
    )
    logger.info("Registered user %s", user.id)
    return _auth_response(response, manager, user, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
async def login(
    data: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
) -> AuthResponse:
    """Authenticate with email and password."""
    user = await sessions.authenticate(db, manager, data.email, data.password)
    return _auth_response(response, manager, user, "Login successful")


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
):
    """Rotate the refresh cookie and return a new access token."""
    token = request.cookies.get(settings.refresh_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user, pair = await sessions.rotate_session(db, manager, token)
    except AuthError as e:
        logger.info("Refresh rejected: %s", e.kind.value)
        rejected = JSONResponse(
            status_code=e.status_code,
            content={"detail": e.detail},
            headers={"WWW-Authenticate": "Bearer"},
        )
        clear_refresh_cookie(rejected)
        return rejected
    set_refresh_cookie(response, pair.refresh_token, manager)
    return AuthResponse(
        message="Token refreshed successfully",
        access_token=pair.access_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """Clear the refresh cookie. Tokens are stateless; nothing is stored server-side."""
    clear_refresh_cookie(response)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Get current user profile."""
    user = await users.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse.model_validate(user)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
) -> MessageResponse:
    """Request a password reset link. The reply does not reveal whether the email exists."""
    try:
        await sessions.request_password_reset(db, manager, data.email)
    except EmailDeliveryError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send reset email. Please try again later.",
        )
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
) -> MessageResponse:
    """Set a new password using the token from the reset email."""
    check_password_strength(data.new_password, settings.min_password_length)
    await sessions.reset_password(db, manager, data.token, data.new_password)
    return MessageResponse(
        message="Password has been reset successfully. You can now log in with your new password."
    )


@router.post("/admin/create", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
) -> AuthResponse:
    """Create an admin account. Requires admin_secret when ADMIN_SECRET_KEY is configured."""
    check_password_strength(data.password, settings.min_password_length)
    expected = settings.admin_secret_key
    if expected and not secrets.compare_digest(data.admin_secret or "", expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid admin secret key")
    await _ensure_email_free(db, data.email)
    user = await users.create_user(
        db,
        email=data.email,
        password_hash=manager.hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        is_admin=True,
    )
    logger.info("Created admin user %s", user.id)
    return _auth_response(response, manager, user, "Admin user created successfully")


@router.post("/admin/login", response_model=AuthResponse)
async def admin_login(
    data: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
) -> AuthResponse:
    """Authenticate an admin account."""
    user = await sessions.authenticate(db, manager, data.email, data.password)
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required.",
        )
    return _auth_response(response, manager, user, "Admin login successful")
