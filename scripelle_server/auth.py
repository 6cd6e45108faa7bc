# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication dependencies: bearer access tokens and the refresh cookie."""

from fastapi import Depends, HTTPException, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from scripelle_server.config import settings
from scripelle_server.credentials import AccessTokenPayload, CredentialManager, SessionConfig

bearer_scheme = HTTPBearer(auto_error=False)

credential_manager = CredentialManager(SessionConfig.from_settings(settings))


def get_credential_manager() -> CredentialManager:
    """Dependency returning the application's CredentialManager."""
    return credential_manager


def set_refresh_cookie(response: Response, refresh_token: str, manager: CredentialManager) -> None:
    """Store the refresh token in an http-only, same-site strict cookie."""
    response.set_cookie(
        settings.refresh_cookie_name,
        refresh_token,
        max_age=int(manager.config.refresh_ttl.total_seconds()),
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.refresh_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    manager: CredentialManager = Depends(get_credential_manager),
) -> AccessTokenPayload:
    """Validate the Bearer access token. Raises 401 if missing, invalid or expired."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return manager.verify_access(credentials.credentials)


async def get_current_user_id(payload: AccessTokenPayload = Depends(get_current_user)) -> int:
    return payload.user_id
