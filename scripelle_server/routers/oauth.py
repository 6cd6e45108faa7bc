# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Google sign-in routes."""

import logging
from typing import Any
from urllib.parse import urlencode

from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from scripelle_server.auth import get_credential_manager, set_refresh_cookie
from scripelle_server.config import settings
from scripelle_server.credentials import CredentialManager
from scripelle_server.database import get_db
from scripelle_server.services import sessions
from scripelle_server.services.oauth import (
    find_or_create_google_user,
    get_google_client,
    google_callback_url,
    identity_from_userinfo,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/google", tags=["auth"])


def _client_redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{settings.client_url.rstrip('/')}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


def _require_client(client: Any | None = Depends(get_google_client)) -> Any:
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Google sign-in is not configured")
    return client


@router.get("")
async def google_signin(request: Request, client: Any = Depends(_require_client)):
    """Redirect to Google's consent screen."""
    return await client.authorize_redirect(request, google_callback_url())


@router.get("/callback")
async def google_callback(
    request: Request,
    client: Any = Depends(_require_client),
    db: AsyncSession = Depends(get_db),
    manager: CredentialManager = Depends(get_credential_manager),
) -> RedirectResponse:
    """Finish Google sign-in: set the refresh cookie and hand the access token to the client app."""
    try:
        token = await client.authorize_access_token(request)
    except OAuthError as e:
        logger.warning("Google OAuth token exchange failed: %s", e.error)
        return _client_redirect("/login", error="OAuthFailed")
    info = token.get("userinfo") or await client.userinfo(token=token)
    identity = identity_from_userinfo(dict(info))
    if identity is None:
        logger.warning("Google OAuth returned no verified email")
        return _client_redirect("/login", error="OAuthFailed")
    user = await find_or_create_google_user(db, identity)
    pair = sessions.issue_tokens(manager, user)
    response = _client_redirect("/oauth-success", token=pair.access_token)
    set_refresh_cookie(response, pair.refresh_token, manager)
    return response
