# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Google sign-in: Authlib client registration and account linking."""

import logging
from dataclasses import dataclass
from typing import Any

from authlib.integrations.starlette_client import OAuth
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scripelle_server.config import settings
from scripelle_server.models import User
from scripelle_server.services import users

logger = logging.getLogger(__name__)

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"

oauth = OAuth()

if settings.google_client_id and settings.google_client_secret:
    oauth.register(
        name="google",
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        server_metadata_url=GOOGLE_METADATA_URL,
        client_kwargs={"scope": "openid email profile", "prompt": "select_account"},
    )
    logger.info("Google OAuth client registered")


def get_google_client() -> Any | None:
    """Dependency returning the registered Google client, or None if not configured."""
    return oauth.create_client("google")


def google_callback_url() -> str:
    return f"{settings.server_url.rstrip('/')}/api/v1/auth/google/callback"


@dataclass(frozen=True)
class GoogleIdentity:
    """Identity asserted by Google after a successful sign-in."""

    subject: str
    email: str
    first_name: str = ""
    last_name: str = ""


def identity_from_userinfo(info: dict[str, Any]) -> GoogleIdentity | None:
    """Build an identity from OpenID userinfo; None without a verified email."""
    email = info.get("email")
    subject = info.get("sub")
    if not email or not subject or info.get("email_verified") is False:
        return None
    return GoogleIdentity(
        subject=str(subject),
        email=email,
        first_name=info.get("given_name") or "",
        last_name=info.get("family_name") or "",
    )


async def find_or_create_google_user(db: AsyncSession, identity: GoogleIdentity) -> User:
    """Return the account for identity, linking or creating it as needed.

    Lookup is by Google subject first, then by email (which links the
    existing account). New accounts have no password.
    """
    result = await db.execute(select(User).where(User.google_id == identity.subject))
    user = result.scalar_one_or_none()
    if user:
        return user
    user = await users.get_user_by_email(db, identity.email)
    if user:
        if user.google_id is None:
            user.google_id = identity.subject
            await db.commit()
            await db.refresh(user)
            logger.info("Linked Google account to user %s", user.id)
        return user
    user = await users.create_user(
        db,
        email=identity.email,
        password_hash=None,
        first_name=identity.first_name,
        last_name=identity.last_name,
        google_id=identity.subject,
    )
    logger.info("Created user %s from Google sign-in", user.id)
    return user
