# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Login, refresh-token rotation and password reset flows.

These tie the credential core to the user store. Each function either
returns its result or raises one of the errors in ``scripelle_server.errors``.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from scripelle_server.credentials import CredentialManager, TokenPair
from scripelle_server.errors import InvalidCredentials, ResetTokenExpired, ResetTokenInvalid, TokenInvalid
from scripelle_server.models import User
from scripelle_server.services import users
from scripelle_server.services.email import send_password_reset_email

logger = logging.getLogger(__name__)


def issue_tokens(manager: CredentialManager, user: User) -> TokenPair:
    return manager.generate_tokens(user.id, user.email, user.token_version)


async def authenticate(
    db: AsyncSession, manager: CredentialManager, email: str, password: str
) -> User:
    """Return the user for email/password or raise InvalidCredentials.

    Unknown email, password-less (OAuth) accounts and wrong passwords are
    indistinguishable to the caller.
    """
    user = await users.get_user_by_email(db, email)
    if user is None or not manager.verify_password(password, user.password_hash):
        logger.info("Failed login for %s", email)
        raise InvalidCredentials()
    return user


async def rotate_session(
    db: AsyncSession, manager: CredentialManager, refresh_token: str
) -> tuple[User, TokenPair]:
    """Exchange a refresh token for a brand-new access/refresh pair.

    Raises TokenInvalid or TokenExpired; nothing is issued unless every
    check passes. The presented token is superseded, not revoked.
    """
    payload = manager.verify_refresh(refresh_token)
    user = await users.get_user_by_id(db, payload.user_id)
    if user is None:
        logger.warning("Refresh token for missing user %s", payload.user_id)
        raise TokenInvalid()
    if payload.token_version is not None and payload.token_version != user.token_version:
        logger.info("Refresh token for user %s has a stale version", user.id)
        raise TokenInvalid()
    return user, issue_tokens(manager, user)


async def request_password_reset(
    db: AsyncSession, manager: CredentialManager, email: str
) -> bool:
    """Store and email a fresh reset token. Returns False if no such user.

    If the email cannot be sent the token is cleared again and
    EmailDeliveryError propagates.
    """
    user = await users.get_user_by_email(db, email)
    if user is None:
        return False
    reset = manager.generate_reset_token()
    await users.set_reset_token(db, user, reset.token, reset.expires_at)
    try:
        await send_password_reset_email(user.email, reset.token)
    except Exception:
        await users.clear_reset_token(db, user.id)
        raise
    logger.info("Password reset requested for user %s", user.id)
    return True


async def reset_password(
    db: AsyncSession, manager: CredentialManager, token: str, new_password: str
) -> User:
    """Consume a reset token and set new_password.

    Raises ResetTokenInvalid for an unknown token and ResetTokenExpired for an
    expired one. In both the expired and the successful case the stored
    token is cleared, so it can never be used twice.
    """
    user = await users.get_user_by_reset_token(db, token)
    if user is None or user.reset_token_expiry is None:
        raise ResetTokenInvalid()
    if not manager.is_reset_token_valid(user.reset_token_expiry):
        await users.clear_reset_token(db, user.id)
        logger.info("Expired reset token used for user %s", user.id)
        raise ResetTokenExpired()
    changed = await users.consume_reset_token(
        db, user.id, token, manager.hash_password(new_password), manager.now()
    )
    if not changed:
        # Another request consumed or replaced the token in the meantime.
        raise ResetTokenInvalid()
    await db.refresh(user)
    logger.info("Password reset completed for user %s", user.id)
    return user
