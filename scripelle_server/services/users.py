# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""User store: lookups, creation and reset-token persistence."""

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scripelle_server.errors import EmailTaken
from scripelle_server.models import User


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Find a user by email, ignoring case."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_reset_token(db: AsyncSession, token: str) -> User | None:
    result = await db.execute(select(User).where(User.reset_token == token))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    password_hash: str | None,
    first_name: str = "",
    last_name: str = "",
    google_id: str | None = None,
    is_admin: bool = False,
) -> User:
    """Insert a user and return it with server defaults loaded.

    Raises EmailTaken if the email (compared without case) is already in use.
    """
    user = User(
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        google_id=google_id,
        is_admin=is_admin,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise EmailTaken() from e
    await db.refresh(user)
    return user


async def set_reset_token(db: AsyncSession, user: User, token: str, expires_at: datetime) -> None:
    """Store a reset token on the user, replacing any outstanding one."""
    user.reset_token = token
    user.reset_token_expiry = expires_at
    await db.commit()


async def clear_reset_token(db: AsyncSession, user_id: int) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(reset_token=None, reset_token_expiry=None)
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def consume_reset_token(
    db: AsyncSession,
    user_id: int,
    token: str,
    password_hash: str,
    now: datetime,
) -> bool:
    """Set a new password and clear the reset token in one conditional UPDATE.

    The row only matches while the token is still stored and unexpired, so of
    two concurrent resets with the same token at most one succeeds. The
    password change also bumps token_version, invalidating refresh tokens.
    Returns True if the password was changed.
    """
    result = await db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.reset_token == token,
            User.reset_token_expiry > now,
        )
        .values(
            password_hash=password_hash,
            reset_token=None,
            reset_token_expiry=None,
            token_version=User.token_version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1
