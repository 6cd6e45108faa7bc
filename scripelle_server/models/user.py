# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""User model."""

from datetime import datetime
from sqlalchemy import Boolean, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scripelle_server.models.base import Base
from scripelle_server.models.document import Document
from scripelle_server.models.timestamp import TimestampMixin


class User(Base, TimestampMixin):
    """User account. Password hash is null for accounts created through Google sign-in."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    plan: Mapped[str] = mapped_column(String(32), default="free", nullable=False)
    available_credits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Embedded in refresh tokens; bumping it invalidates every outstanding one.
    token_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reset_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True, index=True)
    reset_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    documents: Mapped[list["Document"]] = relationship(
        "Document", back_populates="owner", cascade="all, delete-orphan"
    )


# Emails are unique regardless of case.
Index("uq_users_email_lower", func.lower(User.email), unique=True)
