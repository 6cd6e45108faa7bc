# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Authentication error taxonomy.

Every credential or token failure raised by the core is one of the
``AuthError`` subclasses below. Each carries the HTTP status and the
user-facing detail it is reported with, so the API layer maps them in one
place (see ``main.auth_error_handler``).
"""

from enum import Enum

from fastapi import status


class AuthErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    TOKEN_INVALID = "token_invalid"
    TOKEN_EXPIRED = "token_expired"
    RESET_TOKEN_EXPIRED = "reset_token_expired"
    WEAK_PASSWORD = "weak_password"
    EMAIL_TAKEN = "email_taken"


class AuthError(Exception):
    """Base class for authentication failures."""

    kind: AuthErrorKind
    status_code: int = status.HTTP_401_UNAUTHORIZED
    detail: str = "Not authenticated"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidCredentials(AuthError):
    """Unknown identity or wrong password. Both are reported the same way."""

    kind = AuthErrorKind.INVALID_CREDENTIALS
    detail = "Invalid credentials"


class TokenInvalid(AuthError):
    """Signature mismatch, malformed token, wrong token type or bad claims."""

    kind = AuthErrorKind.TOKEN_INVALID
    detail = "Invalid or expired token"


class TokenExpired(AuthError):
    """Well-signed token past its expiry."""

    kind = AuthErrorKind.TOKEN_EXPIRED
    detail = "Invalid or expired token"


class ResetTokenInvalid(TokenInvalid):
    """Reset token that matches no account."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid or expired reset token"


class ResetTokenExpired(AuthError):
    kind = AuthErrorKind.RESET_TOKEN_EXPIRED
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Reset token has expired. Please request a new password reset."


class WeakPassword(AuthError):
    kind = AuthErrorKind.WEAK_PASSWORD
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Password must be at least 6 characters"


class EmailTaken(AuthError):
    """Registration for an email that already has an account (case-insensitive)."""

    kind = AuthErrorKind.EMAIL_TAKEN
    status_code = status.HTTP_409_CONFLICT
    detail = "User with this email already exists"


class EmailDeliveryError(Exception):
    """Raised when an email could not be handed to the SMTP server."""
