# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Session and credential management: password hashing, JWTs, reset tokens.

Nothing in this module touches the database, the network or ``settings``.
A ``CredentialManager`` is built from an explicit ``SessionConfig`` and an
optional clock, so every operation is a pure function of its inputs.

Access and refresh tokens are HS256 JWTs signed with separate secrets. Their
claims are a closed set: anything missing, unexpected or of the wrong token
type is rejected as ``TokenInvalid``. The signature is checked before the
expiry, so only a correctly signed token can ever be reported as
``TokenExpired``.
"""

import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, ValidationError

from scripelle_server.config import Settings
from scripelle_server.errors import TokenExpired, TokenInvalid, WeakPassword

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

_BASE_CLAIMS = frozenset({"sub", "email", "type", "iat", "exp"})
_REFRESH_CLAIMS = _BASE_CLAIMS | {"jti"}
_REFRESH_OPTIONAL_CLAIMS = frozenset({"ver"})

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Some backends (SQLite) hand back naive datetimes; stored values are UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AccessTokenPayload(BaseModel):
    """Identity carried by an access token."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: int
    email: str


class RefreshTokenPayload(BaseModel):
    """Identity carried by a refresh token."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: int
    email: str
    token_version: int | None = None


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


class ResetToken(NamedTuple):
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionConfig:
    """Secrets, lifetimes and hash cost used by a CredentialManager."""

    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    reset_ttl: timedelta = timedelta(hours=1)
    hash_cost: int = 10
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Token secrets must not be empty")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfig":
        return cls(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_ttl=timedelta(minutes=settings.jwt_expire_minutes),
            refresh_ttl=timedelta(days=settings.jwt_refresh_expire_days),
            reset_ttl=timedelta(minutes=settings.reset_token_expire_minutes),
            hash_cost=settings.bcrypt_rounds,
            algorithm=settings.jwt_algorithm,
        )


def check_password_strength(password: str, min_length: int = 6) -> None:
    """Raise WeakPassword if the password is shorter than min_length."""
    if len(password) < min_length:
        raise WeakPassword(f"Password must be at least {min_length} characters")


class CredentialManager:
    """Hashes passwords, mints and verifies tokens, issues reset tokens."""

    def __init__(self, config: SessionConfig, clock: Clock = utcnow) -> None:
        self.config = config
        self._clock = clock
        self._pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=config.hash_cost,
        )

    def now(self) -> datetime:
        return _as_utc(self._clock())

    # Passwords

    def hash_password(self, password: str) -> str:
        """Hash a password for storage. A fresh salt is used on every call."""
        return self._pwd_context.hash(password)

    def verify_password(self, plain: str, hashed: str | None) -> bool:
        """Verify a password against its hash. Never raises."""
        if not plain or not hashed:
            return False
        try:
            return self._pwd_context.verify(plain, hashed)
        except (ValueError, TypeError):
            return False

    # Tokens

    def _encode(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        now = self.now()
        to_encode = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(to_encode, secret, algorithm=self.config.algorithm)

    def _decode(
        self,
        token: str,
        secret: str,
        token_type: str,
        required: frozenset[str],
        optional: frozenset[str] = frozenset(),
    ) -> dict[str, Any]:
        try:
            # Expiry is checked below against our own clock.
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.config.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise TokenInvalid() from e
        keys = set(claims)
        if claims.get("type") != token_type or not required <= keys or keys - required - optional:
            raise TokenInvalid()
        exp = claims["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise TokenInvalid()
        if self.now().timestamp() >= exp:
            raise TokenExpired()
        return claims

    @staticmethod
    def _user_id(claims: dict[str, Any]) -> int:
        sub = claims["sub"]
        if not isinstance(sub, str) or not sub.isdigit():
            raise TokenInvalid()
        return int(sub)

    def mint_access(self, payload: AccessTokenPayload, ttl: timedelta | None = None) -> str:
        """Create a signed access token. Default lifetime is config.access_ttl."""
        claims = {"sub": str(payload.user_id), "email": payload.email, "type": ACCESS_TOKEN_TYPE}
        return self._encode(claims, self.config.access_secret, ttl if ttl is not None else self.config.access_ttl)

    def verify_access(self, token: str) -> AccessTokenPayload:
        """Return the payload of a valid access token.

        Raises TokenInvalid or TokenExpired.
        """
        claims = self._decode(token, self.config.access_secret, ACCESS_TOKEN_TYPE, _BASE_CLAIMS)
        try:
            return AccessTokenPayload(user_id=self._user_id(claims), email=claims["email"])
        except ValidationError as e:
            raise TokenInvalid() from e

    def mint_refresh(self, payload: RefreshTokenPayload, ttl: timedelta | None = None) -> str:
        """Create a signed refresh token. Each call yields a distinct token (unique jti)."""
        claims: dict[str, Any] = {
            "sub": str(payload.user_id),
            "email": payload.email,
            "type": REFRESH_TOKEN_TYPE,
            "jti": uuid.uuid4().hex,
        }
        if payload.token_version is not None:
            claims["ver"] = payload.token_version
        return self._encode(claims, self.config.refresh_secret, ttl if ttl is not None else self.config.refresh_ttl)

    def verify_refresh(self, token: str) -> RefreshTokenPayload:
        """Return the payload of a valid refresh token.

        Raises TokenInvalid or TokenExpired.
        """
        claims = self._decode(
            token,
            self.config.refresh_secret,
            REFRESH_TOKEN_TYPE,
            _REFRESH_CLAIMS,
            _REFRESH_OPTIONAL_CLAIMS,
        )
        try:
            return RefreshTokenPayload(
                user_id=self._user_id(claims),
                email=claims["email"],
                token_version=claims.get("ver"),
            )
        except ValidationError as e:
            raise TokenInvalid() from e

    def generate_tokens(
        self, user_id: int, email: str, token_version: int | None = None
    ) -> TokenPair:
        """Mint a fresh access/refresh pair for one identity."""
        return TokenPair(
            access_token=self.mint_access(AccessTokenPayload(user_id=user_id, email=email)),
            refresh_token=self.mint_refresh(
                RefreshTokenPayload(user_id=user_id, email=email, token_version=token_version)
            ),
        )

    # Password reset

    def generate_reset_token(self) -> ResetToken:
        """Random 256-bit hex token expiring config.reset_ttl from now."""
        return ResetToken(
            token=secrets.token_hex(32),
            expires_at=self.now() + self.config.reset_ttl,
        )

    def is_reset_token_valid(self, expires_at: datetime | None) -> bool:
        """True iff an expiry exists and the current time is strictly before it."""
        if expires_at is None:
            return False
        return self.now() < _as_utc(expires_at)
