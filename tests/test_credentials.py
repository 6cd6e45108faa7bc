# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Credential core tests: hashing, token mint/verify, reset tokens. No database."""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from scripelle_server.config import Settings
from scripelle_server.credentials import (
    AccessTokenPayload,
    CredentialManager,
    RefreshTokenPayload,
    SessionConfig,
    check_password_strength,
)
from scripelle_server.errors import AuthErrorKind, TokenExpired, TokenInvalid, WeakPassword

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_manager(clock=None, **overrides) -> CredentialManager:
    options = {"access_secret": "access-A", "refresh_secret": "refresh-A", "hash_cost": 4}
    options.update(overrides)
    config = SessionConfig(**options)
    if clock is None:
        return CredentialManager(config)
    return CredentialManager(config, clock=clock)


@pytest.fixture
def manager() -> CredentialManager:
    return make_manager()


def test_hash_and_verify(manager: CredentialManager):
    hashed = manager.hash_password("secret1")
    assert hashed != "secret1"
    assert manager.verify_password("secret1", hashed)
    assert not manager.verify_password("secret2", hashed)


def test_hash_is_salted(manager: CredentialManager):
    assert manager.hash_password("secret1") != manager.hash_password("secret1")


def test_hash_uses_configured_cost():
    hashed = make_manager(hash_cost=10).hash_password("secret1")
    assert hashed.startswith("$2b$10$")


@pytest.mark.parametrize("hashed", [None, "", "not-a-bcrypt-hash", "$2b$10$short"])
def test_verify_password_never_raises(manager: CredentialManager, hashed):
    assert manager.verify_password("secret1", hashed) is False


def test_access_token_round_trip(manager: CredentialManager):
    payload = AccessTokenPayload(user_id=42, email="u@x.com")
    assert manager.verify_access(manager.mint_access(payload)) == payload


def test_refresh_token_round_trip_with_version(manager: CredentialManager):
    payload = RefreshTokenPayload(user_id=42, email="u@x.com", token_version=3)
    assert manager.verify_refresh(manager.mint_refresh(payload)) == payload


def test_generate_tokens_verify_independently(manager: CredentialManager):
    pair = manager.generate_tokens(7, "u@x.com")
    access = manager.verify_access(pair.access_token)
    refresh = manager.verify_refresh(pair.refresh_token)
    assert (access.user_id, access.email) == (7, "u@x.com")
    assert (refresh.user_id, refresh.email) == (7, "u@x.com")
    assert refresh.token_version is None


def test_token_from_other_secret_is_rejected():
    a = make_manager()
    b = make_manager(access_secret="access-B", refresh_secret="refresh-B")
    token = a.mint_access(AccessTokenPayload(user_id=1, email="u@x.com"))
    with pytest.raises(TokenInvalid):
        b.verify_access(token)


def test_access_and_refresh_are_not_interchangeable(manager: CredentialManager):
    pair = manager.generate_tokens(1, "u@x.com")
    with pytest.raises(TokenInvalid):
        manager.verify_refresh(pair.access_token)
    with pytest.raises(TokenInvalid):
        manager.verify_access(pair.refresh_token)


def test_already_expired_access_token(manager: CredentialManager):
    token = manager.mint_access(AccessTokenPayload(user_id=1, email="u@x.com"), ttl=timedelta(seconds=-1))
    with pytest.raises(TokenExpired) as excinfo:
        manager.verify_access(token)
    assert excinfo.value.kind is AuthErrorKind.TOKEN_EXPIRED


def test_access_token_expires_after_ttl():
    clock = {"now": NOW}
    manager = make_manager(clock=lambda: clock["now"])
    token = manager.mint_access(AccessTokenPayload(user_id=1, email="u@x.com"))
    clock["now"] = NOW + timedelta(minutes=14)
    assert manager.verify_access(token).user_id == 1
    clock["now"] = NOW + timedelta(minutes=15)
    with pytest.raises(TokenExpired):
        manager.verify_access(token)


def test_refresh_token_expires_after_seven_days():
    clock = {"now": NOW}
    manager = make_manager(clock=lambda: clock["now"])
    token = manager.mint_refresh(RefreshTokenPayload(user_id=1, email="u@x.com"))
    clock["now"] = NOW + timedelta(days=6, hours=23)
    assert manager.verify_refresh(token).user_id == 1
    clock["now"] = NOW + timedelta(days=7, seconds=1)
    with pytest.raises(TokenExpired):
        manager.verify_refresh(token)


def test_expired_token_with_bad_signature_is_invalid_not_expired():
    expired = make_manager().mint_access(
        AccessTokenPayload(user_id=1, email="u@x.com"), ttl=timedelta(seconds=-60)
    )
    with pytest.raises(TokenInvalid):
        make_manager(access_secret="access-B", refresh_secret="refresh-B").verify_access(expired)


def test_tampered_token_is_rejected(manager: CredentialManager):
    token = manager.mint_access(AccessTokenPayload(user_id=1, email="u@x.com"))
    header, body, signature = token.split(".")
    forged = jwt.encode(
        {"sub": "2", "email": "u@x.com", "type": "access", "iat": 0, "exp": 2**31},
        "guessed-secret",
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalid):
        manager.verify_access(".".join([header, forged.split(".")[1], signature]))


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_token_is_rejected(manager: CredentialManager, token):
    with pytest.raises(TokenInvalid):
        manager.verify_access(token)


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


def test_unsigned_token_is_rejected(manager: CredentialManager):
    claims = {"sub": "1", "email": "u@x.com", "type": "access", "iat": 0, "exp": 2**31}
    token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(claims)}."
    with pytest.raises(TokenInvalid):
        manager.verify_access(token)


def test_unknown_claims_are_rejected(manager: CredentialManager):
    token = jwt.encode(
        {
            "sub": "1",
            "email": "u@x.com",
            "type": "access",
            "iat": 0,
            "exp": 2**31,
            "role": "admin",
        },
        "access-A",
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalid):
        manager.verify_access(token)


def test_missing_claims_are_rejected(manager: CredentialManager):
    token = jwt.encode(
        {"sub": "1", "type": "access", "iat": 0, "exp": 2**31},
        "access-A",
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalid):
        manager.verify_access(token)


def test_non_numeric_subject_is_rejected(manager: CredentialManager):
    token = jwt.encode(
        {"sub": "abc", "email": "u@x.com", "type": "access", "iat": 0, "exp": 2**31},
        "access-A",
        algorithm="HS256",
    )
    with pytest.raises(TokenInvalid):
        manager.verify_access(token)


def test_refresh_tokens_are_unique_per_mint(manager: CredentialManager):
    first = manager.generate_tokens(1, "u@x.com").refresh_token
    second = manager.generate_tokens(1, "u@x.com").refresh_token
    assert first != second


def test_reset_token_shape_and_expiry():
    manager = make_manager(clock=lambda: NOW)
    reset = manager.generate_reset_token()
    assert len(reset.token) == 64
    int(reset.token, 16)
    assert reset.expires_at == NOW + timedelta(hours=1)


def test_reset_tokens_differ(manager: CredentialManager):
    assert manager.generate_reset_token().token != manager.generate_reset_token().token


def test_is_reset_token_valid():
    manager = make_manager(clock=lambda: NOW)
    assert manager.is_reset_token_valid(None) is False
    assert manager.is_reset_token_valid(NOW + timedelta(minutes=1)) is True
    assert manager.is_reset_token_valid(NOW - timedelta(minutes=1)) is False
    assert manager.is_reset_token_valid(NOW) is False


def test_is_reset_token_valid_treats_naive_as_utc():
    manager = make_manager(clock=lambda: NOW)
    assert manager.is_reset_token_valid(datetime(2026, 1, 1, 12, 30)) is True
    assert manager.is_reset_token_valid(datetime(2026, 1, 1, 11, 30)) is False


def test_session_config_requires_distinct_secrets():
    with pytest.raises(ValueError):
        SessionConfig(access_secret="same", refresh_secret="same")


def test_session_config_defaults_from_settings():
    config = SessionConfig.from_settings(Settings(_env_file=None, jwt_secret="a", jwt_refresh_secret="b", bcrypt_rounds=10))
    assert config.access_ttl == timedelta(minutes=15)
    assert config.refresh_ttl == timedelta(days=7)
    assert config.reset_ttl == timedelta(hours=1)
    assert config.hash_cost == 10


def test_password_strength():
    check_password_strength("secret1")
    check_password_strength("123456")
    with pytest.raises(WeakPassword):
        check_password_strength("12345")
