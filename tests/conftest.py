# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest fixtures. Tests run against a throwaway SQLite database."""

import os
import tempfile

# Settings are read at import time, so the environment is set before any app import.
_tmpdir = tempfile.mkdtemp(prefix="scripelle-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmpdir}/test.db"
os.environ["JWT_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_HOST"] = ""
os.environ["ADMIN_SECRET_KEY"] = "let-me-in"
os.environ["CLIENT_URL"] = "http://client.test"

import pytest
from httpx import ASGITransport, AsyncClient

from scripelle_server.database import async_session_maker, drop_db, init_db
from scripelle_server.main import app
from scripelle_server.rate_limit import reset_limits
from scripelle_server.services import sessions


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_rate_limits():
    reset_limits()
    yield
    reset_limits()


@pytest.fixture
async def tables():
    await init_db()
    yield
    await drop_db()


@pytest.fixture
async def db(tables):
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def client(tables):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture reset emails instead of sending them. Items are (to, token)."""
    sent: list[tuple[str, str]] = []

    async def fake_send(to: str, token: str) -> None:
        sent.append((to, token))

    monkeypatch.setattr(sessions, "send_password_reset_email", fake_send)
    return sent


async def register(client: AsyncClient, email: str = "a@x.com", password: str = "secret1", **extra):
    body = {"email": email, "password": password, "first_name": "Ada", "last_name": "Lovelace"}
    body.update(extra)
    return await client.post("/api/v1/auth/register", json=body)
