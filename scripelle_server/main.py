# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Scripelle Server - Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from scripelle_server import __version__
from scripelle_server.config import settings
from scripelle_server.database import init_db
from scripelle_server.errors import AuthError
from scripelle_server.routers import auth, documents, oauth
from scripelle_server.services.oauth import get_google_client

logger = logging.getLogger(__name__)


def _get_cors_origins() -> list[str]:
    raw = (settings.cors_origins or "*").strip()
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await init_db()
    if settings.jwt_secret == "change-me-in-production":
        logger.warning("JWT_SECRET is the built-in default - set it in the environment")
    if get_google_client() is None:
        logger.info("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set - Google sign-in disabled")
    if not settings.smtp_host:
        logger.info("SMTP_HOST not set - emails are logged instead of sent")
    yield


app = FastAPI(
    title="Scripelle Server",
    description="Authentication and documents API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Authorization"],
)
# Holds OAuth state between /auth/google and its callback.
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    same_site="lax",
    https_only=settings.cookie_secure,
    max_age=600,
)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map credential and token failures to their HTTP status."""
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


# API v1
app.include_router(auth.router, prefix="/api/v1")
app.include_router(oauth.router, prefix="/api/v1")
app.include_router(documents.router, prefix="/api/v1")


@app.get("/")
async def root():
    """API info."""
    return {
        "name": "Scripelle Server",
        "version": __version__,
        "api": "/api/v1",
        "docs": "/api/docs",
    }


@app.get("/api/v1/health")
async def health():
    """Health check for load balancers."""
    return {"status": "ok"}
