# Copyright (C) 2025 Scripelle Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pydantic schemas for API request/response."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr


# Auth
class UserCreate(BaseModel):
    email: EmailStr
    password: str
    first_name: str
    last_name: str


class AdminCreate(UserCreate):
    admin_secret: str | None = None


class UserLogin(BaseModel):
    email: str
    password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


class UserResponse(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    plan: str
    available_credits: int
    is_admin: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Access token and profile. The refresh token only ever travels in a cookie."""

    message: str
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


# Documents
class DocumentCreate(BaseModel):
    title: str
    content: str = ""
    chat_history: list[str] = []


class DocumentUpdate(BaseModel):
    title: str | None = None
    content: str | None = None
    chat_history: list[str] | None = None


class DocumentResponse(BaseModel):
    id: int
    title: str
    content: str
    chat_history: list[str]
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
