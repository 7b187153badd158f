"""Pydantic schemas for the session and the auth endpoints."""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import EmailStr, Field

from .common import ApiModel, id_field


class UserRole(StrEnum):
    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"
    BLOCKED = "blocked"


class UserIdentity(ApiModel):
    id: str = id_field(min_length=1)
    name: str = ""
    email: str | None = None
    profile_photo: str | None = None
    phone_number: str | None = None
    gender: str | None = None
    role: UserRole = UserRole.USER
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class RegisterRequest(ApiModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=64)


class AuthResponse(ApiModel):
    token: str = Field(..., min_length=1)
    user: UserIdentity
