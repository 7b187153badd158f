"""Schemas for the user management endpoints."""
from __future__ import annotations

from typing import List

from pydantic import Field, field_validator

from .auth import UserIdentity
from .common import ApiModel, Pagination


class UsersPage(ApiModel):
    users: List[UserIdentity] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class ProfileUpdate(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=32)

    @field_validator("name", "phone", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


__all__ = ["ProfileUpdate", "UsersPage"]
