"""Schemas for product listings and the moderation endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import Field, model_validator

from .common import ApiModel, id_field


class Product(ApiModel):
    id: str = id_field()
    title: str = ""
    category: str | None = None
    description: str | None = None
    deal_type: str | None = None
    price: float | None = None
    is_negotiable: bool = False
    condition: str | None = None
    address: str | None = None
    seller_name: str | None = None
    email: str | None = None
    phone: str | None = None
    photo: List[str] = Field(default_factory=list)
    status: str | None = None
    creator_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductUpdate(ApiModel):
    title: str | None = Field(default=None, min_length=1, max_length=120)
    category: str | None = None
    description: str | None = Field(default=None, max_length=5000)
    deal_type: str | None = None
    price: float | None = Field(default=None, ge=0)
    is_negotiable: bool | None = None
    condition: str | None = None
    address: str | None = None
    seller_name: str | None = None
    email: str | None = None
    phone: str | None = None

    @model_validator(mode="after")
    def _require_changes(self) -> "ProductUpdate":
        if not self.model_dump(exclude_none=True):
            raise ValueError("At least one field must be updated")
        return self


class RejectRequest(ApiModel):
    reason: str = Field(..., min_length=1, max_length=500)


__all__ = ["Product", "ProductUpdate", "RejectRequest"]
