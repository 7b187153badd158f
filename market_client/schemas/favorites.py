"""Schemas for the favorites collection."""
from __future__ import annotations

from datetime import datetime

from .auth import UserIdentity
from .common import ApiModel, id_field, ref_id
from .products import Product


class Favorite(ApiModel):
    id: str = id_field()
    product_id: Product | str
    user_id: UserIdentity | str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def product_ref(self) -> str | None:
        return ref_id(self.product_id)

    @property
    def user_ref(self) -> str | None:
        return ref_id(self.user_id)


class FavoriteCreate(ApiModel):
    user_id: str
    product_id: str


__all__ = ["Favorite", "FavoriteCreate"]
