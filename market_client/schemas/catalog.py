"""Schemas for the public catalog, listing submission, search and statistics."""
from __future__ import annotations

from enum import StrEnum
from typing import List, Literal

from pydantic import Field, field_validator, model_validator

from .common import ApiModel, id_field


class ProductStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    OUTDATED = "outdated"


# Deal type that carries a price; every other deal type is free or an exchange
SALE_DEAL_TYPE = "Продать"


class Category(ApiModel):
    id: str = id_field()
    title: str
    photo: str | None = None


class ProductCreate(ApiModel):
    """A new listing. Required fields are checked before anything is sent."""

    title: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1)
    description: str = Field(default="", max_length=5000)
    deal_type: str = Field(..., min_length=1)
    price: float = Field(default=0, ge=0)
    is_negotiable: bool = False
    condition: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    seller_name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""

    @field_validator("title", "category", "deal_type", "condition", "address", "seller_name", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _price_only_for_sale(self) -> "ProductCreate":
        if self.deal_type != SALE_DEAL_TYPE:
            self.price = 0.0
            self.is_negotiable = False
        return self


class SearchFilters(ApiModel):
    category: str | None = None
    title: str | None = None
    deal_type: str | None = None
    condition: str | None = None
    price: str | None = None
    sort_by: Literal["price_asc", "price_desc", "date_desc"] | None = None
    creator_id: str | None = None
    status: ProductStatus | None = None

    def to_params(self) -> dict[str, str]:
        return {key: str(value) for key, value in self.model_dump(by_alias=True, exclude_none=True).items() if value != ""}


class CategoryStats(ApiModel):
    category: str = ""
    count: int = 0
    total_price: float = 0
    avg_price: float = 0


class CategoryStatistics(ApiModel):
    total_categories: int = 0
    categories: List[CategoryStats] = Field(default_factory=list)


class UserStats(ApiModel):
    user_id: str = ""
    name: str | None = None
    email: str | None = None
    total_products: int = 0
    total_price: float = 0
    avg_price: float = 0
    role: str | None = None


class UserStatistics(ApiModel):
    total_users: int = 0
    users: List[UserStats] = Field(default_factory=list)


class DealStats(ApiModel):
    status: str = ""
    count: int = 0
    total_amount: float = 0
    avg_amount: float = 0


class DealTotals(ApiModel):
    total_deals: int = 0
    total_amount: float = 0
    avg_amount: float = 0


class DealStatistics(ApiModel):
    total_stats: DealTotals = Field(default_factory=DealTotals)
    status_stats: List[DealStats] = Field(default_factory=list)


class Statistics(ApiModel):
    categories: CategoryStatistics = Field(default_factory=CategoryStatistics)
    users: UserStatistics = Field(default_factory=UserStatistics)
    deals: DealStatistics = Field(default_factory=DealStatistics)


__all__ = [
    "Category",
    "CategoryStatistics",
    "CategoryStats",
    "DealStatistics",
    "DealStats",
    "DealTotals",
    "ProductCreate",
    "ProductStatus",
    "SALE_DEAL_TYPE",
    "SearchFilters",
    "Statistics",
    "UserStatistics",
    "UserStats",
]
