"""Schemas for purchase deals between buyers and sellers."""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, List

from pydantic import Field, model_validator

from .common import ApiModel, Pagination, id_field


class DealStatus(StrEnum):
    PENDING = "pending"
    RECEIVED = "received"
    REFUND_REQUESTED = "refund_requested"
    REFUNDED = "refunded"


class DeliveryMethod(StrEnum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class DeliveryInfo(ApiModel):
    method: DeliveryMethod
    address: str | None = None
    note: str | None = None

    @model_validator(mode="after")
    def _require_address(self) -> "DeliveryInfo":
        if self.method == DeliveryMethod.DELIVERY and not (self.address or "").strip():
            raise ValueError("Delivery address is required")
        return self


class Deal(ApiModel):
    id: str = id_field()
    product_id: dict[str, Any] | str | None = None
    seller: dict[str, Any] | None = None
    buyer: dict[str, Any] | None = None
    amount: float = 0
    status: DealStatus = DealStatus.PENDING
    delivery: DeliveryInfo | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DealsPage(ApiModel):
    deals: List[Deal] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class CreateDealRequest(ApiModel):
    product_id: str = Field(..., min_length=1)
    delivery: DeliveryInfo
    price: float = Field(..., gt=0)


__all__ = [
    "CreateDealRequest",
    "Deal",
    "DealStatus",
    "DealsPage",
    "DeliveryInfo",
    "DeliveryMethod",
]
