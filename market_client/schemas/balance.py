"""Schemas for the wallet balance and its transaction history."""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import List

from pydantic import Field

from .common import ApiModel, id_field


class Balance(ApiModel):
    balance: float = 0
    currency: str = "KZT"
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TransactionType(StrEnum):
    TOPUP = "topup"
    PAYMENT = "payment"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"
    FEE = "fee"
    ADJUSTMENT = "adjustment"


class TransactionStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Transaction(ApiModel):
    id: str = id_field()
    type: TransactionType
    amount: float
    currency: str = "KZT"
    status: TransactionStatus = TransactionStatus.PENDING
    description: str = ""
    created_at: datetime | None = None


class BalanceHistoryPage(ApiModel):
    history: List[Transaction] = Field(default_factory=list)
    total: int = 0
    pages: int = 0


__all__ = [
    "Balance",
    "BalanceHistoryPage",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
