"""Wallet balance and its paginated transaction history."""
from __future__ import annotations

import logging
from typing import Any

from ..clients import parse_payload
from ..results import Result
from ..schemas import Balance, BalanceHistoryPage, Pagination, Transaction
from .resource_store import PaginatedStore, ResourceStore

logger = logging.getLogger(__name__)


class BalanceStore(ResourceStore[Balance | None]):
    name = "balance"

    def _empty(self) -> Balance | None:
        return None

    async def _load(self, token: str | None, **params: Any) -> Balance:
        data = await self._api.get(
            "/api/payment/stripe/balance",
            token=token,
            error_message="Failed to load balance",
        )
        return parse_payload(Balance, data, context="balance")

    @property
    def amount(self) -> float | None:
        return self.data.balance if self.data is not None else None

    def update_balance(self, amount: float) -> Result[Balance | None]:
        """Set the cached amount locally, e.g. after a payment the server already settled."""

        if self.data is None:
            logger.debug("No balance loaded; ignoring local update to %s", amount)
            return Result.success(None)
        self.data = self.data.model_copy(update={"balance": amount})
        self._emit()
        return Result.success(self.data)


class BalanceHistoryStore(PaginatedStore[Transaction]):
    name = "balance history"
    page_size = 20

    async def _load_page(self, token: str | None, *, page: int, **filters: Any) -> tuple[list[Transaction], Pagination]:
        data = await self._api.get(
            "/api/payment/stripe/balance/history",
            token=token,
            params={"page": page, "limit": self.page_size},
            error_message="Failed to load transaction history",
        )
        parsed = parse_payload(BalanceHistoryPage, data or {}, context="transaction history")
        pagination = Pagination(total=parsed.total, page=page, limit=self.page_size, pages=parsed.pages)
        return parsed.history, pagination


__all__ = ["BalanceHistoryStore", "BalanceStore"]
