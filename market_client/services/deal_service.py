"""Purchase deals: the user's deal list and the buyer-side actions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..clients import ApiClient, parse_payload
from ..errors import ValidationFailed
from ..results import Result
from ..schemas import CreateDealRequest, Deal, DealsPage, DealStatus, Pagination
from .async_action import ActionSpec, AsyncAction
from .notification_channel import NotificationChannel
from .resource_store import PaginatedStore
from .session_store import SessionStore

logger = logging.getLogger(__name__)

DEAL_ROLES = ("buyer", "seller")


class DealsStore(PaginatedStore[Deal]):
    """Deals the user takes part in, optionally filtered by ``role`` and ``status``."""

    name = "deals"

    async def fetch(
        self,
        page: int = 1,
        *,
        notify: bool = True,
        role: str | None = None,
        status: DealStatus | str | None = None,
    ) -> Result[list[Deal]]:
        if role is not None and role not in DEAL_ROLES:
            return self._refuse_filter(f"Unknown deal role: {role}")
        if status is not None:
            try:
                status = DealStatus(status)
            except ValueError:
                return self._refuse_filter(f"Unknown deal status: {status}")
        return await super().fetch(page, notify=notify, role=role, status=status)

    async def _load_page(self, token: str | None, *, page: int, **filters: Any) -> tuple[list[Deal], Pagination]:
        data = await self._api.get(
            "/deals/user",
            token=token,
            params={"page": page, "limit": self.page_size, **filters},
            error_message="Failed to load deals",
        )
        parsed = parse_payload(DealsPage, data or {}, context="deals")
        return parsed.deals, parsed.pagination

    def _refuse_filter(self, message: str) -> Result[list[Deal]]:
        return self._refuse(ValidationFailed(message))


CREATE_DEAL = ActionSpec(
    name="create_deal",
    method="POST",
    path="/deals/create",
    success_message="Purchase created",
    error_message="Failed to create purchase",
    payload_model=CreateDealRequest,
    response_model=Deal,
    result_key="deal",
)
CONFIRM_RECEIPT = ActionSpec(
    name="confirm_receipt",
    method="POST",
    path="/deals/{target_id}/confirm-receipt",
    success_message="Receipt confirmed",
    error_message="Failed to confirm receipt",
)
REQUEST_REFUND = ActionSpec(
    name="request_refund",
    method="POST",
    path="/deals/{target_id}/request-refund",
    success_message="Refund requested",
    error_message="Failed to request refund",
)


@dataclass
class DealActions:
    create: AsyncAction
    confirm_receipt: AsyncAction
    request_refund: AsyncAction

    @classmethod
    def build(
        cls,
        *,
        session: SessionStore,
        api: ApiClient,
        notifications: NotificationChannel,
        refresh: tuple[Any, ...] = (),
    ) -> "DealActions":
        def action(spec: ActionSpec) -> AsyncAction:
            return AsyncAction(spec, session=session, api=api, notifications=notifications, refresh=refresh)

        return cls(
            create=action(CREATE_DEAL),
            confirm_receipt=action(CONFIRM_RECEIPT),
            request_refund=action(REQUEST_REFUND),
        )


__all__ = ["CONFIRM_RECEIPT", "CREATE_DEAL", "DealActions", "DealsStore", "REQUEST_REFUND"]
