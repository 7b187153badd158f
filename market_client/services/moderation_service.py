"""Moderator and admin tooling: pending listings, blocked users, user roles and statistics."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from ..clients import ApiClient, parse_payload
from ..constants import FORBIDDEN_DETAIL
from ..errors import Unauthenticated
from ..schemas import Pagination, Product, RejectRequest, Statistics, UserIdentity, UserRole, UsersPage
from .async_action import ActionSpec, AsyncAction
from .notification_channel import NotificationChannel
from .resource_store import CollectionStore, PaginatedStore, ResourceStore
from .session_store import SessionStore

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.MODERATOR})
ADMIN_ROLES = frozenset({UserRole.ADMIN})


class PendingProductsStore(CollectionStore[Product]):
    """Listings waiting for a moderator decision."""

    name = "pending products"

    async def _load(self, token: str | None, **params: Any) -> list[Product]:
        data = await self._api.get(
            "/products/products/pending",
            token=token,
            error_message="Failed to load listings awaiting moderation",
        )
        if isinstance(data, dict):
            data = data.get("products", [])
        return parse_payload(list[Product], data or [], context="pending listings")


class BlockedUsersStore(PaginatedStore[UserIdentity]):
    """Blocked accounts, browsed one page at a time."""

    name = "blocked users"
    append_pages = False

    async def _load_page(
        self, token: str | None, *, page: int, **filters: Any
    ) -> tuple[list[UserIdentity], Pagination]:
        data = await self._api.get(
            "/user-management/blocked",
            token=token,
            params={"page": page, "limit": self.page_size},
            error_message="Failed to load blocked users",
        )
        parsed = parse_payload(UsersPage, data or {}, context="blocked users")
        return parsed.users, parsed.pagination


class AdminUsersStore(CollectionStore[UserIdentity]):
    name = "users"

    async def _load(self, token: str | None, **params: Any) -> list[UserIdentity]:
        user = self._session.require_user()
        if user.role not in ADMIN_ROLES:
            raise Unauthenticated(FORBIDDEN_DETAIL)
        data = await self._api.get("/users", token=token, error_message="Failed to load users")
        if isinstance(data, dict):
            data = data.get("users", [])
        return parse_payload(list[UserIdentity], data or [], context="user list")


class StatisticsStore(ResourceStore[Statistics | None]):
    """Admin dashboard figures: listings per category, users and deal totals."""

    name = "statistics"

    def _empty(self) -> Statistics | None:
        return None

    async def _load(self, token: str | None, **params: Any) -> Statistics:
        user = self._session.require_user()
        if user.role not in ADMIN_ROLES:
            raise Unauthenticated(FORBIDDEN_DETAIL)
        categories, users, deals = await asyncio.gather(
            *(
                self._api.get(f"/statistics/{section}", token=token, error_message="Failed to load statistics")
                for section in ("categories", "users", "deals")
            )
        )
        return parse_payload(
            Statistics,
            {"categories": categories or {}, "users": users or {}, "deals": deals or {}},
            context="statistics",
        )


APPROVE_PRODUCT = ActionSpec(
    name="approve_product",
    method="PUT",
    path="/products/products/{target_id}/approve",
    success_message="Listing approved",
    error_message="Failed to approve listing",
    required_roles=STAFF_ROLES,
)
REJECT_PRODUCT = ActionSpec(
    name="reject_product",
    method="PUT",
    path="/products/products/{target_id}/reject",
    success_message="Listing rejected",
    error_message="Failed to reject listing",
    payload_model=RejectRequest,
    required_roles=STAFF_ROLES,
)
BLOCK_USER = ActionSpec(
    name="block_user",
    method="PUT",
    path="/user-management/block/{target_id}",
    success_message="User blocked",
    error_message="Failed to block user",
    required_roles=STAFF_ROLES,
)
UNBLOCK_USER = ActionSpec(
    name="unblock_user",
    method="PUT",
    path="/user-management/unblock/{target_id}",
    success_message="User unblocked",
    error_message="Failed to unblock user",
    required_roles=STAFF_ROLES,
)
MAKE_MODERATOR = ActionSpec(
    name="make_moderator",
    method="PUT",
    path="/users/make-moderator/{target_id}",
    success_message="User is now a moderator",
    error_message="Failed to grant moderator role",
    required_roles=ADMIN_ROLES,
)
REMOVE_MODERATOR = ActionSpec(
    name="remove_moderator",
    method="PUT",
    path="/users/remove-moderator/{target_id}",
    success_message="Moderator role removed",
    error_message="Failed to remove moderator role",
    required_roles=ADMIN_ROLES,
)
MAKE_ADMIN = ActionSpec(
    name="make_admin",
    method="PUT",
    path="/users/make-admin/{target_id}",
    success_message="User is now an administrator",
    error_message="Failed to grant administrator role",
    required_roles=ADMIN_ROLES,
)


@dataclass
class ModerationActions:
    approve: AsyncAction
    reject: AsyncAction
    block: AsyncAction
    unblock: AsyncAction
    make_moderator: AsyncAction
    remove_moderator: AsyncAction
    make_admin: AsyncAction

    @classmethod
    def build(
        cls,
        *,
        session: SessionStore,
        api: ApiClient,
        notifications: NotificationChannel,
        pending: PendingProductsStore,
        blocked: BlockedUsersStore,
        users: AdminUsersStore,
    ) -> "ModerationActions":
        def action(spec: ActionSpec, *refresh: Any) -> AsyncAction:
            return AsyncAction(spec, session=session, api=api, notifications=notifications, refresh=refresh)

        return cls(
            approve=action(APPROVE_PRODUCT, pending),
            reject=action(REJECT_PRODUCT, pending),
            block=action(BLOCK_USER, blocked),
            unblock=action(UNBLOCK_USER, blocked),
            make_moderator=action(MAKE_MODERATOR, users),
            remove_moderator=action(REMOVE_MODERATOR, users),
            make_admin=action(MAKE_ADMIN, users),
        )


__all__ = [
    "APPROVE_PRODUCT",
    "AdminUsersStore",
    "BLOCK_USER",
    "BlockedUsersStore",
    "MAKE_ADMIN",
    "MAKE_MODERATOR",
    "ModerationActions",
    "PendingProductsStore",
    "REJECT_PRODUCT",
    "REMOVE_MODERATOR",
    "StatisticsStore",
    "UNBLOCK_USER",
]
