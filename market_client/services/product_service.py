"""Owner actions on the user's own listings."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..clients import ApiClient
from ..schemas import Product, ProductCreate, ProductUpdate
from .async_action import ActionSpec, AsyncAction
from .notification_channel import NotificationChannel
from .session_store import SessionStore

CREATE_PRODUCT = ActionSpec(
    name="create_product",
    method="POST",
    path="/products",
    success_message="Listing submitted for review",
    error_message="Failed to create listing",
    creator_scoped=True,
    payload_model=ProductCreate,
    response_model=Product,
    result_key="product",
)
# The server exposes deletion as a POST carrying the creator id
DELETE_PRODUCT = ActionSpec(
    name="delete_product",
    method="POST",
    path="/products/{target_id}",
    success_message="Listing deleted",
    error_message="Failed to delete listing",
    creator_scoped=True,
)
MARK_OUTDATED = ActionSpec(
    name="mark_outdated",
    method="PUT",
    path="/products/{target_id}/mark-outdated",
    success_message="Listing marked as outdated",
    error_message="Failed to mark listing as outdated",
    creator_scoped=True,
)
RESTORE_PRODUCT = ActionSpec(
    name="restore_product",
    method="PUT",
    path="/products/{target_id}/restore",
    success_message="Listing restored",
    error_message="Failed to restore listing",
    creator_scoped=True,
)
UPDATE_PRODUCT = ActionSpec(
    name="update_product",
    method="PUT",
    path="/products/{target_id}",
    success_message="Listing updated",
    error_message="Failed to update listing",
    creator_scoped=True,
    payload_model=ProductUpdate,
    response_model=Product,
    result_key="product",
)
# Paid promotion; the charge shows up in the balance
BOOST_PRODUCT = ActionSpec(
    name="boost_product",
    method="POST",
    path="/products/{target_id}/boost",
    success_message="Listing promoted",
    error_message="Failed to promote listing",
    creator_scoped=True,
)


@dataclass
class ProductActions:
    create: AsyncAction
    delete: AsyncAction
    mark_outdated: AsyncAction
    restore: AsyncAction
    update: AsyncAction
    boost: AsyncAction

    @classmethod
    def build(
        cls,
        *,
        session: SessionStore,
        api: ApiClient,
        notifications: NotificationChannel,
        listings: Any = None,
        balance: Any = None,
    ) -> "ProductActions":
        def action(spec: ActionSpec, *refresh: Any) -> AsyncAction:
            stores = [store for store in refresh if store is not None]
            return AsyncAction(spec, session=session, api=api, notifications=notifications, refresh=stores)

        return cls(
            create=action(CREATE_PRODUCT, listings),
            delete=action(DELETE_PRODUCT, listings),
            mark_outdated=action(MARK_OUTDATED, listings),
            restore=action(RESTORE_PRODUCT, listings),
            update=action(UPDATE_PRODUCT, listings),
            boost=action(BOOST_PRODUCT, listings, balance),
        )


__all__ = [
    "BOOST_PRODUCT",
    "CREATE_PRODUCT",
    "DELETE_PRODUCT",
    "MARK_OUTDATED",
    "ProductActions",
    "RESTORE_PRODUCT",
    "UPDATE_PRODUCT",
]
