import asyncio
from typing import Any

import httpx
import pytest

from conftest import ALICE, FakeServer, record_notifications, sign_in
from market_client.constants import FORBIDDEN_DETAIL
from market_client.errors import ServerRejected, Unauthenticated, ValidationFailed
from market_client.schemas import Product, UserRole
from market_client.services import (
    AdminUsersStore,
    AsyncAction,
    BalanceStore,
    BlockedUsersStore,
    ModerationActions,
    PendingProductsStore,
    ProductActions,
)
from market_client.services.deal_service import CONFIRM_RECEIPT
from market_client.services.moderation_service import APPROVE_PRODUCT
from market_client.services.product_service import DELETE_PRODUCT


@pytest.mark.asyncio
async def test_delete_sends_creator_id_and_notifies_once(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("POST", "/products/p-1", json={"message": "Product deleted successfully"})
    shown = record_notifications(deps["notifications"])
    actions = ProductActions.build(**deps)
    await sign_in(deps["session"])

    result = await actions.delete.run("p-1")

    assert result.ok
    assert server.calls_to("POST", "/products/p-1")[0].body == {"creatorId": ALICE.id}
    assert shown == [("success", "Product deleted successfully")]
    assert not actions.delete.is_loading


@pytest.mark.asyncio
async def test_loading_flag_covers_the_request(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("PUT", "/products/p-1/restore", json={}, delay=0.05)
    actions = ProductActions.build(**deps)
    await sign_in(deps["session"])

    task = asyncio.create_task(actions.restore.run("p-1"))
    await asyncio.sleep(0.01)
    during = actions.restore.is_loading
    await task

    assert during is True
    assert actions.restore.is_loading is False


@pytest.mark.asyncio
async def test_update_returns_server_product(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route(
        "PUT",
        "/products/p-1",
        json={"message": "Updated", "product": {"_id": "p-1", "title": "Road bike", "price": 150}},
    )
    actions = ProductActions.build(**deps)
    await sign_in(deps["session"])

    result = await actions.update.run("p-1", title="Road bike", price=150)

    assert isinstance(result.data, Product)
    assert result.data.title == "Road bike"
    assert server.calls[0].body == {"title": "Road bike", "price": 150.0, "creatorId": ALICE.id}


@pytest.mark.asyncio
async def test_invalid_payload_is_refused_before_request(server: FakeServer, deps: dict[str, Any]) -> None:
    shown = record_notifications(deps["notifications"])
    actions = ProductActions.build(**deps)
    await sign_in(deps["session"])

    empty = await actions.update.run("p-1")
    untargeted = await actions.delete.run(None)

    assert isinstance(empty.error, ValidationFailed)
    assert isinstance(untargeted.error, ValidationFailed)
    assert untargeted.error.fields == ["target_id"]
    assert server.calls == []
    assert [kind for kind, _ in shown] == ["error", "error"]


@pytest.mark.asyncio
async def test_missing_session_and_role_are_refused(server: FakeServer, deps: dict[str, Any]) -> None:
    approve = AsyncAction(APPROVE_PRODUCT, **deps)
    delete = AsyncAction(DELETE_PRODUCT, **deps)

    anonymous = await delete.run("p-1")
    await sign_in(deps["session"])
    forbidden = await approve.run("p-1")

    assert isinstance(anonymous.error, Unauthenticated)
    assert isinstance(forbidden.error, Unauthenticated)
    assert forbidden.message == FORBIDDEN_DETAIL
    assert approve.error == FORBIDDEN_DETAIL
    assert server.calls == []


@pytest.mark.asyncio
async def test_server_rejection_produces_single_error(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("PUT", "/products/p-1/mark-outdated", json={"message": "Not your listing"}, status=403)
    shown = record_notifications(deps["notifications"])
    actions = ProductActions.build(**deps)
    await sign_in(deps["session"])

    result = await actions.mark_outdated.run("p-1")

    assert isinstance(result.error, ServerRejected)
    assert actions.mark_outdated.error == "Not your listing"
    assert shown == [("error", "Not your listing")]


@pytest.mark.asyncio
async def test_fallback_message_when_error_body_is_empty(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("PUT", "/products/p-1/mark-outdated", lambda request: httpx.Response(500))
    actions = ProductActions.build(**deps)
    await sign_in(deps["session"])

    result = await actions.mark_outdated.run("p-1")

    assert result.message == "Failed to mark listing as outdated"


@pytest.mark.asyncio
async def test_dependent_refresh_is_quiet(server: FakeServer, deps: dict[str, Any]) -> None:
    moderator = ALICE.model_copy(update={"role": UserRole.MODERATOR})
    pending_calls = 0

    def pending(request: httpx.Request) -> httpx.Response:
        nonlocal pending_calls
        pending_calls += 1
        if pending_calls == 1:
            return httpx.Response(200, json=[{"_id": "p-1", "title": "Bike"}])
        return httpx.Response(503, json={"message": "Moderation queue unavailable"})

    server.route("GET", "/products/products/pending", pending)
    server.route("PUT", "/products/products/p-1/approve", json={})
    shown = record_notifications(deps["notifications"])

    store = PendingProductsStore(**deps)
    actions = ModerationActions.build(
        **deps,
        pending=store,
        blocked=BlockedUsersStore(**deps),
        users=AdminUsersStore(**deps),
    )
    await sign_in(deps["session"], moderator)
    await store.fetch()

    result = await actions.approve.run("p-1")

    assert result.ok
    assert pending_calls == 2
    assert store.error == "Moderation queue unavailable"
    assert shown == [("success", "Listing approved")]


@pytest.mark.asyncio
async def test_refresh_reloads_balance_after_deal(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("POST", "/deals/d-1/confirm-receipt", json={"message": "Receipt confirmed"})
    server.route("GET", "/api/payment/stripe/balance", json={"balance": 750})
    balance = BalanceStore(**deps)
    action = AsyncAction(CONFIRM_RECEIPT, refresh=[balance], **deps)
    await sign_in(deps["session"])

    result = await action.run("d-1")

    assert result.ok
    assert balance.data is not None and balance.data.balance == 750
