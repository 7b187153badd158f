import logging

import httpx
import pytest

from conftest import BASE_URL, FakeServer
from market_client.clients import ApiClient, parse_payload
from market_client.errors import NetworkFailure, ServerRejected
from market_client.schemas import Balance


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ({"message": "Invalid credentials", "error": "ignored"}, "Invalid credentials"),
        ({"msg": "Email already registered"}, "Email already registered"),
        ({"error": "Forbidden"}, "Forbidden"),
        ({"detail": "not a known key"}, "Failed to sign in"),
    ],
)
async def test_error_message_is_read_from_body(server: FakeServer, api: ApiClient, body: dict, expected: str) -> None:
    server.route("POST", "/users/login", json=body, status=400)

    with pytest.raises(ServerRejected) as excinfo:
        await api.post("/users/login", json={}, error_message="Failed to sign in")

    assert excinfo.value.message == expected
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_transport_error_becomes_network_failure(caplog: pytest.LogCaptureFixture) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = ApiClient(BASE_URL, transport=httpx.MockTransport(refuse))
    caplog.set_level(logging.WARNING)

    with pytest.raises(NetworkFailure):
        await api.get("/chats", token="t")
    await api.aclose()

    assert "GET /chats failed" in caplog.text


@pytest.mark.asyncio
async def test_bearer_header_and_query_filtering(server: FakeServer, api: ApiClient) -> None:
    server.route("GET", "/deals/user", json={"deals": []})

    await api.get("/deals/user", token="secret", params={"page": 1, "role": None, "status": "pending"})
    await api.get("/deals/user")

    first, second = server.calls
    assert first.headers["authorization"] == "Bearer secret"
    assert first.params == {"page": "1", "status": "pending"}
    assert "authorization" not in second.headers


@pytest.mark.asyncio
async def test_empty_body_returns_none(server: FakeServer, api: ApiClient) -> None:
    server.route("DELETE", "/favorites/fav-1", lambda request: httpx.Response(204))

    assert await api.delete("/favorites/fav-1", token="t") is None


@pytest.mark.asyncio
async def test_non_json_success_is_rejected(server: FakeServer, api: ApiClient) -> None:
    server.route("GET", "/chats", lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(ServerRejected) as excinfo:
        await api.get("/chats", error_message="Failed to load chats")

    assert excinfo.value.message == "Failed to load chats"


def test_parse_payload_wraps_validation_errors() -> None:
    assert parse_payload(Balance, {"balance": "12.5"}).balance == 12.5

    with pytest.raises(ServerRejected) as excinfo:
        parse_payload(Balance, ["not", "a", "balance"], context="balance")

    assert excinfo.value.message == "Unexpected balance from server"
