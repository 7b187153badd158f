import json
from typing import Any, Mapping

import pytest

from conftest import ALICE, FakeServer, TOKEN, record_notifications, sign_in
from market_client.constants import AUTH_TOKEN_KEY, AUTH_USER_KEY
from market_client.errors import PersistenceFailure, ServerRejected, Unauthenticated, ValidationFailed
from market_client.schemas import UserRole
from market_client.services import AuthService, MemoryStorage, SessionStore

AUTH_BODY = {"token": TOKEN, "user": {"_id": ALICE.id, "name": "Alice", "email": "alice@example.com", "role": "user"}}
PROFILE = f"/users/{ALICE.id}"


@pytest.mark.asyncio
async def test_login_stores_session(server: FakeServer, deps: dict[str, Any], storage: MemoryStorage) -> None:
    server.route("POST", "/users/login", json=AUTH_BODY)
    auth = AuthService(**deps)

    result = await auth.login("alice@example.com", "secret123")

    assert result.ok and result.data.id == ALICE.id
    assert server.calls[0].body == {"email": "alice@example.com", "password": "secret123"}
    assert deps["session"].token == TOKEN
    assert storage.items[AUTH_TOKEN_KEY] == TOKEN
    assert json.loads(storage.items[AUTH_USER_KEY])["_id"] == ALICE.id


@pytest.mark.asyncio
async def test_invalid_credentials_are_checked_locally(server: FakeServer, deps: dict[str, Any]) -> None:
    shown = record_notifications(deps["notifications"])
    auth = AuthService(**deps)

    bad_email = await auth.login("not-an-email", "secret123")
    short_password = await auth.login("alice@example.com", "123")

    assert isinstance(bad_email.error, ValidationFailed)
    assert bad_email.error.fields == ["email"]
    assert short_password.error.fields == ["password"]
    assert server.calls == []
    assert len(shown) == 2


@pytest.mark.asyncio
async def test_rejected_login_leaves_session_anonymous(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("POST", "/users/login", json={"message": "Invalid email or password"}, status=401)
    shown = record_notifications(deps["notifications"])
    auth = AuthService(**deps)

    result = await auth.login("alice@example.com", "secret123")

    assert isinstance(result.error, ServerRejected)
    assert not deps["session"].is_authenticated
    assert shown == [("error", "Invalid email or password")]


@pytest.mark.asyncio
async def test_register_sends_name(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("POST", "/users/register", json=AUTH_BODY)
    auth = AuthService(**deps)

    result = await auth.register("alice@example.com", "secret123", "Alice")

    assert result.ok
    assert server.calls[0].body["name"] == "Alice"
    assert deps["session"].is_authenticated


@pytest.mark.asyncio
async def test_refresh_user_rewrites_profile(server: FakeServer, deps: dict[str, Any], storage: MemoryStorage) -> None:
    server.route("GET", PROFILE, json={"user": {"_id": ALICE.id, "name": "Alice", "role": "moderator"}})
    auth = AuthService(**deps)
    await sign_in(deps["session"])

    result = await auth.refresh_user()

    assert result.ok
    assert deps["session"].user.role == UserRole.MODERATOR
    assert json.loads(storage.items[AUTH_USER_KEY])["role"] == "moderator"


@pytest.mark.asyncio
async def test_update_profile_saves_then_rereads_user(
    server: FakeServer, deps: dict[str, Any], storage: MemoryStorage
) -> None:
    server.route("PUT", PROFILE, json={"message": "User updated"})
    server.route("GET", PROFILE, json={"_id": ALICE.id, "name": "Alice Smith", "phoneNumber": "+77010000000"})
    shown = record_notifications(deps["notifications"])
    auth = AuthService(**deps)
    await sign_in(deps["session"])

    result = await auth.update_profile("  Alice Smith ", "+77010000000")

    assert result.ok
    assert [(call.method, call.path) for call in server.calls] == [("PUT", PROFILE), ("GET", PROFILE)]
    assert server.calls[0].body == {"name": "Alice Smith", "phone": "+77010000000"}
    assert deps["session"].user.name == "Alice Smith"
    assert deps["session"].token == TOKEN
    assert json.loads(storage.items[AUTH_USER_KEY])["phoneNumber"] == "+77010000000"
    assert shown == [("success", "Profile updated")]


@pytest.mark.asyncio
async def test_update_profile_checks_fields_before_sending(server: FakeServer, deps: dict[str, Any]) -> None:
    shown = record_notifications(deps["notifications"])
    auth = AuthService(**deps)
    await sign_in(deps["session"])

    result = await auth.update_profile("Alice", "   ")

    assert isinstance(result.error, ValidationFailed)
    assert result.error.fields == ["phone"]
    assert server.calls == []
    assert deps["session"].user == ALICE
    assert [kind for kind, _ in shown] == ["error"]


@pytest.mark.asyncio
async def test_rejected_profile_update_keeps_stored_user(server: FakeServer, deps: dict[str, Any]) -> None:
    server.route("PUT", PROFILE, json={"message": "Phone already in use"}, status=409)
    shown = record_notifications(deps["notifications"])
    auth = AuthService(**deps)
    await sign_in(deps["session"])

    result = await auth.update_profile("Alice", "+77010000000")

    assert isinstance(result.error, ServerRejected)
    assert server.calls_to("GET", PROFILE) == []
    assert deps["session"].user == ALICE
    assert shown == [("error", "Phone already in use")]


@pytest.mark.asyncio
async def test_update_profile_requires_session(server: FakeServer, deps: dict[str, Any]) -> None:
    auth = AuthService(**deps)

    result = await auth.update_profile("Alice", "+77010000000")

    assert isinstance(result.error, Unauthenticated)
    assert server.calls == []


@pytest.mark.asyncio
async def test_unsaved_session_is_reported(server: FakeServer, deps: dict[str, Any]) -> None:
    class ReadOnlyStorage(MemoryStorage):
        async def write(self, values: Mapping[str, str | None]) -> None:
            raise PersistenceFailure("read-only")

    server.route("POST", "/users/login", json=AUTH_BODY)
    session = SessionStore(ReadOnlyStorage())
    auth = AuthService(session=session, api=deps["api"], notifications=deps["notifications"])

    result = await auth.login("alice@example.com", "secret123")

    assert isinstance(result.error, PersistenceFailure)
    assert not session.is_authenticated
