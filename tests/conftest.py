"""Shared fixtures: an in-memory fake of the REST service and wired client parts."""
from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Iterator

import httpx
import pytest
import pytest_asyncio

from market_client.clients import ApiClient
from market_client.schemas import UserIdentity
from market_client.services import MemoryStorage, NotificationChannel, SessionStore

BASE_URL = "https://market.test"
TOKEN = "token-alice"

ALICE = UserIdentity(id="u-alice", name="Alice", email="alice@example.com")
BOB = UserIdentity(id="u-bob", name="Bob", email="bob@example.com")

Handler = Callable[[httpx.Request], Any]


@dataclass
class Call:
    method: str
    path: str
    params: dict[str, str]
    headers: httpx.Headers
    body: Any


class FakeServer:
    """Routes requests by (method, path); handlers may be async and may sleep."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.calls: list[Call] = []

    def route(
        self,
        method: str,
        path: str,
        handler: Handler | None = None,
        *,
        json: Any = None,
        status: int = 200,
        delay: float = 0.0,
    ) -> None:
        async def _reply(request: httpx.Request) -> httpx.Response:
            if delay:
                await asyncio.sleep(delay)
            return httpx.Response(status, json=json)

        self.routes[(method.upper(), path)] = handler or _reply

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [call for call in self.calls if call.method == method.upper() and call.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append(Call(request.method, request.url.path, dict(request.url.params), request.headers, body))
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)


@pytest.fixture()
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def session(storage: MemoryStorage) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture()
def channel() -> Iterator[NotificationChannel]:
    channel = NotificationChannel(duration=5.0)
    yield channel
    channel.close()


@pytest_asyncio.fixture
async def api(server: FakeServer) -> AsyncIterator[ApiClient]:
    client = ApiClient(BASE_URL, timeout=5.0, transport=server.transport)
    yield client
    await client.aclose()


@pytest.fixture()
def deps(session: SessionStore, api: ApiClient, channel: NotificationChannel) -> dict[str, Any]:
    return {"session": session, "api": api, "notifications": channel}


def record_notifications(channel: NotificationChannel) -> list[tuple[str, str]]:
    """Collect every notification shown on ``channel`` as (kind, message)."""

    shown: list[tuple[str, str]] = []
    channel.subscribe(lambda note: shown.append((str(note.kind), note.message)) if note is not None else None)
    return shown


async def sign_in(session: SessionStore, user: UserIdentity = ALICE, token: str = TOKEN) -> None:
    assert await session.set_auth_data(token, user)


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Undo ``configure_logging`` so one test's level and handler do not leak into the next."""

    yield
    logger = logging.getLogger("market_client")
    for handler in list(logger.handlers):
        if getattr(handler, "_market_client", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logging.getLogger("httpx").setLevel(logging.NOTSET)
