import asyncio
import json
import logging
from typing import Iterable, Mapping

import pytest

from conftest import ALICE, BOB, TOKEN, sign_in
from market_client.constants import AUTH_SKIPPED_KEY, AUTH_TOKEN_KEY, AUTH_USER_KEY
from market_client.errors import PersistenceFailure, Unauthenticated, ValidationFailed
from market_client.services import MemoryStorage, Session, SessionStatus, SessionStore


class RecordingStorage(MemoryStorage):
    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        super().__init__(initial)
        self.writes: list[dict[str, str | None]] = []

    async def write(self, values: Mapping[str, str | None]) -> None:
        self.writes.append(dict(values))
        await super().write(values)


class BrokenStorage(MemoryStorage):
    async def read(self, keys: Iterable[str]) -> dict[str, str | None]:
        raise PersistenceFailure("disk unavailable")

    async def write(self, values: Mapping[str, str | None]) -> None:
        raise PersistenceFailure("disk unavailable")


async def _apply(store: SessionStore, step: str) -> None:
    if step == "set":
        await sign_in(store)
    elif step == "skip":
        await store.skip_auth()
    else:
        await store.clear_auth_data()


@pytest.mark.asyncio
async def test_set_auth_data_writes_all_keys_in_one_call() -> None:
    storage = RecordingStorage({AUTH_SKIPPED_KEY: "true"})
    store = SessionStore(storage)

    assert await store.set_auth_data(TOKEN, ALICE) is True

    assert len(storage.writes) == 1
    assert set(storage.writes[0]) == {AUTH_TOKEN_KEY, AUTH_USER_KEY, AUTH_SKIPPED_KEY}
    assert storage.items[AUTH_TOKEN_KEY] == TOKEN
    assert AUTH_SKIPPED_KEY not in storage.items
    assert store.is_authenticated
    assert store.require_token() == TOKEN
    assert store.require_user().id == ALICE.id


@pytest.mark.asyncio
async def test_set_auth_data_rejects_empty_token(session: SessionStore) -> None:
    with pytest.raises(ValidationFailed):
        await session.set_auth_data("  ", ALICE)
    assert not session.is_authenticated


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("first", "second", "expected"),
    [
        ("skip", "set", SessionStatus.AUTHENTICATED),
        ("set", "skip", SessionStatus.SKIPPED),
        ("set", "clear", SessionStatus.ANONYMOUS),
        ("skip", "clear", SessionStatus.ANONYMOUS),
    ],
)
async def test_last_transition_is_what_a_restart_restores(first: str, second: str, expected: SessionStatus) -> None:
    storage = MemoryStorage()
    writer = SessionStore(storage)
    await _apply(writer, first)
    await _apply(writer, second)

    restored = await SessionStore(storage).load_auth_data()

    assert restored.status == expected
    assert restored == writer.session
    if expected == SessionStatus.AUTHENTICATED:
        assert restored.token == TOKEN and restored.user == ALICE
    else:
        assert restored.token is None and restored.user is None


@pytest.mark.asyncio
async def test_load_restores_token_and_user() -> None:
    storage = MemoryStorage(
        {AUTH_TOKEN_KEY: TOKEN, AUTH_USER_KEY: ALICE.model_dump_json(by_alias=True)}
    )
    store = SessionStore(storage)

    restored = await store.load_auth_data()

    assert restored.status == SessionStatus.AUTHENTICATED
    assert restored.user == ALICE
    assert store.token == TOKEN


@pytest.mark.asyncio
async def test_guest_marker_wins_over_leftover_token() -> None:
    storage = MemoryStorage(
        {
            AUTH_TOKEN_KEY: TOKEN,
            AUTH_USER_KEY: ALICE.model_dump_json(by_alias=True),
            AUTH_SKIPPED_KEY: "true",
        }
    )
    store = SessionStore(storage)

    restored = await store.load_auth_data()

    assert restored.is_auth_skipped
    assert store.token is None
    with pytest.raises(Unauthenticated):
        store.require_token()


@pytest.mark.asyncio
async def test_token_without_user_restores_anonymous() -> None:
    store = SessionStore(MemoryStorage({AUTH_TOKEN_KEY: TOKEN}))

    restored = await store.load_auth_data()

    assert restored.status == SessionStatus.ANONYMOUS


@pytest.mark.asyncio
async def test_corrupt_user_record_is_ignored(caplog: pytest.LogCaptureFixture) -> None:
    store = SessionStore(MemoryStorage({AUTH_TOKEN_KEY: TOKEN, AUTH_USER_KEY: "{not json"}))
    caplog.set_level(logging.WARNING)

    restored = await store.load_auth_data()

    assert restored.status == SessionStatus.ANONYMOUS
    assert "Persisted user record is corrupt" in caplog.text


@pytest.mark.asyncio
async def test_user_record_missing_id_is_ignored() -> None:
    raw = json.dumps({"name": "No id"})
    store = SessionStore(MemoryStorage({AUTH_TOKEN_KEY: TOKEN, AUTH_USER_KEY: raw}))

    assert (await store.load_auth_data()).status == SessionStatus.ANONYMOUS


@pytest.mark.asyncio
async def test_read_failure_degrades_to_anonymous(caplog: pytest.LogCaptureFixture) -> None:
    store = SessionStore(BrokenStorage())
    caplog.set_level(logging.ERROR)

    restored = await store.load_auth_data()

    assert restored.status == SessionStatus.ANONYMOUS
    assert "Failed to read persisted session" in caplog.text


@pytest.mark.asyncio
async def test_write_failure_keeps_client_anonymous(caplog: pytest.LogCaptureFixture) -> None:
    store = SessionStore(BrokenStorage())
    caplog.set_level(logging.ERROR)

    assert await store.set_auth_data(TOKEN, ALICE) is False

    assert not store.is_authenticated
    assert "Failed to persist session" in caplog.text


@pytest.mark.asyncio
async def test_no_token_is_handed_out_while_restoring() -> None:
    class SlowStorage(MemoryStorage):
        def __init__(self) -> None:
            super().__init__({AUTH_TOKEN_KEY: TOKEN, AUTH_USER_KEY: ALICE.model_dump_json(by_alias=True)})
            self.release = asyncio.Event()

        async def read(self, keys: Iterable[str]) -> dict[str, str | None]:
            await self.release.wait()
            return await super().read(keys)

    storage = SlowStorage()
    store = SessionStore(storage)
    restore = asyncio.create_task(store.load_auth_data())
    await asyncio.sleep(0)

    assert store.is_restoring
    with pytest.raises(Unauthenticated):
        store.require_token()

    storage.release.set()
    await restore
    assert not store.is_restoring
    assert store.require_token() == TOKEN


@pytest.mark.asyncio
async def test_clear_is_idempotent(storage: MemoryStorage, session: SessionStore) -> None:
    await sign_in(session)
    await session.clear_auth_data()
    await session.clear_auth_data()

    assert storage.items == {}
    assert session.session == Session()


@pytest.mark.asyncio
async def test_skip_auth_drops_credentials(storage: MemoryStorage, session: SessionStore) -> None:
    await sign_in(session)
    await session.skip_auth()

    assert session.is_auth_skipped
    assert session.user is None
    assert storage.items == {AUTH_SKIPPED_KEY: "true"}


@pytest.mark.asyncio
async def test_listeners_fire_once_per_change(session: SessionStore) -> None:
    seen: list[Session] = []
    session.subscribe(seen.append)

    await sign_in(session)
    await sign_in(session)
    await sign_in(session, BOB, token="token-bob")
    await session.clear_auth_data()

    assert [entry.user_id for entry in seen] == [ALICE.id, BOB.id, None]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_others(session: SessionStore, caplog: pytest.LogCaptureFixture) -> None:
    seen: list[Session] = []

    def boom(_: Session) -> None:
        raise RuntimeError("listener crashed")

    session.subscribe(boom)
    session.subscribe(seen.append)
    caplog.set_level(logging.ERROR)

    await sign_in(session)

    assert len(seen) == 1
    assert "Session listener failed" in caplog.text
