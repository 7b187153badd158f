"""Session-gated caches of server-owned resources.

A store keeps one snapshot (``data``, ``loading``, ``error``, ``pagination``) and a
freshness generation. Fetches for the same request share one in-flight task; a
different request supersedes it and the older response is dropped on arrival.
``clear()`` bumps the generation too, so nothing fetched for a previous session is
ever applied after logout.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable, Generic, Hashable, Mapping, Protocol, TypeVar

from ..clients import ApiClient
from ..errors import ClientError, Unauthenticated, ValidationFailed
from ..results import Result
from ..schemas import Pagination
from .notification_channel import NotificationChannel
from .optimistic import run_optimistic
from .session_store import SessionStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HasId(Protocol):
    @property
    def id(self) -> str: ...


E = TypeVar("E", bound=HasId)


@dataclass(frozen=True)
class ResourceSnapshot(Generic[T]):
    data: T
    loading: bool
    error: str | None
    pagination: Pagination | None = None


class MutationAction(StrEnum):
    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"


@dataclass(frozen=True)
class MutationRecord(Generic[E]):
    """What one optimistic mutation changed, enough to undo only that change."""

    action: MutationAction
    entry_id: str
    entry: E | None
    previous: E | None
    index: int
    generation: int


class ResourceStore(Generic[T]):
    """Cached snapshot of one remote collection or singleton."""

    name = "resource"
    requires_auth = True

    def __init__(self, *, session: SessionStore, api: ApiClient, notifications: NotificationChannel) -> None:
        self._session = session
        self._api = api
        self._notifications = notifications
        self.data: T = self._empty()
        self.loading = False
        self.error: str | None = None
        self.pagination: Pagination | None = None
        self._generation = 0
        self._inflight: asyncio.Task[Result[T]] | None = None
        self._inflight_key: Hashable = None
        self._inflight_params: dict[str, Any] = {}
        self._inflight_generation = -1
        self._last_params: dict[str, Any] = {}
        self._listeners: list[Callable[[ResourceSnapshot[T]], None]] = []

    # ---------------------------------------------------------------- hooks -
    def _empty(self) -> T:
        raise NotImplementedError

    async def _load(self, token: str | None, **params: Any) -> Any:
        raise NotImplementedError

    def _apply(self, payload: Any, **params: Any) -> None:
        self.data = payload

    def _refresh_marker(self) -> Any:
        """Taken when a fetch starts and handed back to :meth:`_after_refresh`."""

        return None

    def _after_refresh(self, marker: Any) -> None:
        """Runs right after a fresh server payload has been applied."""

    def _request_key(self, params: Mapping[str, Any]) -> Hashable:
        return tuple(sorted(params.items()))

    def _supersedes(self, params: Mapping[str, Any]) -> bool:
        """Whether a request for ``params`` replaces a different one already in flight."""

        return True

    # --------------------------------------------------------------- public -
    @property
    def snapshot(self) -> ResourceSnapshot[T]:
        return ResourceSnapshot(data=self.data, loading=self.loading, error=self.error, pagination=self.pagination)

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Callable[[ResourceSnapshot[T]], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def fetch(self, *, notify: bool = True, **params: Any) -> Result[T]:
        """Refresh ``data`` from the server.

        Never raises for client errors; failures come back in the :class:`Result` and
        in ``self.error``. With ``notify`` an error toast is raised as well.
        """

        try:
            token = self._token()
        except Unauthenticated as exc:
            return self._unauthenticated(exc)

        key = self._request_key(params)
        while self._fetch_in_flight():
            current = self._inflight
            fresh = self._inflight_generation == self._generation
            if fresh and (key == self._inflight_key or not self._supersedes(params)):
                return await asyncio.shield(current)
            if fresh:
                logger.debug("Superseding in-flight %s request", self.name)
                self._generation += 1
            await asyncio.wait({current})

        # The session may have changed while we waited
        try:
            token = self._token()
        except Unauthenticated as exc:
            return self._unauthenticated(exc)

        generation = self._generation
        self._last_params = dict(params)
        self._inflight_key = key
        self._inflight_params = dict(params)
        self._inflight_generation = generation
        self._inflight = asyncio.create_task(self._run(token, params, generation, notify))
        return await asyncio.shield(self._inflight)

    async def reload(self, *, notify: bool = False) -> Result[T]:
        """Repeat the last fetch with the same parameters."""

        return await self.fetch(notify=notify, **self._last_params)

    def clear(self) -> None:
        """Drop cached data; responses already in flight will be discarded."""

        self._generation += 1
        self.data = self._empty()
        self.loading = False
        self.error = None
        self.pagination = None
        self._last_params = {}
        self._emit()

    # -------------------------------------------------------------- helpers -
    def _token(self) -> str | None:
        if self.requires_auth:
            return self._session.require_token()
        # Public resources go out anonymously unless a session is active
        try:
            return self._session.require_token()
        except Unauthenticated:
            return None

    def _fetch_in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def _refuse(self, exc: ClientError) -> Result[Any]:
        """Report a failure detected outside the fetch path (one error toast)."""

        logger.warning("%s: %s", self.name, exc)
        self._notifications.error(str(exc))
        return Result.failure(exc)

    def _unauthenticated(self, exc: Unauthenticated) -> Result[T]:
        logger.debug("Skipping %s fetch: %s", self.name, exc)
        self.error = str(exc)
        self.loading = False
        self._emit()
        return Result.failure(exc)

    async def _run(self, token: str | None, params: dict[str, Any], generation: int, notify: bool) -> Result[T]:
        self.loading = True
        self.error = None
        self._emit()
        marker = self._refresh_marker()
        try:
            payload = await self._load(token, **params)
        except ClientError as exc:
            if generation != self._generation:
                logger.debug("Ignoring failure of stale %s request: %s", self.name, exc)
                return Result.discarded()
            self.error = str(exc)
            logger.warning("Fetching %s failed: %s", self.name, exc)
            if notify:
                self._notifications.error(str(exc))
            return Result.failure(exc)
        else:
            if generation != self._generation:
                logger.debug("Discarding stale %s response", self.name)
                return Result.discarded()
            self._apply(payload, **params)
            self._after_refresh(marker)
            return Result.success(self.data)
        finally:
            if generation == self._generation:
                self.loading = False
                self._emit()

    def _emit(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Listener of %s failed", self.name)


class CollectionStore(ResourceStore[list[E]]):
    """A list of identified entries supporting optimistic add / remove / update.

    Optimistic changes survive overlapping refreshes: mutations still awaiting the
    server are re-applied on top of every fresh payload, and so are mutations the
    server confirmed after that payload's request went out.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._pending: list[MutationRecord[E]] = []
        self._settled: list[tuple[int, MutationRecord[E], E | None]] = []
        self._settle_count = 0

    def _empty(self) -> list[E]:
        return []

    def clear(self) -> None:
        self._pending = []
        self._settled = []
        super().clear()

    def find(self, entry_id: str) -> E | None:
        index = self._index_of(entry_id)
        return self.data[index] if index is not None else None

    def _index_of(self, entry_id: str) -> int | None:
        for index, entry in enumerate(self.data):
            if entry.id == entry_id:
                return index
        return None

    async def mutate(
        self,
        action: MutationAction,
        payload: E | str,
        commit: Callable[[str], Awaitable[E | None]],
        *,
        success_message: str | None = None,
    ) -> Result[E]:
        """Apply ``action`` locally right away, then confirm it with ``commit(token)``.

        ``payload`` is the new entry for ADD / UPDATE and the entry id for REMOVE.
        On failure only this entry is restored and one error notification is raised.
        """

        try:
            token = self._session.require_token()
        except Unauthenticated as exc:
            return self._refuse(exc)

        generation = self._generation
        try:
            confirmed = await run_optimistic(
                apply=lambda: self._apply_local(action, payload, generation),
                commit=lambda: commit(token),
                reconcile=self._reconcile,
                rollback=self._rollback,
            )
        except ClientError as exc:
            logger.warning("Optimistic %s on %s failed: %s", action, self.name, exc)
            self._notifications.error(str(exc))
            return Result.failure(exc)

        if success_message:
            self._notifications.success(success_message)
        return Result.success(confirmed)

    def _apply_local(self, action: MutationAction, payload: E | str, generation: int) -> MutationRecord[E]:
        if action != MutationAction.REMOVE and isinstance(payload, str):
            raise ValidationFailed(f"A full entry is required to {action} {self.name}")
        if action == MutationAction.ADD:
            self.data = [*self.data, payload]
            record = MutationRecord(action, payload.id, payload, None, len(self.data) - 1, generation)
        else:
            entry_id = payload if isinstance(payload, str) else payload.id
            index = self._index_of(entry_id)
            if index is None:
                raise ValidationFailed(f"Item {entry_id} is not loaded in {self.name}")
            previous = self.data[index]
            entry = None if isinstance(payload, str) else payload
            if action == MutationAction.REMOVE:
                self.data = self.data[:index] + self.data[index + 1 :]
            else:
                self.data = self.data[:index] + [payload] + self.data[index + 1 :]
            record = MutationRecord(action, entry_id, entry, previous, index, generation)
        self._pending.append(record)
        self._emit()
        return record

    def _settle(self, record: MutationRecord[E]) -> None:
        self._pending = [pending for pending in self._pending if pending is not record]

    def _rollback(self, record: MutationRecord[E]) -> None:
        self._settle(record)
        if record.generation != self._generation:
            return
        index = self._index_of(record.entry_id)
        if record.action == MutationAction.ADD:
            if index is not None:
                self.data = self.data[:index] + self.data[index + 1 :]
        elif record.action == MutationAction.REMOVE:
            if index is None and record.previous is not None:
                position = min(record.index, len(self.data))
                self.data = self.data[:position] + [record.previous] + self.data[position:]
        elif index is not None and record.previous is not None:
            self.data = self.data[:index] + [record.previous] + self.data[index + 1 :]
        self._emit()

    def _reconcile(self, record: MutationRecord[E], confirmed: E | None) -> None:
        self._settle(record)
        if record.generation != self._generation:
            return
        self._settle_count += 1
        if self._fetch_in_flight():
            # That response predates this confirmation; replay it on arrival
            self._settled.append((self._settle_count, record, confirmed))
        if confirmed is None or record.action == MutationAction.REMOVE:
            return
        index = self._index_of(record.entry_id)
        if index is None:
            if record.action == MutationAction.ADD and self._index_of(confirmed.id) is None:
                self.data = [*self.data, confirmed]
                self._emit()
            return
        if confirmed.id != record.entry_id and self._index_of(confirmed.id) is not None:
            # A refresh already brought in the confirmed entry
            self.data = self.data[:index] + self.data[index + 1 :]
        else:
            self.data = self.data[:index] + [confirmed] + self.data[index + 1 :]
        self._emit()

    def _refresh_marker(self) -> int:
        return self._settle_count

    def _after_refresh(self, marker: int) -> None:
        for sequence, record, confirmed in self._settled:
            if sequence > marker and record.generation == self._generation:
                self._replay(record.action, record.entry_id, confirmed if confirmed is not None else record.entry)
        self._settled = []
        for record in self._pending:
            if record.generation == self._generation:
                self._replay(record.action, record.entry_id, record.entry)

    def _replay(self, action: MutationAction, entry_id: str, entry: E | None) -> None:
        if entry is not None:
            entry_id = entry.id
        index = self._index_of(entry_id)
        if action == MutationAction.REMOVE:
            if index is not None:
                self.data = self.data[:index] + self.data[index + 1 :]
        elif entry is None:
            return
        elif index is None:
            if action == MutationAction.ADD:
                self.data = [*self.data, entry]
        else:
            self.data = self.data[:index] + [entry] + self.data[index + 1 :]


def _without_page(params: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in params.items() if key != "page"}


class PaginatedStore(CollectionStore[E]):
    """Collection loaded page by page.

    With ``append_pages`` page 1 replaces and later pages extend the list (infinite
    scroll); otherwise every page replaces the list (page-by-page browsing).
    """

    page_size = 10
    append_pages = True

    def __init__(self, *, page_size: int | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if page_size is not None:
            self.page_size = page_size

    async def fetch(self, page: int = 1, *, notify: bool = True, **filters: Any) -> Result[list[E]]:
        return await super().fetch(notify=notify, page=max(int(page), 1), **filters)

    async def _load(self, token: str | None, **params: Any) -> tuple[list[E], Pagination]:
        return await self._load_page(token, **params)

    async def _load_page(self, token: str | None, *, page: int, **filters: Any) -> tuple[list[E], Pagination]:
        raise NotImplementedError

    def _supersedes(self, params: Mapping[str, Any]) -> bool:
        # A reset to the first page or a different filter set wins; another page of
        # the same listing waits for the one in flight
        if params.get("page", 1) == 1:
            return True
        return _without_page(params) != _without_page(self._inflight_params)

    def _apply(self, payload: tuple[list[E], Pagination], **params: Any) -> None:
        items, pagination = payload
        if params.get("page", 1) <= 1 or not self.append_pages:
            self.data = list(items)
        else:
            known = {entry.id for entry in self.data}
            self.data = self.data + [entry for entry in items if entry.id not in known]
        self.pagination = pagination

    @property
    def page(self) -> int:
        return self.pagination.page if self.pagination is not None else 1

    @property
    def has_more(self) -> bool:
        return self.pagination is not None and self.pagination.has_more

    def _filters(self) -> dict[str, Any]:
        return _without_page(self._last_params)

    async def load_more(self, *, notify: bool = True) -> Result[list[E]]:
        if self.loading or not self.has_more:
            return Result.success(self.data)
        return await self.fetch(self.page + 1, notify=notify, **self._filters())

    async def reload(self, *, notify: bool = False) -> Result[list[E]]:
        page = 1 if self.append_pages else self.page
        return await self.fetch(page, notify=notify, **self._filters())


S = TypeVar("S", bound=ResourceStore[Any])


class KeyedStore(Generic[S]):
    """Independent stores per key (for example one message list per chat)."""

    def __init__(self, factory: Callable[[str], S]) -> None:
        self._factory = factory
        self._stores: dict[str, S] = {}

    def get(self, key: str) -> S:
        store = self._stores.get(key)
        if store is None:
            store = self._factory(key)
            self._stores[key] = store
        return store

    def peek(self, key: str) -> S | None:
        return self._stores.get(key)

    def keys(self) -> list[str]:
        return list(self._stores)

    def clear(self) -> None:
        for store in self._stores.values():
            store.clear()
        self._stores.clear()


__all__ = [
    "CollectionStore",
    "KeyedStore",
    "MutationAction",
    "MutationRecord",
    "PaginatedStore",
    "ResourceSnapshot",
    "ResourceStore",
]
