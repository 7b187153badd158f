"""Authentication session owned by the client: token, user identity and guest marker.

Only this module writes the token. Every other component reads it through
:meth:`SessionStore.require_token` right before issuing a request.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

from pydantic import ValidationError

from ..constants import AUTH_SKIPPED_KEY, AUTH_TOKEN_KEY, AUTH_USER_KEY, SESSION_KEYS
from ..errors import PersistenceFailure, Unauthenticated, ValidationFailed
from ..schemas import UserIdentity
from .persistence import KeyValueStorage

logger = logging.getLogger(__name__)

SessionListener = Callable[["Session"], None]


class SessionStatus(StrEnum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Session:
    status: SessionStatus = SessionStatus.ANONYMOUS
    token: str | None = None
    user: UserIdentity | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.AUTHENTICATED

    @property
    def is_auth_skipped(self) -> bool:
        return self.status == SessionStatus.SKIPPED

    @property
    def user_id(self) -> str | None:
        return self.user.id if self.user is not None else None


ANONYMOUS = Session()
GUEST = Session(status=SessionStatus.SKIPPED)


class SessionStore:
    """Holds the single authoritative :class:`Session` and keeps its persisted copy in step."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._session = ANONYMOUS
        self._lock = asyncio.Lock()
        self._restoring = False
        self._listeners: list[SessionListener] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token(self) -> str | None:
        return self._session.token

    @property
    def user(self) -> UserIdentity | None:
        return self._session.user

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def is_auth_skipped(self) -> bool:
        return self._session.is_auth_skipped

    @property
    def is_restoring(self) -> bool:
        return self._restoring

    def require_token(self) -> str:
        """Return the bearer token or raise :class:`Unauthenticated`.

        A restore in progress counts as "no session yet".
        """

        session = self._session
        if self._restoring or not session.is_authenticated or not session.token:
            raise Unauthenticated()
        return session.token

    def require_user(self) -> UserIdentity:
        self.require_token()
        assert self._session.user is not None
        return self._session.user

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` for session changes; returns an unsubscribe callback."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def set_auth_data(self, token: str, user: UserIdentity) -> bool:
        """Persist and activate an authenticated session.

        Returns ``False`` when persistence failed; the session then degrades to anonymous.
        """

        token = (token or "").strip()
        if not token:
            raise ValidationFailed("Token must not be empty", fields=["token"])

        async with self._lock:
            values = {
                AUTH_TOKEN_KEY: token,
                AUTH_USER_KEY: user.model_dump_json(by_alias=True),
                AUTH_SKIPPED_KEY: None,
            }
            try:
                await self._storage.write(values)
            except PersistenceFailure:
                logger.exception("Failed to persist session; falling back to anonymous")
                self._replace(ANONYMOUS)
                return False
            self._replace(Session(status=SessionStatus.AUTHENTICATED, token=token, user=user))
            return True

    async def clear_auth_data(self) -> None:
        """Forget the session in memory and on disk. Safe to call repeatedly."""

        async with self._lock:
            try:
                await self._storage.write({key: None for key in SESSION_KEYS})
            except PersistenceFailure:
                logger.exception("Failed to clear persisted session")
            self._replace(ANONYMOUS)

    async def skip_auth(self) -> None:
        """Enter guest mode, dropping any previous token and user."""

        async with self._lock:
            try:
                await self._storage.write({AUTH_TOKEN_KEY: None, AUTH_USER_KEY: None, AUTH_SKIPPED_KEY: "true"})
            except PersistenceFailure:
                logger.exception("Failed to persist guest marker")
                self._replace(ANONYMOUS)
                return
            self._replace(GUEST)

    async def load_auth_data(self) -> Session:
        """Restore the persisted session; the guest marker wins over a leftover token."""

        async with self._lock:
            self._restoring = True
            try:
                restored = await self._read_persisted()
            finally:
                self._restoring = False
            self._replace(restored)
            return restored

    async def _read_persisted(self) -> Session:
        try:
            stored = await self._storage.read(SESSION_KEYS)
        except PersistenceFailure:
            logger.exception("Failed to read persisted session")
            return ANONYMOUS

        if stored.get(AUTH_SKIPPED_KEY) == "true":
            return GUEST

        token = stored.get(AUTH_TOKEN_KEY)
        raw_user = stored.get(AUTH_USER_KEY)
        if not token or not raw_user:
            return ANONYMOUS
        try:
            user = UserIdentity.model_validate(json.loads(raw_user))
        except (ValueError, ValidationError):
            logger.warning("Persisted user record is corrupt; ignoring stored session")
            return ANONYMOUS
        return Session(status=SessionStatus.AUTHENTICATED, token=token, user=user)

    def _replace(self, session: Session) -> None:
        previous = self._session
        self._session = session
        if previous == session:
            return
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Session listener failed")


__all__ = ["Session", "SessionStatus", "SessionStore", "SessionListener"]
