"""Warm the chat and message caches right after sign-in."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from .chat_service import ChatsStore, MessagesStore
from .session_store import Session, SessionStore

logger = logging.getLogger(__name__)


@dataclass
class PreloadReport:
    chat_ids: list[str] = field(default_factory=list)
    loaded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    # Set when the chat list itself could not be loaded
    aborted: bool = False
    error: str | None = None


class ChatPreloadOrchestrator:
    """Loads the chat list, then every chat's messages concurrently.

    A failing chat does not stop the others. Once attached, a preload starts each time the
    session becomes authenticated for a new user, and only then.
    """

    def __init__(self, *, session: SessionStore, chats: ChatsStore, messages: MessagesStore) -> None:
        self._session = session
        self._chats = chats
        self._messages = messages
        self._trigger_key: tuple[bool, str | None] | None = None
        self._task: asyncio.Task[PreloadReport] | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self.last_report: PreloadReport | None = None

    @property
    def pending(self) -> asyncio.Task[PreloadReport] | None:
        if self._task is None or self._task.done():
            return None
        return self._task

    async def preload(self) -> PreloadReport:
        listing = await self._chats.fetch(notify=False)
        if not listing.ok:
            error = listing.message or "chat list request was superseded"
            logger.warning("Chat preload aborted: %s", error)
            report = PreloadReport(aborted=True, error=error)
            self.last_report = report
            return report

        chat_ids = [chat.id for chat in self._chats.data]
        outcomes = await asyncio.gather(
            *(self._messages.fetch(chat_id, notify=False) for chat_id in chat_ids),
            return_exceptions=True,
        )

        report = PreloadReport(chat_ids=chat_ids)
        for chat_id, outcome in zip(chat_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Preloading messages for chat %s crashed", chat_id, exc_info=outcome)
                report.failed[chat_id] = str(outcome) or type(outcome).__name__
            elif not outcome.ok:
                error = outcome.message or "response discarded"
                logger.warning("Preloading messages for chat %s failed: %s", chat_id, error)
                report.failed[chat_id] = error
            else:
                report.loaded.append(chat_id)

        logger.info("Preloaded %d/%d chats", len(report.loaded), len(chat_ids))
        self.last_report = report
        return report

    def attach(self) -> None:
        """Start following the session; must be called from inside the event loop."""

        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._session.subscribe(self._on_session)
        self._on_session(self._session.session)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._trigger_key = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _on_session(self, session: Session) -> None:
        key = (session.is_authenticated, session.user_id)
        if key == self._trigger_key:
            return
        self._trigger_key = key
        if not session.is_authenticated:
            return
        logger.debug("Session authenticated for %s; preloading chats", session.user_id)
        self._task = asyncio.create_task(self.preload())


__all__ = ["ChatPreloadOrchestrator", "PreloadReport"]
