"""Single-slot toast channel shared by every store and action."""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Callable

logger = logging.getLogger(__name__)


class NotificationKind(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Notification:
    id: int
    message: str
    kind: NotificationKind = NotificationKind.INFO
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationListener = Callable[[Notification | None], None]


class NotificationChannel:
    """Shows at most one notification; a newer one replaces the visible one immediately.

    Each notification dismisses itself after ``duration`` seconds. Expiry callbacks are
    keyed by notification id, so a timer that outlives its notification does nothing.
    """

    def __init__(self, *, duration: float = 3.0) -> None:
        self.duration = duration
        self._ids = itertools.count(1)
        self._current: Notification | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._listeners: list[NotificationListener] = []

    @property
    def current(self) -> Notification | None:
        return self._current

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def show(self, message: str, kind: NotificationKind | str = NotificationKind.INFO) -> Notification:
        """Display ``message`` now, preempting whatever is visible."""

        loop = asyncio.get_running_loop()
        notification = Notification(id=next(self._ids), message=message, kind=NotificationKind(kind))
        self._cancel_timer()
        self._current = notification
        self._timer = loop.call_later(self.duration, self._expire, notification.id)
        logger.debug("Notification %s (%s): %s", notification.id, notification.kind, message)
        self._emit()
        return notification

    def success(self, message: str) -> Notification:
        return self.show(message, NotificationKind.SUCCESS)

    def error(self, message: str) -> Notification:
        return self.show(message, NotificationKind.ERROR)

    def info(self, message: str) -> Notification:
        return self.show(message, NotificationKind.INFO)

    def dismiss(self, notification_id: int | None = None) -> None:
        """Hide the visible notification (only if it is ``notification_id`` when given)."""

        current = self._current
        if current is None:
            return
        if notification_id is not None and current.id != notification_id:
            return
        self._cancel_timer()
        self._current = None
        self._emit()

    def close(self) -> None:
        self._cancel_timer()
        self._current = None

    def _expire(self, notification_id: int) -> None:
        current = self._current
        if current is None or current.id != notification_id:
            return
        self._timer = None
        self._current = None
        self._emit()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception:
                logger.exception("Notification listener failed")


__all__ = ["Notification", "NotificationChannel", "NotificationKind", "NotificationListener"]
