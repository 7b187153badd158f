"""Chat list and per-chat message stores."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote
from uuid import uuid4

from pydantic import ValidationError

from ..clients import ApiClient, parse_payload
from ..constants import PLACEHOLDER_ID_PREFIX
from ..errors import ClientError, ServerRejected, Unauthenticated, ValidationFailed
from ..results import Result
from ..schemas import Chat, ChatCreate, Message, MessageSendRequest, MessageStatus
from .notification_channel import NotificationChannel
from .resource_store import CollectionStore, KeyedStore, MutationAction
from .session_store import SessionStore

logger = logging.getLogger(__name__)


def _is_duplicate_chat(exc: ServerRejected) -> bool:
    return exc.status_code == 409 or "exist" in exc.message.lower()


class ChatsStore(CollectionStore[Chat]):
    name = "chats"

    async def _load(self, token: str | None, **params: Any) -> list[Chat]:
        data = await self._api.get("/chats", token=token, error_message="Failed to load chats")
        return parse_payload(list[Chat], data or [], context="chat list")

    def find_for(self, participant_id: str, product_id: str) -> Chat | None:
        """Return the cached chat with ``participant_id`` about ``product_id``."""

        for chat in self.data:
            if chat.product_id == product_id and chat.involves(participant_id):
                return chat
        return None

    async def fetch_chat(self, chat_id: str) -> Result[Chat]:
        try:
            token = self._session.require_token()
        except Unauthenticated as exc:
            return self._refuse(exc)

        generation = self._generation
        try:
            data = await self._api.get(
                f"/chats/{quote(chat_id, safe='')}",
                token=token,
                error_message="Failed to load chat",
            )
            chat = parse_payload(Chat, data, context="chat")
        except ClientError as exc:
            return self._refuse(exc)

        if generation != self._generation:
            return Result.discarded()
        self._upsert(chat)
        return Result.success(chat)

    async def get_or_create(self, participant_id: str, product_id: str) -> Result[Chat]:
        """Open the chat with ``participant_id`` about ``product_id``, creating it if needed."""

        try:
            request = ChatCreate(participant2_id=participant_id, product_id=product_id)
        except ValidationError:
            return self._refuse(
                ValidationFailed("Participant and product are required", fields=["participant_id", "product_id"])
            )
        try:
            token = self._session.require_token()
        except Unauthenticated as exc:
            return self._refuse(exc)
        if participant_id == self._session.session.user_id:
            return self._refuse(ValidationFailed("You cannot start a chat with yourself"))

        existing = self.find_for(participant_id, product_id)
        if existing is not None:
            return Result.success(existing)

        generation = self._generation
        try:
            data = await self._api.post(
                "/chats",
                token=token,
                json=request.model_dump(by_alias=True),
                error_message="Failed to start chat",
            )
            chat = parse_payload(Chat, data, context="chat")
        except ServerRejected as exc:
            if not _is_duplicate_chat(exc):
                return self._refuse(exc)
            return await self._find_existing(participant_id, product_id, exc)
        except ClientError as exc:
            return self._refuse(exc)

        if generation != self._generation:
            return Result.discarded()
        self._upsert(chat)
        return Result.success(chat)

    async def _find_existing(self, participant_id: str, product_id: str, rejection: ServerRejected) -> Result[Chat]:
        logger.info("Chat with %s about %s already exists; looking it up", participant_id, product_id)
        refreshed = await self.fetch(notify=False)
        if refreshed.stale:
            return refreshed
        existing = self.find_for(participant_id, product_id)
        if existing is None:
            return self._refuse(refreshed.error or rejection)
        return Result.success(existing)

    def _upsert(self, chat: Chat) -> None:
        index = self._index_of(chat.id)
        if index is None:
            self.data = [*self.data, chat]
        else:
            self.data = self.data[:index] + [chat] + self.data[index + 1 :]
        self._emit()


class ChatMessagesStore(CollectionStore[Message]):
    """Messages of one chat, oldest first."""

    def __init__(self, chat_id: str, **kwargs: Any) -> None:
        self.chat_id = chat_id
        self.name = f"messages:{chat_id}"
        super().__init__(**kwargs)

    async def _load(self, token: str | None, **params: Any) -> list[Message]:
        data = await self._api.get(
            f"/messages/{quote(self.chat_id, safe='')}",
            token=token,
            error_message="Failed to load messages",
        )
        return parse_payload(list[Message], data or [], context="messages")

    async def send(self, text: str) -> Result[Message]:
        """Append ``text`` as a pending message right away, then post it."""

        try:
            request = MessageSendRequest(text=(text or "").strip())
        except ValidationError:
            return self._refuse(ValidationFailed("Message must be between 1 and 2000 characters", fields=["text"]))
        try:
            user = self._session.require_user()
        except Unauthenticated as exc:
            return self._refuse(exc)

        placeholder = Message(
            id=f"{PLACEHOLDER_ID_PREFIX}{uuid4().hex}",
            chat_id=self.chat_id,
            sender_id=user.id,
            text=request.text,
            status=MessageStatus.PENDING,
            created_at=datetime.now(timezone.utc),
        )

        async def _commit(token: str) -> Message:
            data = await self._api.post(
                f"/messages/{quote(self.chat_id, safe='')}",
                token=token,
                json=request.model_dump(),
                error_message="Failed to send message",
            )
            return parse_payload(Message, data, context="message")

        return await self.mutate(MutationAction.ADD, placeholder, _commit)


class MessagesStore(KeyedStore[ChatMessagesStore]):
    """One :class:`ChatMessagesStore` per chat id, created on first use."""

    def __init__(self, *, session: SessionStore, api: ApiClient, notifications: NotificationChannel) -> None:
        super().__init__(
            lambda chat_id: ChatMessagesStore(chat_id, session=session, api=api, notifications=notifications)
        )

    async def fetch(self, chat_id: str, *, notify: bool = True) -> Result[list[Message]]:
        return await self.get(chat_id).fetch(notify=notify)

    async def send(self, chat_id: str, text: str) -> Result[Message]:
        return await self.get(chat_id).send(text)

    def messages(self, chat_id: str) -> list[Message]:
        store = self.peek(chat_id)
        return list(store.data) if store is not None else []


__all__ = ["ChatMessagesStore", "ChatsStore", "MessagesStore"]
