"""Schemas used by the chat and messaging endpoints."""
from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from .auth import UserIdentity
from .common import ApiModel, id_field, ref_id


class Chat(ApiModel):
    id: str = id_field()
    participant1_id: UserIdentity | str | None = Field(default=None, alias="participant1Id")
    participant2_id: UserIdentity | str | None = Field(default=None, alias="participant2Id")
    product_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def participant_ids(self) -> tuple[str | None, str | None]:
        return ref_id(self.participant1_id), ref_id(self.participant2_id)

    def involves(self, user_id: str) -> bool:
        return user_id in self.participant_ids

    def counterpart(self, user_id: str) -> UserIdentity | str | None:
        """Return the participant that is not ``user_id``."""

        first, _ = self.participant_ids
        return self.participant2_id if first == user_id else self.participant1_id


class ChatCreate(ApiModel):
    participant2_id: str = Field(..., min_length=1, alias="participant2Id")
    product_id: str = Field(..., min_length=1)


class MessageStatus(StrEnum):
    # Local-only state for optimistic entries awaiting the server
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


class Message(ApiModel):
    id: str = id_field()
    chat_id: str
    sender_id: UserIdentity | str | None = None
    text: str
    status: MessageStatus = MessageStatus.SENT
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def sender_ref(self) -> str | None:
        return ref_id(self.sender_id)


class MessageSendRequest(ApiModel):
    text: str = Field(..., min_length=1, max_length=2000)


__all__ = ["Chat", "ChatCreate", "Message", "MessageSendRequest", "MessageStatus"]
