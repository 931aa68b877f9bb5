"""Payloads of server-initiated events.

Keys are camelCase on the wire; clients rely on these shapes verbatim.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from market_chat.domain.entities.account import Account
from market_chat.domain.entities.message import Message
from market_chat.domain.value_objects.enums import PresenceStatus


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SenderView(WireModel):
    id: int
    first_name: str | None = None
    last_name: str | None = None
    profile_image: str | None = None

    @classmethod
    def of(cls, user_id: int, account: Account | None) -> SenderView:
        if account is None:
            return cls(id=user_id)
        return cls(
            id=account.id,
            first_name=account.first_name,
            last_name=account.last_name,
            profile_image=account.profile_image,
        )


class MessageView(WireModel):
    id: UUID
    conversation: UUID
    sender: SenderView
    content: str | None
    file_url: str | None = None
    file_type: str | None = None
    read_by: list[int]
    client_message_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(cls, message: Message, sender: Account | None) -> MessageView:
        attachment = message.attachment
        return cls(
            id=message.id,
            conversation=message.conversation_id,
            sender=SenderView.of(message.sender_id, sender),
            content=message.content,
            file_url=attachment.url if attachment else None,
            file_type=attachment.kind if attachment else None,
            read_by=sorted(message.read_by),
            client_message_id=message.client_msg_id,
            created_at=message.created_at,
            updated_at=message.updated_at,
        )


class NewMessageEvent(MessageView):
    timestamp: datetime


class MessageNotificationEvent(WireModel):
    conversation_id: UUID
    message: MessageView


class NewConversationEvent(WireModel):
    conversation: UUID
    sender: int
    message: str | None


class MessageReadEvent(WireModel):
    user_id: int
    message_ids: list[UUID]
    timestamp: datetime


class UserJoinedEvent(WireModel):
    user_id: int
    first_name: str
    last_name: str
    timestamp: datetime


class UserLeftEvent(WireModel):
    user_id: int
    timestamp: datetime


class UserTypingEvent(WireModel):
    user_id: int
    typing: bool
    first_name: str
    timestamp: datetime


class UserStatusEvent(WireModel):
    user_id: int
    status: PresenceStatus
    timestamp: datetime
