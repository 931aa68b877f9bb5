"""WebSocket message envelope and inbound payload models."""
from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str
    data: Any = None


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: Any = None


class InboundPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


_CONVERSATION_KEYS = AliasChoices("conversation", "conversationId", "conversation_id")


class SendMessagePayload(InboundPayload):
    conversation: UUID | None = Field(default=None, validation_alias=_CONVERSATION_KEYS)
    content: str | None = None
    file_url: str | None = None
    file_type: str | None = None
    client_message_id: UUID | None = None


class TypingPayload(InboundPayload):
    conversation: UUID = Field(validation_alias=_CONVERSATION_KEYS)
    typing: bool = True


class MarkReadPayload(InboundPayload):
    conversation: UUID = Field(validation_alias=_CONVERSATION_KEYS)
    message_ids: list[UUID] | None = None
    message_id: UUID | None = None

    def ids(self) -> list[UUID]:
        if self.message_ids:
            return list(dict.fromkeys(self.message_ids))
        return [self.message_id] if self.message_id else []


def conversation_ref(data: Any) -> UUID | None:
    """Accept a bare id string or an object carrying it."""
    if isinstance(data, dict):
        data = data.get("conversation") or data.get("conversationId")
    if isinstance(data, str):
        try:
            return UUID(data)
        except ValueError:
            return None
    return None
