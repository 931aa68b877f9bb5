from __future__ import annotations

from uuid import UUID

from pydantic import Field

from market_chat.api.v1.schemas.common import Pagination, StatusMessage
from market_chat.application.dto.events import MessageView, WireModel
from market_chat.application.dto.message import MessageDraft, MessagePage


class SendMessageRequest(WireModel):
    content: str | None = Field(default=None, max_length=10_000)
    file_url: str | None = Field(default=None, max_length=1000)
    file_type: str | None = None
    client_message_id: UUID | None = None

    def to_draft(self) -> MessageDraft:
        return MessageDraft(
            content=self.content,
            file_url=self.file_url,
            file_kind=self.file_type,
            client_msg_id=self.client_message_id,
        )


class MarkReadRequest(WireModel):
    message_ids: list[UUID] | None = None


class MessagePageResponse(WireModel):
    messages: list[MessageView]
    pagination: Pagination

    @classmethod
    def of(cls, page: MessagePage) -> MessagePageResponse:
        return cls(
            messages=[MessageView.build(m, page.senders.get(m.sender_id)) for m in page.messages],
            pagination=Pagination.of(page),
        )


class MarkReadResponse(StatusMessage):
    count: int
