from __future__ import annotations

from datetime import datetime
from uuid import UUID

from market_chat.api.v1.schemas.common import Pagination
from market_chat.application.dto.conversation import ConversationDetail, ConversationSummary
from market_chat.application.dto.events import MessageView, SenderView, WireModel


class CreateConversationRequest(WireModel):
    participant_id: int
    listing_id: int | None = None
    initial_message: str | None = None


class ConversationResponse(WireModel):
    id: UUID
    participants: list[SenderView]
    listing_id: int | None
    last_message_id: UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ConversationSummaryResponse(ConversationResponse):
    other_participants: list[SenderView]
    last_message: MessageView | None
    unread: bool

    @classmethod
    def of(cls, summary: ConversationSummary) -> ConversationSummaryResponse:
        conv = summary.conversation
        last = summary.last_message
        senders = {a.id: a for a in summary.participants}
        return cls(
            id=conv.id,
            participants=[SenderView.of(a.id, a) for a in summary.participants],
            listing_id=conv.listing_id,
            last_message_id=conv.last_message_id,
            is_active=conv.is_active,
            created_at=conv.created_at,
            updated_at=conv.updated_at,
            other_participants=[SenderView.of(a.id, a) for a in summary.other_participants],
            last_message=MessageView.build(last, senders.get(last.sender_id)) if last else None,
            unread=summary.unread,
        )


class ConversationDetailResponse(WireModel):
    conversation: ConversationResponse
    messages: list[MessageView]
    pagination: Pagination

    @classmethod
    def of(cls, detail: ConversationDetail) -> ConversationDetailResponse:
        conv = detail.conversation
        history = detail.history
        return cls(
            conversation=ConversationResponse(
                id=conv.id,
                participants=[SenderView.of(a.id, a) for a in detail.participants],
                listing_id=conv.listing_id,
                last_message_id=conv.last_message_id,
                is_active=conv.is_active,
                created_at=conv.created_at,
                updated_at=conv.updated_at,
            ),
            messages=[
                MessageView.build(m, history.senders.get(m.sender_id))
                for m in history.messages
            ],
            pagination=Pagination.of(history),
        )
