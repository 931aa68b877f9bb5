from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status

from market_chat.api.deps import BroadcasterDep, CurrentAccount, UoWDep
from market_chat.api.v1.schemas.common import StatusMessage
from market_chat.api.v1.schemas.conversation import (
    ConversationDetailResponse,
    ConversationSummaryResponse,
    CreateConversationRequest,
)
from market_chat.config import settings
from market_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationSummaryResponse])
async def list_conversations(
    account: CurrentAccount,
    uow: UoWDep,
) -> list[ConversationSummaryResponse]:
    summaries = await conversation_service.list_user_conversations(account, uow)
    return [ConversationSummaryResponse.of(s) for s in summaries]


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: UUID,
    account: CurrentAccount,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.MESSAGES_PAGE_SIZE_DEFAULT, ge=1, le=settings.MESSAGES_PAGE_SIZE_MAX),
) -> ConversationDetailResponse:
    detail = await conversation_service.get_conversation(
        conversation_id, account, page, limit, uow, broadcaster,
    )
    return ConversationDetailResponse.of(detail)


@router.post(
    "",
    response_model=ConversationSummaryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    body: CreateConversationRequest,
    account: CurrentAccount,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
) -> ConversationSummaryResponse:
    conversation, _created = await conversation_service.create_conversation(
        account,
        body.participant_id,
        body.listing_id,
        body.initial_message,
        uow,
        broadcaster,
    )
    summary = await conversation_service.summarize(conversation, account, uow)
    return ConversationSummaryResponse.of(summary)


@router.put("/{conversation_id}/archive", response_model=StatusMessage)
async def archive_conversation(
    conversation_id: UUID,
    account: CurrentAccount,
    uow: UoWDep,
) -> StatusMessage:
    await conversation_service.archive_conversation(conversation_id, account, uow)
    return StatusMessage(message="Conversation archived")
