from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from market_chat.api.deps import BroadcasterDep, CurrentAccount, UoWDep
from market_chat.api.v1.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessagePageResponse,
    SendMessageRequest,
)
from market_chat.application.dto.events import MessageView
from market_chat.config import settings
from market_chat.services import message_service, read_state_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.get("/{conversation_id}", response_model=MessagePageResponse)
async def list_messages(
    conversation_id: UUID,
    account: CurrentAccount,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.MESSAGES_PAGE_SIZE_DEFAULT, ge=1, le=settings.MESSAGES_PAGE_SIZE_MAX),
) -> MessagePageResponse:
    history = await message_service.list_messages(
        conversation_id, account, page, limit, uow, broadcaster,
    )
    return MessagePageResponse.of(history)


@router.post("/{conversation_id}", response_model=MessageView, status_code=status.HTTP_201_CREATED)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    account: CurrentAccount,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
) -> MessageView:
    msg = await message_service.deliver_message(
        conversation_id, account, body.to_draft(), uow, broadcaster,
    )
    return MessageView.build(msg, account)


@router.put("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: UUID,
    account: CurrentAccount,
    uow: UoWDep,
    broadcaster: BroadcasterDep,
    body: MarkReadRequest | None = Body(None),
) -> MarkReadResponse:
    affected = await read_state_service.mark_read(
        conversation_id,
        account,
        uow,
        broadcaster,
        message_ids=body.message_ids if body else None,
    )
    return MarkReadResponse(message="Messages marked as read", count=len(affected))
