from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from market_chat.application.dto.conversation import ConversationDetail, ConversationSummary
from market_chat.application.dto.message import MessageDraft
from market_chat.application.exceptions import NotFoundError, ValidationError
from market_chat.application.policies.permissions import assert_participant
from market_chat.application.ports.broadcaster import Broadcaster
from market_chat.application.ports.clock import Clock, SystemClock
from market_chat.application.uow import UnitOfWork
from market_chat.domain.entities.account import Account
from market_chat.domain.entities.conversation import Conversation
from market_chat.domain.entities.message import Message
from market_chat.services import message_service

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


def is_unread(last_message: Message | None, user_id: int) -> bool:
    """Inbox flag: only the last message is inspected, not the full unread set."""
    return (
        last_message is not None
        and last_message.sender_id != user_id
        and not last_message.is_read_by(user_id)
    )


async def create_conversation(
    account: Account,
    participant_id: int,
    listing_id: int | None,
    initial_message: str | None,
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    *,
    clock: Clock | None = None,
) -> tuple[Conversation, bool]:
    """Return the conversation between the caller and ``participant_id``, creating it if needed.

    Returns (conversation, created). An existing archived conversation is
    re-activated rather than duplicated. An initial message is delivered through
    the regular send path with a ``new_conversation`` announcement.
    """
    if participant_id == account.id:
        raise ValidationError("Cannot start a conversation with yourself")

    other = await uow.accounts.get_by_id(participant_id)
    if other is None:
        raise NotFoundError("User not found")

    participant_ids = (account.id, participant_id)
    await uow.conversations_w.lock_participant_set(participant_ids, listing_id)
    existing = await uow.conversations.find_by_participants(
        participant_ids, listing_id=listing_id,
    )

    created = existing is None
    if existing is None:
        now = (clock or _clock).now()
        conversation = await uow.conversations_w.create(
            Conversation(
                id=uuid.uuid4(),
                participant_ids=participant_ids,
                listing_id=listing_id,
                last_message_id=None,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
        )
        await uow.commit()
        logger.info(
            "Created conversation %s between %s (listing=%s)",
            conversation.id, participant_ids, listing_id,
        )
    elif not existing.is_active:
        await uow.conversations_w.set_active(existing.id, True)
        await uow.commit()
        conversation = replace(existing, is_active=True)
        logger.info("Re-activated archived conversation %s", conversation.id)
    else:
        conversation = existing

    if initial_message and initial_message.strip():
        await message_service.deliver_message(
            conversation.id,
            account,
            MessageDraft(content=initial_message),
            uow,
            broadcaster,
            announce=True,
        )
        refreshed = await uow.conversations.get_by_id(conversation.id)
        if refreshed is not None:
            conversation = refreshed

    return conversation, created


async def list_user_conversations(
    account: Account,
    uow: UnitOfWork,
) -> list[ConversationSummary]:
    conversations = await uow.conversations.list_for_user(account.id)
    return await _summarize(conversations, account, uow)


async def summarize(
    conversation: Conversation,
    account: Account,
    uow: UnitOfWork,
) -> ConversationSummary:
    (summary,) = await _summarize([conversation], account, uow)
    return summary


async def _summarize(
    conversations: list[Conversation],
    account: Account,
    uow: UnitOfWork,
) -> list[ConversationSummary]:
    if not conversations:
        return []

    accounts = await uow.accounts.get_many(
        {pid for c in conversations for pid in c.participant_ids}
    )
    last_ids = [c.last_message_id for c in conversations if c.last_message_id]
    last_messages = await uow.messages.get_many(last_ids) if last_ids else {}

    summaries: list[ConversationSummary] = []
    for conv in conversations:
        participants = [accounts[pid] for pid in conv.participant_ids if pid in accounts]
        last = last_messages.get(conv.last_message_id) if conv.last_message_id else None
        summaries.append(
            ConversationSummary(
                conversation=conv,
                participants=participants,
                other_participants=[a for a in participants if a.id != account.id],
                last_message=last,
                unread=is_unread(last, account.id),
            )
        )
    return summaries


async def get_conversation(
    conversation_id: uuid.UUID,
    account: Account,
    page: int,
    limit: int,
    uow: UnitOfWork,
    broadcaster: Broadcaster,
) -> ConversationDetail:
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(account.id, conversation)

    accounts = await uow.accounts.get_many(conversation.participant_ids)
    history = await message_service.load_history(
        conversation, account, page, limit, uow, broadcaster,
    )
    return ConversationDetail(
        conversation=conversation,
        participants=[accounts[pid] for pid in conversation.participant_ids if pid in accounts],
        history=history,
    )


async def archive_conversation(
    conversation_id: uuid.UUID,
    account: Account,
    uow: UnitOfWork,
) -> None:
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(account.id, conversation)
    await uow.conversations_w.set_active(conversation.id, False)
    await uow.commit()
    logger.info("Conversation %s archived by %s", conversation.id, account.id)
