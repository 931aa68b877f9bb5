from __future__ import annotations

import logging
import uuid
from typing import Sequence

from market_chat.application.dto.events import MessageReadEvent
from market_chat.application.policies.permissions import assert_participant
from market_chat.application.ports.broadcaster import Broadcaster, conversation_room
from market_chat.application.ports.clock import Clock, SystemClock
from market_chat.application.uow import UnitOfWork
from market_chat.domain.entities.account import Account
from market_chat.domain.entities.conversation import Conversation
from market_chat.domain.value_objects.enums import ServerEvent

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


async def mark_read(
    conversation_id: uuid.UUID,
    reader: Account,
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    *,
    message_ids: Sequence[uuid.UUID] | None = None,
) -> list[uuid.UUID]:
    """Add the reader to every message of the conversation they have not read.

    Returns the ids whose reader set changed. An empty list is a normal outcome.
    """
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(reader.id, conversation)
    return await mark_loaded_read(
        conversation, reader, uow, broadcaster, message_ids=message_ids,
    )


async def mark_loaded_read(
    conversation: Conversation,
    reader: Account,
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    *,
    message_ids: Sequence[uuid.UUID] | None = None,
    clock: Clock | None = None,
) -> list[uuid.UUID]:
    if message_ids is not None and not message_ids:
        return []

    unread = await uow.messages.list_unread_ids(
        conversation.id, reader.id, within=message_ids,
    )
    if not unread:
        return []

    affected = await uow.messages_w.add_reader(unread, reader.id)
    await uow.commit()

    if affected:
        event = MessageReadEvent(
            user_id=reader.id,
            message_ids=affected,
            timestamp=(clock or _clock).now(),
        )
        try:
            broadcaster.emit_to_room(
                conversation_room(conversation.id),
                ServerEvent.MESSAGE_READ,
                event.to_wire(),
            )
        except Exception:
            logger.exception("Read receipt broadcast failed for %s", conversation.id)

    return affected
