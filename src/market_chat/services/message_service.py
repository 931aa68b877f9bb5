from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from market_chat.application.dto.events import (
    MessageNotificationEvent,
    MessageView,
    NewConversationEvent,
    NewMessageEvent,
)
from market_chat.application.dto.message import MessageDraft, MessagePage
from market_chat.application.exceptions import ValidationError
from market_chat.application.policies.permissions import assert_participant
from market_chat.application.ports.broadcaster import (
    Broadcaster,
    conversation_room,
    user_room,
)
from market_chat.application.ports.clock import Clock, SystemClock
from market_chat.application.uow import UnitOfWork
from market_chat.domain.entities.account import Account
from market_chat.domain.entities.conversation import Conversation
from market_chat.domain.entities.message import Attachment, Message
from market_chat.domain.value_objects.enums import AttachmentKind, ServerEvent
from market_chat.services import read_state_service

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


async def deliver_message(
    conversation_id: uuid.UUID,
    sender: Account,
    draft: MessageDraft,
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    *,
    announce: bool = False,
    clock: Clock | None = None,
) -> Message:
    """Persist a message, move the conversation pointer, then fan it out.

    This is the only send path; the WebSocket ``send_message`` event and the
    REST endpoint both end up here. Live delivery happens strictly after the
    commit and its failure never undoes the write.

    ``announce`` is set for the first message of a freshly requested
    conversation: the other participants are told about the conversation on
    their personal rooms and receive ``new_message`` there too, since their
    connections cannot have joined the conversation room yet.
    """
    clock = clock or _clock
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(sender.id, conversation)
    content, attachment = _validate_draft(draft)

    now = clock.now()
    msg = Message(
        id=uuid.uuid4(),
        conversation_id=conversation.id,
        sender_id=sender.id,
        content=content,
        attachment=attachment,
        read_by=frozenset({sender.id}),
        client_msg_id=draft.client_msg_id,
        created_at=now,
        updated_at=now,
    )

    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.conversations_w.set_last_message(conversation.id, msg.id, msg.created_at)
        await uow.commit()
    else:
        logger.info(
            "Resend of client message %s in %s, re-broadcasting %s",
            draft.client_msg_id, conversation.id, msg.id,
        )

    try:
        _publish(
            conversation, msg, sender, broadcaster,
            created=created, announce=announce, clock=clock,
        )
    except Exception:
        logger.exception("Live delivery of message %s failed", msg.id)

    return msg


def _validate_draft(draft: MessageDraft) -> tuple[str | None, Attachment | None]:
    content = draft.content.strip() if draft.content else None
    file_url = draft.file_url.strip() if draft.file_url else None

    attachment = None
    if file_url:
        kind = draft.file_kind or AttachmentKind.OTHER
        if kind not in AttachmentKind.__members__.values():
            raise ValidationError(f"Unsupported file type: {kind}")
        attachment = Attachment(url=file_url, kind=str(kind))
    elif draft.file_kind:
        raise ValidationError("fileType given without fileUrl")

    if not content and attachment is None:
        raise ValidationError("Message content is required")

    return content or None, attachment


def _publish(
    conversation: Conversation,
    msg: Message,
    sender: Account,
    broadcaster: Broadcaster,
    *,
    created: bool,
    announce: bool,
    clock: Clock,
) -> None:
    view = MessageView.build(msg, sender)
    new_message = NewMessageEvent.model_validate(
        {**view.model_dump(), "timestamp": clock.now()}
    ).to_wire()
    room = conversation_room(conversation.id)
    others = conversation.other_participant_ids(sender.id)

    if not created:
        broadcaster.emit_to_room(room, ServerEvent.NEW_MESSAGE, new_message)
        return

    if announce:
        announcement = NewConversationEvent(
            conversation=conversation.id,
            sender=sender.id,
            message=msg.content,
        ).to_wire()
        for user_id in others:
            broadcaster.emit_to_user(user_id, ServerEvent.NEW_CONVERSATION, announcement)
        broadcaster.emit_to_rooms(
            [room, *(user_room(user_id) for user_id in others)],
            ServerEvent.NEW_MESSAGE,
            new_message,
        )
        return

    broadcaster.emit_to_room(room, ServerEvent.NEW_MESSAGE, new_message)
    notification = MessageNotificationEvent(
        conversation_id=conversation.id, message=view,
    ).to_wire()
    for user_id in others:
        broadcaster.emit_to_user(user_id, ServerEvent.MESSAGE_NOTIFICATION, notification)


async def list_messages(
    conversation_id: uuid.UUID,
    reader: Account,
    page: int,
    limit: int,
    uow: UnitOfWork,
    broadcaster: Broadcaster,
) -> MessagePage:
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_participant(reader.id, conversation)
    return await load_history(conversation, reader, page, limit, uow, broadcaster)


async def load_history(
    conversation: Conversation,
    reader: Account,
    page: int,
    limit: int,
    uow: UnitOfWork,
    broadcaster: Broadcaster,
) -> MessagePage:
    """One page of history for an already authorised reader.

    Fetching a page marks its unread messages as read by the reader.
    """
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")

    total = await uow.messages.count(conversation.id)
    messages = await uow.messages.list_page(
        conversation.id, offset=(page - 1) * limit, limit=limit,
    )

    newly_read = set(
        await read_state_service.mark_loaded_read(
            conversation, reader, uow, broadcaster,
            message_ids=[m.id for m in messages],
        )
    )
    if newly_read:
        messages = [
            replace(m, read_by=m.read_by | {reader.id}) if m.id in newly_read else m
            for m in messages
        ]

    senders = await uow.accounts.get_many({m.sender_id for m in messages})
    return MessagePage(
        messages=messages, total=total, page=page, limit=limit, senders=senders,
    )
