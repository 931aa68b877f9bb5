from __future__ import annotations

from market_chat.domain.entities.message import Attachment, Message
from market_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    attachment = (
        Attachment(url=model.file_url, kind=model.file_kind or "other")
        if model.file_url
        else None
    )
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        content=model.content,
        attachment=attachment,
        read_by=frozenset(r.user_id for r in model.readers),
        client_msg_id=model.client_msg_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
