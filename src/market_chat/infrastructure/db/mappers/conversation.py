from __future__ import annotations

from market_chat.domain.entities.conversation import Conversation
from market_chat.infrastructure.db.models.conversation import ConversationModel
from market_chat.infrastructure.db.models.participant import ParticipantModel


def model_to_entity(model: ConversationModel) -> Conversation:
    ordered = sorted(model.participants, key=lambda p: p.position)
    return Conversation(
        id=model.id,
        participant_ids=tuple(p.user_id for p in ordered),
        listing_id=model.listing_id,
        last_message_id=model.last_message_id,
        is_active=model.is_active,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        listing_id=entity.listing_id,
        last_message_id=entity.last_message_id,
        is_active=entity.is_active,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
        participants=[
            ParticipantModel(conversation_id=entity.id, user_id=user_id, position=position)
            for position, user_id in enumerate(entity.participant_ids)
        ],
    )
