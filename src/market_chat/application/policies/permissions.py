from __future__ import annotations

from market_chat.application.exceptions import ForbiddenError, NotFoundError
from market_chat.domain.entities.conversation import Conversation


def assert_participant(user_id: int, conversation: Conversation | None) -> Conversation:
    """Raise if conversation doesn't exist or the user is not one of its participants."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    if not conversation.has_participant(user_id):
        raise ForbiddenError("Not authorized to access this conversation")

    return conversation
