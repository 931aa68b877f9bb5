from __future__ import annotations

from dataclasses import dataclass

from market_chat.application.dto.message import MessagePage
from market_chat.domain.entities.account import Account
from market_chat.domain.entities.conversation import Conversation
from market_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """One row of the caller's inbox."""

    conversation: Conversation
    participants: list[Account]
    other_participants: list[Account]
    last_message: Message | None
    unread: bool


@dataclass(frozen=True, slots=True)
class ConversationDetail:
    conversation: Conversation
    participants: list[Account]
    history: MessagePage
