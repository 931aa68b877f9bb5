from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence
from uuid import UUID

from market_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def find_by_participants(
        self, participant_ids: Sequence[int], *, listing_id: int | None = None,
    ) -> Conversation | None:
        """Find the conversation whose participant set is exactly ``participant_ids``.

        ``listing_id=None`` only matches conversations without a listing.
        """
        ...

    async def list_for_user(
        self, user_id: int, *, active_only: bool = True,
    ) -> list[Conversation]:
        """Conversations the user participates in, most recently updated first."""
        ...


class ConversationWriter(Protocol):
    async def lock_participant_set(
        self, participant_ids: Sequence[int], listing_id: int | None,
    ) -> None:
        """Serialise lookup-before-create for one participant set until commit."""
        ...

    async def create(self, conversation: Conversation) -> Conversation: ...

    async def set_last_message(
        self, conversation_id: UUID, message_id: UUID, ts: datetime,
    ) -> None: ...

    async def set_active(self, conversation_id: UUID, is_active: bool) -> None: ...
