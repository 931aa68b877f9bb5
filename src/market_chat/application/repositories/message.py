from __future__ import annotations

from typing import Iterable, Protocol
from uuid import UUID

from market_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_many(self, message_ids: Iterable[UUID]) -> dict[UUID, Message]: ...

    async def list_page(
        self, conversation_id: UUID, *, offset: int = 0, limit: int = 50,
    ) -> list[Message]:
        """Skip ``offset`` newest messages, take ``limit``, return them oldest first."""
        ...

    async def count(self, conversation_id: UUID) -> int: ...

    async def list_unread_ids(
        self,
        conversation_id: UUID,
        reader_id: int,
        *,
        within: Iterable[UUID] | None = None,
    ) -> list[UUID]:
        """Ids of messages not sent by ``reader_id`` and not yet read by them."""
        ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created).

        A message carrying a ``client_msg_id`` already used by the same sender in
        the same conversation is not inserted again; the stored one is returned.
        """
        ...

    async def add_reader(self, message_ids: Iterable[UUID], user_id: int) -> list[UUID]:
        """Add ``user_id`` to each reader set. Return the ids that actually changed."""
        ...
