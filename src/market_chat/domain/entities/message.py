from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Attachment:
    url: str
    kind: str


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: UUID
    sender_id: int
    content: str | None
    attachment: Attachment | None
    read_by: frozenset[int]
    client_msg_id: UUID | None
    created_at: datetime
    updated_at: datetime

    def is_read_by(self, user_id: int) -> bool:
        return user_id in self.read_by
