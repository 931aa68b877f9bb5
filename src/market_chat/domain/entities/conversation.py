from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    participant_ids: tuple[int, ...]
    listing_id: int | None
    last_message_id: UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    def has_participant(self, user_id: int) -> bool:
        return user_id in self.participant_ids

    def other_participant_ids(self, user_id: int) -> tuple[int, ...]:
        return tuple(pid for pid in self.participant_ids if pid != user_id)
