from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from market_chat.domain.entities.account import Account
from market_chat.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class MessageDraft:
    content: str | None = None
    file_url: str | None = None
    file_kind: str | None = None
    client_msg_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class MessagePage:
    messages: list[Message]
    total: int
    page: int
    limit: int
    senders: dict[int, Account] = field(default_factory=dict)

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0
