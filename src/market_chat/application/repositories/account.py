from __future__ import annotations

from typing import Iterable, Protocol

from market_chat.domain.entities.account import Account


class AccountReader(Protocol):
    async def get_by_id(self, user_id: int) -> Account | None: ...

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, Account]:
        """Return the accounts that exist, keyed by id. Missing ids are skipped."""
        ...
