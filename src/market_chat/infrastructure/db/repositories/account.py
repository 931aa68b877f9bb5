from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.domain.entities.account import Account
from market_chat.infrastructure.db.mappers import account as mapper
from market_chat.infrastructure.db.models.account import AccountModel


class AccountReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: int) -> Account | None:
        result = await self._session.get(AccountModel, user_id, populate_existing=True)
        return mapper.model_to_entity(result) if result else None

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, Account]:
        ids = set(user_ids)
        if not ids:
            return {}
        stmt = select(AccountModel).where(AccountModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}
