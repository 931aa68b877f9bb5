from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncIterator, Self

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.application.exceptions import TransientStoreError
from market_chat.infrastructure.db.repositories.account import AccountReaderRepo
from market_chat.infrastructure.db.repositories.conversation import (
    ConversationReaderRepo,
    ConversationWriterRepo,
)
from market_chat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from market_chat.infrastructure.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
    TimeoutError,
    ConnectionError,
)


class SqlAlchemyUoW:
    """Concrete Unit-of-Work backed by a single AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.accounts = AccountReaderRepo(session)
        self.conversations = ConversationReaderRepo(session)
        self.conversations_w = ConversationWriterRepo(session)
        self.messages = MessageReaderRepo(session)
        self.messages_w = MessageWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            return
        try:
            await self.rollback()
        except Exception:
            logger.warning("Rollback failed", exc_info=True)
        if isinstance(exc_val, _TRANSIENT_ERRORS):
            logger.warning("Database unavailable: %s", exc_val)
            raise TransientStoreError("Database temporarily unavailable") from exc_val


@asynccontextmanager
async def open_uow() -> AsyncIterator[SqlAlchemyUoW]:
    """One session per unit of work; used by REST requests and gateway handlers."""
    async with AsyncSessionLocal() as session:
        async with SqlAlchemyUoW(session) as uow:
            yield uow
