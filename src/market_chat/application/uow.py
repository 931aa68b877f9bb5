from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from market_chat.application.repositories.account import AccountReader
from market_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from market_chat.application.repositories.message import MessageReader, MessageWriter


class UnitOfWork(Protocol):
    accounts: AccountReader
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
