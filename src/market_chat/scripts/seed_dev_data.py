"""Seed development data: two accounts, a conversation and a few messages."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from market_chat.config import settings
from market_chat.domain.entities.conversation import Conversation
from market_chat.domain.entities.message import Message
from market_chat.domain.value_objects.enums import AccountRole, AccountStatus
from market_chat.infrastructure.db.models.account import AccountModel
from market_chat.infrastructure.db.session import AsyncSessionLocal
from market_chat.infrastructure.db.uow import SqlAlchemyUoW
from market_chat.log import configure_logging

logger = logging.getLogger(__name__)

BUYER_ID = 42
WORKER_ID = 7
LISTING_ID = 1001


async def seed() -> None:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        now = datetime.now(timezone.utc)

        for user_id, first, last, role in (
            (BUYER_ID, "Alice", "Buyer", AccountRole.USER),
            (WORKER_ID, "Bob", "Worker", AccountRole.WORKER),
        ):
            await session.merge(
                AccountModel(
                    id=user_id,
                    first_name=first,
                    last_name=last,
                    role=role,
                    status=AccountStatus.ACTIVE,
                )
            )
        await session.flush()

        conv = await uow.conversations_w.create(
            Conversation(
                id=uuid.uuid4(),
                participant_ids=(BUYER_ID, WORKER_ID),
                listing_id=LISTING_ID,
                last_message_id=None,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
        )

        messages_data = [
            (BUYER_ID, "Hi! Is the cleaning slot on Friday still free?"),
            (WORKER_ID, "Hello, yes it is. Morning or afternoon?"),
            (BUYER_ID, "Morning, around 9."),
            (WORKER_ID, "Booked. See you then."),
        ]
        last: Message | None = None
        for offset, (sender_id, content) in enumerate(messages_data):
            ts = now + timedelta(seconds=offset)
            last, _ = await uow.messages_w.create_if_not_exists(
                Message(
                    id=uuid.uuid4(),
                    conversation_id=conv.id,
                    sender_id=sender_id,
                    content=content,
                    attachment=None,
                    read_by=frozenset({sender_id}),
                    client_msg_id=None,
                    created_at=ts,
                    updated_at=ts,
                )
            )
        if last is not None:
            await uow.conversations_w.set_last_message(conv.id, last.id, last.created_at)

        await uow.commit()
        logger.info("Seeded conversation %s with %d messages", conv.id, len(messages_data))


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
