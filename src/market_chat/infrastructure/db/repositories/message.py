from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.domain.entities.message import Message
from market_chat.infrastructure.db.mappers import message as mapper
from market_chat.infrastructure.db.models.message import MessageModel
from market_chat.infrastructure.db.models.message_read import MessageReadModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_many(self, message_ids: Iterable[UUID]) -> dict[UUID, Message]:
        ids = set(message_ids)
        if not ids:
            return {}
        stmt = (
            select(MessageModel)
            .where(MessageModel.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}

    async def list_page(
        self,
        conversation_id: UUID,
        *,
        offset: int = 0,
        limit: int = 50,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        newest_first = [mapper.model_to_entity(m) for m in result.scalars().all()]
        return newest_first[::-1]

    async def count(self, conversation_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def list_unread_ids(
        self,
        conversation_id: UUID,
        reader_id: int,
        *,
        within: Iterable[UUID] | None = None,
    ) -> list[UUID]:
        already_read = (
            select(MessageReadModel.message_id)
            .where(
                MessageReadModel.message_id == MessageModel.id,
                MessageReadModel.user_id == reader_id,
            )
            .exists()
        )
        stmt = (
            select(MessageModel.id)
            .where(
                MessageModel.conversation_id == conversation_id,
                MessageModel.sender_id != reader_id,
                ~already_read,
            )
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        if within is not None:
            stmt = stmt.where(MessageModel.id.in_(list(within)))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message and its initial reader set. Returns (message, created_flag)."""
        values = {
            "id": message.id,
            "conversation_id": message.conversation_id,
            "sender_id": message.sender_id,
            "content": message.content,
            "file_url": message.attachment.url if message.attachment else None,
            "file_kind": message.attachment.kind if message.attachment else None,
            "client_msg_id": message.client_msg_id,
            "created_at": message.created_at,
            "updated_at": message.updated_at,
        }
        stmt = pg_insert(MessageModel).values(**values)
        if message.client_msg_id is not None:
            stmt = stmt.on_conflict_do_nothing(
                index_elements=["conversation_id", "sender_id", "client_msg_id"],
            )
        result = await self._session.execute(stmt.returning(MessageModel.id))

        if result.scalar_one_or_none() is None:
            # Conflict: same client id already stored
            existing = await self._get_by_client_msg_id(message)
            assert existing is not None
            return existing, False

        if message.read_by:
            await self._session.execute(
                pg_insert(MessageReadModel)
                .values([
                    {"message_id": message.id, "user_id": user_id, "read_at": message.created_at}
                    for user_id in message.read_by
                ])
                .on_conflict_do_nothing()
            )
        return message, True

    async def _get_by_client_msg_id(self, message: Message) -> Message | None:
        stmt = (
            select(MessageModel)
            .where(
                MessageModel.conversation_id == message.conversation_id,
                MessageModel.sender_id == message.sender_id,
                MessageModel.client_msg_id == message.client_msg_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def add_reader(self, message_ids: Iterable[UUID], user_id: int) -> list[UUID]:
        ids = list(dict.fromkeys(message_ids))
        if not ids:
            return []
        stmt = (
            pg_insert(MessageReadModel)
            .values([{"message_id": mid, "user_id": user_id} for mid in ids])
            .on_conflict_do_nothing()
            .returning(MessageReadModel.message_id)
        )
        result = await self._session.execute(stmt)
        affected = list(result.scalars().all())
        if affected:
            await self._session.execute(
                update(MessageModel)
                .where(MessageModel.id.in_(affected))
                .values(updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
        return affected
