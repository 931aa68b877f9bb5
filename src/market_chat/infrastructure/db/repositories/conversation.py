from __future__ import annotations

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.domain.entities.conversation import Conversation
from market_chat.infrastructure.db.mappers import conversation as mapper
from market_chat.infrastructure.db.models.conversation import ConversationModel
from market_chat.infrastructure.db.models.participant import ParticipantModel


def participant_set_key(participant_ids: Sequence[int], listing_id: int | None) -> str:
    members = ",".join(str(pid) for pid in sorted(set(participant_ids)))
    return f"conversation:{members}|{listing_id if listing_id is not None else ''}"


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(
            ConversationModel, conversation_id, populate_existing=True,
        )
        return mapper.model_to_entity(result) if result else None

    async def find_by_participants(
        self,
        participant_ids: Sequence[int],
        *,
        listing_id: int | None = None,
    ) -> Conversation | None:
        ids = sorted(set(participant_ids))
        exact_members = (
            select(ParticipantModel.conversation_id)
            .group_by(ParticipantModel.conversation_id)
            .having(func.count() == len(ids))
            .having(func.count().filter(ParticipantModel.user_id.in_(ids)) == len(ids))
        )
        stmt = select(ConversationModel).where(ConversationModel.id.in_(exact_members))
        if listing_id is None:
            stmt = stmt.where(ConversationModel.listing_id.is_(None))
        else:
            stmt = stmt.where(ConversationModel.listing_id == listing_id)
        stmt = (
            stmt.order_by(ConversationModel.created_at.asc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(
        self,
        user_id: int,
        *,
        active_only: bool = True,
    ) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .join(
                ParticipantModel,
                ParticipantModel.conversation_id == ConversationModel.id,
            )
            .where(ParticipantModel.user_id == user_id)
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.id)
            .execution_options(populate_existing=True)
        )
        if active_only:
            stmt = stmt.where(ConversationModel.is_active.is_(True))
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def lock_participant_set(
        self,
        participant_ids: Sequence[int],
        listing_id: int | None,
    ) -> None:
        # Released on commit/rollback. No unique index backs this invariant.
        key = participant_set_key(participant_ids, listing_id)
        await self._session.execute(select(func.pg_advisory_xact_lock(func.hashtext(key))))

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def set_last_message(
        self,
        conversation_id: UUID,
        message_id: UUID,
        ts: datetime,
    ) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(last_message_id=message_id, updated_at=ts)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def set_active(self, conversation_id: UUID, is_active: bool) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(is_active=is_active)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
