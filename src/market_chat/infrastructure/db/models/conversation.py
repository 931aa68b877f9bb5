from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from market_chat.infrastructure.db.base import Base


class ConversationModel(Base):
    __tablename__ = "conversations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    listing_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_message_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        # messages references conversations too, so this side is added after both tables
        ForeignKey("messages.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
        onupdate=text("now()"),
    )

    # relationships
    participants = relationship(
        "ParticipantModel",
        back_populates="conversation",
        lazy="selectin",
        order_by="ParticipantModel.position",
        cascade="all, delete-orphan",
    )
    messages = relationship(
        "MessageModel",
        back_populates="conversation",
        lazy="noload",
        foreign_keys="MessageModel.conversation_id",
    )

    __table_args__ = (
        Index("ix_conversations_listing", "listing_id"),
        Index("ix_conversations_updated", "updated_at"),
    )
