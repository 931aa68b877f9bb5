"""Import all models so ``Base.metadata`` knows every table."""
from market_chat.infrastructure.db.models.account import AccountModel
from market_chat.infrastructure.db.models.conversation import ConversationModel
from market_chat.infrastructure.db.models.message import MessageModel
from market_chat.infrastructure.db.models.message_read import MessageReadModel
from market_chat.infrastructure.db.models.participant import ParticipantModel

__all__ = [
    "AccountModel",
    "ConversationModel",
    "MessageModel",
    "MessageReadModel",
    "ParticipantModel",
]
