from __future__ import annotations

from market_chat.domain.entities.account import Account
from market_chat.infrastructure.db.models.account import AccountModel


def model_to_entity(model: AccountModel) -> Account:
    return Account(
        id=model.id,
        first_name=model.first_name,
        last_name=model.last_name,
        profile_image=model.profile_image,
        role=model.role,
        status=model.status,
    )
