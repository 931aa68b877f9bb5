from __future__ import annotations

from dataclasses import dataclass

from market_chat.domain.value_objects.enums import AccountStatus


@dataclass(frozen=True, slots=True)
class Account:
    """Marketplace account as seen by the messaging core (read-only)."""

    id: int
    first_name: str
    last_name: str
    profile_image: str | None
    role: str
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE
