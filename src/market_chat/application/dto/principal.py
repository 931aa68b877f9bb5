from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity extracted from a verified JWT, before the account lookup."""

    user_id: int
    role: str | None = None
