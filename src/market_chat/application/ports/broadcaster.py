"""Live fan-out capability shared by the gateway and the REST facade."""
from __future__ import annotations

from typing import Any, Iterable, Protocol
from uuid import UUID


def conversation_room(conversation_id: UUID | str) -> str:
    return f"conversation:{conversation_id}"


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


class Broadcaster(Protocol):
    """Fire-and-forget emitter. Calls never suspend the caller."""

    def emit_to_room(
        self,
        room: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None: ...

    def emit_to_rooms(
        self,
        rooms: Iterable[str],
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        """Emit once per connection joined to any of ``rooms``."""
        ...

    def emit_to_user(self, user_id: int, event: str, data: dict[str, Any]) -> None: ...

    def emit_to_all(
        self,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None: ...
