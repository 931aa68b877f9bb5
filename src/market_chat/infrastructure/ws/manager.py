"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from starlette.websockets import WebSocketState

from market_chat.application.dto.events import UserStatusEvent
from market_chat.application.ports.broadcaster import user_room
from market_chat.application.ports.clock import Clock, SystemClock
from market_chat.domain.value_objects.enums import PresenceStatus, ServerEvent
from market_chat.infrastructure.ws.connection import Connection
from market_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks live connections, presence per user and room membership.

    Implements the ``Broadcaster`` port: every ``emit_*`` serialises the frame
    once and hands it to the target connections' queues without awaiting.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._connections: dict[str, Connection] = {}
        self._presence: dict[int, set[str]] = {}
        self._rooms: dict[str, set[str]] = {}

    # -- lifecycle -----------------------------------------------------------

    def register(self, conn: Connection) -> None:
        self._connections[conn.id] = conn
        self.join(conn, user_room(conn.user_id))
        live = self._presence.setdefault(conn.user_id, set())
        first = not live
        live.add(conn.id)
        logger.info(
            "WS connected: user %s conn %s (users online=%d)",
            conn.user_id, conn.id, len(self._presence),
        )
        if first:
            self._announce_status(conn.user_id, PresenceStatus.ONLINE)

    def unregister(self, conn: Connection) -> None:
        if self._connections.pop(conn.id, None) is None:
            return
        for room in list(conn.rooms):
            self.leave(conn, room)
        live = self._presence.get(conn.user_id)
        if live is not None:
            live.discard(conn.id)
            if not live:
                del self._presence[conn.user_id]
                self._announce_status(conn.user_id, PresenceStatus.OFFLINE)
        logger.info("WS disconnected: user %s conn %s", conn.user_id, conn.id)

    async def close_all(self, code: int = 1001) -> None:
        for conn in list(self._connections.values()):
            if conn.websocket.application_state is WebSocketState.CONNECTED:
                try:
                    await conn.websocket.close(code=code)
                except RuntimeError:
                    logger.debug("Socket %s already closing", conn.id)
            self.unregister(conn)

    # -- rooms / presence ----------------------------------------------------

    def join(self, conn: Connection, room: str) -> None:
        self._rooms.setdefault(room, set()).add(conn.id)
        conn.rooms.add(room)

    def leave(self, conn: Connection, room: str) -> bool:
        members = self._rooms.get(room)
        if members is None or conn.id not in members:
            return False
        members.discard(conn.id)
        if not members:
            del self._rooms[room]
        conn.rooms.discard(room)
        return True

    def in_room(self, conn: Connection, room: str) -> bool:
        return conn.id in self._rooms.get(room, ())

    def is_online(self, user_id: int) -> bool:
        return user_id in self._presence

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def _announce_status(self, user_id: int, status: PresenceStatus) -> None:
        event = UserStatusEvent(user_id=user_id, status=status, timestamp=self._clock.now())
        self.emit_to_all(ServerEvent.USER_STATUS, event.to_wire())

    # -- Broadcaster ---------------------------------------------------------

    def emit_to_room(
        self,
        room: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        self._deliver(self._rooms.get(room, ()), event, data, exclude)

    def emit_to_rooms(
        self,
        rooms: Iterable[str],
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        targets: set[str] = set()
        for room in rooms:
            targets.update(self._rooms.get(room, ()))
        self._deliver(targets, event, data, exclude)

    def emit_to_user(self, user_id: int, event: str, data: dict[str, Any]) -> None:
        self.emit_to_room(user_room(user_id), event, data)

    def emit_to_all(
        self,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        self._deliver(self._connections, event, data, exclude)

    def send(self, conn: Connection, event: str, data: Any = None) -> None:
        conn.enqueue(_frame(event, data))

    def _deliver(
        self,
        conn_ids: Iterable[str],
        event: str,
        data: Any,
        exclude: str | None,
    ) -> None:
        targets = [
            self._connections[cid]
            for cid in list(conn_ids)
            if cid != exclude and cid in self._connections
        ]
        if not targets:
            return
        raw = _frame(event, data)
        for conn in targets:
            conn.enqueue(raw)


def _frame(event: str, data: Any) -> str:
    return WsOutbound(type=str(event), data=data).model_dump_json()
