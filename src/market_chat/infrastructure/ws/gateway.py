"""Realtime gateway: handshake, per-connection read loop, heartbeat and event handlers."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError as PayloadError
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from market_chat.application.dto.events import (
    MessageReadEvent,
    UserJoinedEvent,
    UserLeftEvent,
    UserStatusEvent,
    UserTypingEvent,
)
from market_chat.application.dto.message import MessageDraft
from market_chat.application.exceptions import (
    AppError,
    AuthenticationError,
    TransientStoreError,
)
from market_chat.application.policies.permissions import assert_participant
from market_chat.application.ports.auth import TokenVerifier
from market_chat.application.ports.broadcaster import conversation_room
from market_chat.application.ports.clock import Clock, SystemClock
from market_chat.application.uow import UoWFactory
from market_chat.domain.value_objects.enums import ClientEvent, PresenceStatus, ServerEvent
from market_chat.infrastructure.ws.connection import Connection
from market_chat.infrastructure.ws.manager import ConnectionManager
from market_chat.infrastructure.ws.protocol import (
    MarkReadPayload,
    SendMessagePayload,
    TypingPayload,
    WsInbound,
    conversation_ref,
)
from market_chat.services import identity_service, message_service

logger = logging.getLogger(__name__)

AUTH_FAILED_CLOSE_CODE = 4001
HEARTBEAT_TIMEOUT_CLOSE_CODE = 4002

Handler = Callable[[Connection, Any, UoWFactory], Awaitable[None]]


class RealtimeGateway:
    def __init__(
        self,
        manager: ConnectionManager,
        *,
        heartbeat_seconds: float = 25,
        heartbeat_timeout_seconds: float = 60,
        queue_size: int = 1000,
        clock: Clock | None = None,
    ) -> None:
        self._manager = manager
        self._heartbeat_seconds = heartbeat_seconds
        self._heartbeat_timeout = heartbeat_timeout_seconds
        self._queue_size = queue_size
        self._clock = clock or SystemClock()
        self._handlers: dict[str, Handler] = {
            ClientEvent.JOIN_CONVERSATION: self._on_join,
            ClientEvent.LEAVE_CONVERSATION: self._on_leave,
            ClientEvent.SEND_MESSAGE: self._on_send_message,
            ClientEvent.TYPING: self._on_typing,
            ClientEvent.MARK_READ: self._on_mark_read,
            ClientEvent.USER_ACTIVITY: self._on_user_activity,
            ClientEvent.PING: self._on_ping,
            ClientEvent.PONG: self._on_pong,
        }

    async def handle(
        self,
        websocket: WebSocket,
        token: str | None,
        verifier: TokenVerifier,
        uow_factory: UoWFactory,
    ) -> None:
        conn = Connection(websocket, queue_size=self._queue_size)
        try:
            async with uow_factory() as uow:
                account = await identity_service.authenticate(token, verifier, uow)
        except AuthenticationError as exc:
            logger.info("WS handshake rejected (%s)", exc.code)
            await self._refuse(
                conn, AUTH_FAILED_CLOSE_CODE, f"Authentication error: {exc.detail}",
            )
            return
        except TransientStoreError:
            logger.warning("WS handshake aborted: identity backend unavailable")
            await self._refuse(conn, 1011, "Service unavailable")
            return

        await websocket.accept()
        conn.authenticate(account)
        self._manager.register(conn)

        tasks = {
            asyncio.create_task(self._read_loop(conn, uow_factory), name=f"ws-read-{conn.id}"),
            asyncio.create_task(self._heartbeat(conn), name=f"ws-heartbeat-{conn.id}"),
            asyncio.create_task(conn.run_writer(), name=f"ws-write-{conn.id}"),
        }
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.error(
                        "WS task %s failed for user %s",
                        task.get_name(), conn.user_id, exc_info=exc,
                    )
        finally:
            for task in tasks:
                task.cancel()
            self._manager.unregister(conn)
            conn.mark_closed()
            await asyncio.gather(*tasks, return_exceptions=True)
            if websocket.application_state is WebSocketState.CONNECTED:
                try:
                    await websocket.close()
                except RuntimeError:
                    logger.debug("Socket %s closed concurrently", conn.id)

    async def _refuse(self, conn: Connection, code: int, reason: str) -> None:
        # Close codes only reach the client after accept.
        conn.reject()
        await conn.websocket.accept()
        await conn.websocket.close(code=code, reason=reason)

    async def _heartbeat(self, conn: Connection) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_seconds)
            if conn.silent_for() > self._heartbeat_timeout:
                logger.info(
                    "Heartbeat timeout for user %s conn %s after %.0fs",
                    conn.user_id, conn.id, conn.silent_for(),
                )
                await conn.websocket.close(
                    code=HEARTBEAT_TIMEOUT_CLOSE_CODE, reason="Heartbeat timeout",
                )
                return
            self._manager.send(conn, ServerEvent.PING, {"timestamp": self._clock.now().isoformat()})

    async def _read_loop(self, conn: Connection, uow_factory: UoWFactory) -> None:
        while True:
            message = await conn.websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            conn.touch()

            raw = message.get("text")
            if raw is None:
                logger.info("Dropping binary frame from user %s", conn.user_id)
                continue
            try:
                frame = WsInbound.model_validate_json(raw)
            except PayloadError:
                logger.info("Dropping malformed frame from user %s", conn.user_id)
                continue

            handler = self._handlers.get(frame.type)
            if handler is None:
                logger.info("Dropping unknown event %r from user %s", frame.type, conn.user_id)
                continue

            try:
                await handler(conn, frame.data, uow_factory)
            except PayloadError as exc:
                logger.info(
                    "Dropping invalid %s payload from user %s: %s",
                    frame.type, conn.user_id, exc.errors(include_url=False),
                )
            except AppError as exc:
                logger.info("%s from user %s refused: %s", frame.type, conn.user_id, exc.detail)
            except Exception:
                logger.exception("Handler %s failed for user %s", frame.type, conn.user_id)

    # -- handlers ------------------------------------------------------------

    async def _on_join(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        conversation_id = conversation_ref(data)
        if conversation_id is None:
            logger.info("join_conversation without a valid id from user %s", conn.user_id)
            return

        async with uow_factory() as uow:
            conversation = await uow.conversations.get_by_id(conversation_id)
        assert_participant(conn.user_id, conversation)

        room = conversation_room(conversation_id)
        self._manager.join(conn, room)
        account = conn.account
        assert account is not None
        event = UserJoinedEvent(
            user_id=account.id,
            first_name=account.first_name,
            last_name=account.last_name,
            timestamp=self._clock.now(),
        )
        self._manager.emit_to_room(room, ServerEvent.USER_JOINED, event.to_wire(), exclude=conn.id)

    async def _on_leave(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        conversation_id = conversation_ref(data)
        if conversation_id is None:
            return
        room = conversation_room(conversation_id)
        if not self._manager.leave(conn, room):
            return
        event = UserLeftEvent(user_id=conn.user_id, timestamp=self._clock.now())
        self._manager.emit_to_room(room, ServerEvent.USER_LEFT, event.to_wire())

    async def _on_send_message(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        payload = SendMessagePayload.model_validate(data)
        if payload.conversation is None:
            logger.info("send_message without conversation id from user %s", conn.user_id)
            return

        draft = MessageDraft(
            content=payload.content,
            file_url=payload.file_url,
            file_kind=payload.file_type,
            client_msg_id=payload.client_message_id,
        )
        assert conn.account is not None
        async with uow_factory() as uow:
            await message_service.deliver_message(
                payload.conversation, conn.account, draft, uow, self._manager,
            )

    async def _on_typing(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        payload = TypingPayload.model_validate(data)
        room = conversation_room(payload.conversation)
        if not self._manager.in_room(conn, room):
            logger.debug("typing for unjoined room %s from user %s", room, conn.user_id)
            return
        assert conn.account is not None
        event = UserTypingEvent(
            user_id=conn.account.id,
            typing=payload.typing,
            first_name=conn.account.first_name,
            timestamp=self._clock.now(),
        )
        self._manager.emit_to_room(room, ServerEvent.USER_TYPING, event.to_wire(), exclude=conn.id)

    async def _on_mark_read(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        payload = MarkReadPayload.model_validate(data)
        message_ids = payload.ids()
        if not message_ids:
            logger.info("mark_read without message ids from user %s", conn.user_id)
            return
        room = conversation_room(payload.conversation)
        if not self._manager.in_room(conn, room):
            logger.debug("mark_read for unjoined room %s from user %s", room, conn.user_id)
            return
        event = MessageReadEvent(
            user_id=conn.user_id,
            message_ids=message_ids,
            timestamp=self._clock.now(),
        )
        self._manager.emit_to_room(room, ServerEvent.MESSAGE_READ, event.to_wire(), exclude=conn.id)

    async def _on_user_activity(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        event = UserStatusEvent(
            user_id=conn.user_id,
            status=PresenceStatus.ONLINE,
            timestamp=self._clock.now(),
        )
        self._manager.emit_to_all(ServerEvent.USER_STATUS, event.to_wire(), exclude=conn.id)

    async def _on_ping(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        self._manager.send(conn, ServerEvent.PONG, {"timestamp": self._clock.now().isoformat()})

    async def _on_pong(self, conn: Connection, data: Any, uow_factory: UoWFactory) -> None:
        pass
