from __future__ import annotations

import asyncio
import logging
import time
import uuid
from enum import StrEnum

from starlette.websockets import WebSocket

from market_chat.domain.entities.account import Account

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    CLOSED = "closed"


class Connection:
    """One client socket: identity, joined rooms and an ordered outbound queue.

    Frames are written by a single writer task, so events reach the client in
    the order they were enqueued. Enqueueing never blocks.
    """

    def __init__(self, websocket: WebSocket, *, queue_size: int = 1000) -> None:
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING
        self.account: Account | None = None
        self.rooms: set[str] = set()
        self.last_seen = time.monotonic()
        self._frames: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)

    @property
    def user_id(self) -> int:
        assert self.account is not None, "connection is not authenticated"
        return self.account.id

    def authenticate(self, account: Account) -> None:
        self.account = account
        self.state = ConnectionState.AUTHENTICATED
        self.touch()

    def reject(self) -> None:
        self.state = ConnectionState.REJECTED

    def mark_closed(self) -> None:
        self.state = ConnectionState.CLOSED

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def silent_for(self) -> float:
        return time.monotonic() - self.last_seen

    def enqueue(self, frame: str) -> bool:
        if self.state is not ConnectionState.AUTHENTICATED:
            return False
        try:
            self._frames.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                "Outbound queue full for connection %s (user %s), dropping frame",
                self.id, self.account.id if self.account else None,
            )
            return False
        return True

    async def run_writer(self) -> None:
        while True:
            frame = await self._frames.get()
            await self.websocket.send_text(frame)

    def pending(self) -> int:
        return self._frames.qsize()
