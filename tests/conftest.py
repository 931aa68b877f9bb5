"""Shared test fixtures."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Any, Iterable, Sequence
from uuid import UUID

import pytest

from market_chat.domain.entities.account import Account
from market_chat.domain.entities.conversation import Conversation
from market_chat.domain.entities.message import Attachment, Message
from market_chat.domain.value_objects.enums import AccountRole, AccountStatus

_EPOCH = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_account(
    user_id: int = 42,
    *,
    first_name: str = "Alice",
    last_name: str = "Tester",
    status: str = AccountStatus.ACTIVE,
) -> Account:
    return Account(
        id=user_id,
        first_name=first_name,
        last_name=last_name,
        profile_image=None,
        role=AccountRole.USER,
        status=status,
    )


def make_conversation(
    *participant_ids: int,
    conversation_id: UUID | None = None,
    listing_id: int | None = None,
    is_active: bool = True,
    updated_at: datetime | None = None,
) -> Conversation:
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        participant_ids=participant_ids or (42, 7),
        listing_id=listing_id,
        last_message_id=None,
        is_active=is_active,
        created_at=_EPOCH,
        updated_at=updated_at or _EPOCH,
    )


def make_message(
    conversation: Conversation,
    sender_id: int,
    *,
    content: str | None = "hello",
    read_by: Iterable[int] | None = None,
    seconds: int = 0,
    file_url: str | None = None,
) -> Message:
    ts = _EPOCH + timedelta(seconds=seconds)
    return Message(
        id=uuid.uuid4(),
        conversation_id=conversation.id,
        sender_id=sender_id,
        content=content,
        attachment=Attachment(url=file_url, kind="image") if file_url else None,
        read_by=frozenset(read_by if read_by is not None else {sender_id}),
        client_msg_id=None,
        created_at=ts,
        updated_at=ts,
    )


@dataclass
class FakeAccountReader:
    _store: dict[int, Account] = field(default_factory=dict)

    async def get_by_id(self, user_id: int) -> Account | None:
        return self._store.get(user_id)

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, Account]:
        return {uid: self._store[uid] for uid in set(user_ids) if uid in self._store}


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def find_by_participants(
        self,
        participant_ids: Sequence[int],
        *,
        listing_id: int | None = None,
    ) -> Conversation | None:
        wanted = set(participant_ids)
        for c in self._store.values():
            if set(c.participant_ids) == wanted and c.listing_id == listing_id:
                return c
        return None

    async def list_for_user(self, user_id: int, *, active_only: bool = True) -> list[Conversation]:
        found = [
            c for c in self._store.values()
            if c.has_participant(user_id) and (c.is_active or not active_only)
        ]
        return sorted(found, key=lambda c: c.updated_at, reverse=True)


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    locks: list[tuple[tuple[int, ...], int | None]] = field(default_factory=list)

    async def lock_participant_set(self, participant_ids: Sequence[int], listing_id: int | None) -> None:
        self.locks.append((tuple(sorted(participant_ids)), listing_id))

    async def create(self, conversation: Conversation) -> Conversation:
        self._reader._store[conversation.id] = conversation
        return conversation

    async def set_last_message(self, conversation_id: UUID, message_id: UUID, ts: datetime) -> None:
        conv = self._reader._store[conversation_id]
        self._reader._store[conversation_id] = replace(conv, last_message_id=message_id, updated_at=ts)

    async def set_active(self, conversation_id: UUID, is_active: bool) -> None:
        conv = self._reader._store[conversation_id]
        self._reader._store[conversation_id] = replace(conv, is_active=is_active)


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    def _timeline(self, conversation_id: UUID) -> list[Message]:
        return sorted(
            (m for m in self._messages if m.conversation_id == conversation_id),
            key=lambda m: m.created_at,
        )

    async def get_many(self, message_ids: Iterable[UUID]) -> dict[UUID, Message]:
        ids = set(message_ids)
        return {m.id: m for m in self._messages if m.id in ids}

    async def list_page(self, conversation_id: UUID, *, offset: int = 0, limit: int = 50) -> list[Message]:
        newest_first = self._timeline(conversation_id)[::-1]
        return newest_first[offset:offset + limit][::-1]

    async def count(self, conversation_id: UUID) -> int:
        return len(self._timeline(conversation_id))

    async def list_unread_ids(
        self,
        conversation_id: UUID,
        reader_id: int,
        *,
        within: Iterable[UUID] | None = None,
    ) -> list[UUID]:
        allowed = set(within) if within is not None else None
        return [
            m.id for m in self._timeline(conversation_id)
            if m.sender_id != reader_id
            and not m.is_read_by(reader_id)
            and (allowed is None or m.id in allowed)
        ]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if message.client_msg_id is not None:
            for m in self._reader._messages:
                if (
                    m.conversation_id == message.conversation_id
                    and m.sender_id == message.sender_id
                    and m.client_msg_id == message.client_msg_id
                ):
                    return m, False
        self._reader._messages.append(message)
        return message, True

    async def add_reader(self, message_ids: Iterable[UUID], user_id: int) -> list[UUID]:
        wanted = set(message_ids)
        affected: list[UUID] = []
        for i, m in enumerate(self._reader._messages):
            if m.id in wanted and not m.is_read_by(user_id):
                self._reader._messages[i] = replace(m, read_by=m.read_by | {user_id})
                affected.append(m.id)
        return affected


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests. Also usable as its own factory result."""
    accounts: FakeAccountReader = field(default_factory=FakeAccountReader)
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    @property
    def _committed(self) -> bool:
        return self.commits > 0

    def add_account(self, account: Account) -> Account:
        self.accounts._store[account.id] = account
        return account

    def add_conversation(self, conversation: Conversation) -> Conversation:
        self.conversations._store[conversation.id] = conversation
        return conversation

    def add_message(self, message: Message) -> Message:
        self.messages._messages.append(message)
        conv = self.conversations._store.get(message.conversation_id)
        if conv is not None:
            self.conversations._store[conv.id] = replace(
                conv, last_message_id=message.id, updated_at=message.created_at,
            )
        return message

    def conversation(self, conversation_id: UUID) -> Conversation:
        return self.conversations._store[conversation_id]

    def stored_messages(self, conversation_id: UUID) -> list[Message]:
        return [m for m in self.messages._messages if m.conversation_id == conversation_id]

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()


@dataclass
class Emitted:
    kind: str
    target: Any
    event: str
    data: dict[str, Any]
    exclude: str | None = None
    commits_at_emit: int = 0


@dataclass
class RecordingBroadcaster:
    """Broadcaster double that records every emit and the commit count at that moment."""
    uow: FakeUoW | None = None
    emitted: list[Emitted] = field(default_factory=list)

    def _record(self, kind: str, target: Any, event: str, data: dict[str, Any], exclude: str | None) -> None:
        commits = self.uow.commits if self.uow else 0
        self.emitted.append(Emitted(kind, target, str(event), data, exclude, commits))

    def emit_to_room(self, room: str, event: str, data: dict[str, Any], *, exclude: str | None = None) -> None:
        self._record("room", room, event, data, exclude)

    def emit_to_rooms(self, rooms: Iterable[str], event: str, data: dict[str, Any], *, exclude: str | None = None) -> None:
        self._record("rooms", list(rooms), event, data, exclude)

    def emit_to_user(self, user_id: int, event: str, data: dict[str, Any]) -> None:
        self._record("user", user_id, event, data, None)

    def emit_to_all(self, event: str, data: dict[str, Any], *, exclude: str | None = None) -> None:
        self._record("all", None, event, data, exclude)

    def events(self, name: str) -> list[Emitted]:
        return [e for e in self.emitted if e.event == name]


class FailingBroadcaster:
    def emit_to_room(self, *args: Any, **kwargs: Any) -> None:
        raise RuntimeError("socket layer down")

    def emit_to_rooms(self, *args: Any, **kwargs: Any) -> None:
        raise RuntimeError("socket layer down")

    def emit_to_user(self, *args: Any, **kwargs: Any) -> None:
        raise RuntimeError("socket layer down")

    def emit_to_all(self, *args: Any, **kwargs: Any) -> None:
        raise RuntimeError("socket layer down")


@pytest.fixture
def alice() -> Account:
    return make_account(42, first_name="Alice")


@pytest.fixture
def bob() -> Account:
    return make_account(7, first_name="Bob", last_name="Worker")


@pytest.fixture
def uow(alice: Account, bob: Account) -> FakeUoW:
    uow = FakeUoW()
    uow.add_account(alice)
    uow.add_account(bob)
    return uow


@pytest.fixture
def broadcaster(uow: FakeUoW) -> RecordingBroadcaster:
    return RecordingBroadcaster(uow=uow)


@pytest.fixture
def conversation(uow: FakeUoW, alice: Account, bob: Account) -> Conversation:
    return uow.add_conversation(make_conversation(alice.id, bob.id))
