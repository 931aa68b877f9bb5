from __future__ import annotations

import pytest

from market_chat.application.exceptions import ForbiddenError
from market_chat.services import read_state_service
from tests.conftest import make_account, make_message


@pytest.mark.asyncio
async def test_mark_read_adds_reader_to_every_unread_message(uow, broadcaster, conversation, alice, bob):
    sent = [uow.add_message(make_message(conversation, alice.id, seconds=i)) for i in range(3)]

    affected = await read_state_service.mark_read(conversation.id, bob, uow, broadcaster)

    assert sorted(affected) == sorted(m.id for m in sent)
    assert all(bob.id in m.read_by for m in uow.stored_messages(conversation.id))
    assert uow.commits == 1

    (receipt,) = broadcaster.events("message_read")
    assert receipt.target == f"conversation:{conversation.id}"
    assert receipt.commits_at_emit == 1
    assert sorted(receipt.data["messageIds"]) == sorted(str(m.id) for m in sent)
    assert receipt.data["userId"] == bob.id


@pytest.mark.asyncio
async def test_mark_read_twice_is_a_noop(uow, broadcaster, conversation, alice, bob):
    uow.add_message(make_message(conversation, alice.id))

    await read_state_service.mark_read(conversation.id, bob, uow, broadcaster)
    broadcaster.emitted.clear()
    second = await read_state_service.mark_read(conversation.id, bob, uow, broadcaster)

    assert second == []
    assert broadcaster.emitted == []


@pytest.mark.asyncio
async def test_mark_read_skips_own_messages(uow, broadcaster, conversation, alice, bob):
    own = uow.add_message(make_message(conversation, bob.id, seconds=1))
    theirs = uow.add_message(make_message(conversation, alice.id, seconds=2))

    affected = await read_state_service.mark_read(conversation.id, bob, uow, broadcaster)

    assert affected == [theirs.id]
    assert own.id not in affected


@pytest.mark.asyncio
async def test_mark_read_restricted_to_ids(uow, broadcaster, conversation, alice, bob):
    first = uow.add_message(make_message(conversation, alice.id, seconds=1))
    uow.add_message(make_message(conversation, alice.id, seconds=2))

    affected = await read_state_service.mark_read(
        conversation.id, bob, uow, broadcaster, message_ids=[first.id],
    )

    assert affected == [first.id]


@pytest.mark.asyncio
async def test_mark_read_with_empty_selection_does_nothing(uow, broadcaster, conversation, alice, bob):
    uow.add_message(make_message(conversation, alice.id))

    affected = await read_state_service.mark_read(
        conversation.id, bob, uow, broadcaster, message_ids=[],
    )

    assert affected == []
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_mark_read_requires_participation(uow, broadcaster, conversation):
    stranger = uow.add_account(make_account(999))
    with pytest.raises(ForbiddenError):
        await read_state_service.mark_read(conversation.id, stranger, uow, broadcaster)
