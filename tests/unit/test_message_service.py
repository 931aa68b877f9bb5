from __future__ import annotations

import uuid

import pytest

from market_chat.application.dto.message import MessageDraft
from market_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from market_chat.services import message_service
from tests.conftest import FailingBroadcaster, make_account, make_conversation, make_message


@pytest.mark.asyncio
async def test_deliver_message_persists_before_broadcast(uow, broadcaster, conversation, alice, bob):
    msg = await message_service.deliver_message(
        conversation.id, alice, MessageDraft(content="  hello  "), uow, broadcaster,
    )

    assert msg.content == "hello"
    assert msg.read_by == frozenset({alice.id})
    assert uow.stored_messages(conversation.id) == [msg]
    assert uow.conversation(conversation.id).last_message_id == msg.id
    assert uow.commits == 1

    assert broadcaster.emitted
    assert all(e.commits_at_emit == 1 for e in broadcaster.emitted)

    (new_message,) = broadcaster.events("new_message")
    assert new_message.target == f"conversation:{conversation.id}"
    assert new_message.data["id"] == str(msg.id)
    assert new_message.data["readBy"] == [alice.id]
    assert new_message.data["sender"]["firstName"] == "Alice"
    assert "timestamp" in new_message.data

    (notification,) = broadcaster.events("message_notification")
    assert notification.kind == "user"
    assert notification.target == bob.id
    assert notification.data["conversationId"] == str(conversation.id)
    assert notification.data["message"]["content"] == "hello"


@pytest.mark.asyncio
async def test_deliver_message_is_idempotent_on_client_id(uow, broadcaster, conversation, alice):
    client_id = uuid.uuid4()
    draft = MessageDraft(content="hi", client_msg_id=client_id)

    first = await message_service.deliver_message(conversation.id, alice, draft, uow, broadcaster)
    broadcaster.emitted.clear()
    second = await message_service.deliver_message(conversation.id, alice, draft, uow, broadcaster)

    assert first.id == second.id
    assert len(uow.stored_messages(conversation.id)) == 1
    assert uow.commits == 1
    assert [e.event for e in broadcaster.emitted] == ["new_message"]


@pytest.mark.asyncio
async def test_deliver_message_requires_content_or_attachment(uow, broadcaster, conversation, alice):
    with pytest.raises(ValidationError):
        await message_service.deliver_message(
            conversation.id, alice, MessageDraft(content="   "), uow, broadcaster,
        )
    assert uow.stored_messages(conversation.id) == []
    assert broadcaster.emitted == []


@pytest.mark.asyncio
async def test_attachment_only_message_is_accepted(uow, broadcaster, conversation, alice):
    msg = await message_service.deliver_message(
        conversation.id,
        alice,
        MessageDraft(file_url="https://cdn.example.com/a.png", file_kind="image"),
        uow,
        broadcaster,
    )

    assert msg.content is None
    assert msg.attachment is not None
    assert msg.attachment.kind == "image"
    (event,) = broadcaster.events("new_message")
    assert event.data["fileUrl"] == "https://cdn.example.com/a.png"
    assert event.data["fileType"] == "image"


@pytest.mark.asyncio
async def test_attachment_kind_defaults_to_other(uow, broadcaster, conversation, alice):
    msg = await message_service.deliver_message(
        conversation.id, alice, MessageDraft(file_url="https://cdn.example.com/x.bin"), uow, broadcaster,
    )
    assert msg.attachment is not None
    assert msg.attachment.kind == "other"


@pytest.mark.asyncio
async def test_unknown_attachment_kind_is_rejected(uow, broadcaster, conversation, alice):
    with pytest.raises(ValidationError):
        await message_service.deliver_message(
            conversation.id,
            alice,
            MessageDraft(file_url="https://cdn.example.com/a.exe", file_kind="executable"),
            uow,
            broadcaster,
        )


@pytest.mark.asyncio
async def test_deliver_message_forbidden_for_non_participant(uow, broadcaster, conversation):
    stranger = uow.add_account(make_account(999, first_name="Mallory"))
    with pytest.raises(ForbiddenError):
        await message_service.deliver_message(
            conversation.id, stranger, MessageDraft(content="hi"), uow, broadcaster,
        )
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_deliver_message_unknown_conversation(uow, broadcaster, alice):
    with pytest.raises(NotFoundError):
        await message_service.deliver_message(
            uuid.uuid4(), alice, MessageDraft(content="hi"), uow, broadcaster,
        )


@pytest.mark.asyncio
async def test_broadcast_failure_keeps_the_write(uow, conversation, alice):
    msg = await message_service.deliver_message(
        conversation.id, alice, MessageDraft(content="still here"), uow, FailingBroadcaster(),
    )
    assert uow.stored_messages(conversation.id) == [msg]
    assert uow.conversation(conversation.id).last_message_id == msg.id


@pytest.mark.asyncio
async def test_announce_targets_personal_rooms(uow, broadcaster, conversation, alice, bob):
    await message_service.deliver_message(
        conversation.id, alice, MessageDraft(content="hi"), uow, broadcaster, announce=True,
    )

    (announcement,) = broadcaster.events("new_conversation")
    assert announcement.target == bob.id
    assert announcement.data == {
        "conversation": str(conversation.id),
        "sender": alice.id,
        "message": "hi",
    }
    (new_message,) = broadcaster.events("new_message")
    assert new_message.kind == "rooms"
    assert set(new_message.target) == {f"conversation:{conversation.id}", f"user:{bob.id}"}
    assert broadcaster.events("message_notification") == []


@pytest.mark.asyncio
async def test_sent_message_shows_up_once_in_history(uow, broadcaster, conversation, alice):
    msg = await message_service.deliver_message(
        conversation.id, alice, MessageDraft(content="ping"), uow, broadcaster,
    )
    page = await message_service.list_messages(conversation.id, alice, 1, 50, uow, broadcaster)

    assert [m.id for m in page.messages] == [msg.id]
    assert page.messages[0].content == "ping"
    assert alice.id in page.messages[0].read_by


@pytest.mark.asyncio
async def test_list_messages_pages_newest_first_returned_oldest_first(uow, broadcaster, conversation, alice):
    sent = [uow.add_message(make_message(conversation, alice.id, content=str(i), seconds=i)) for i in range(5)]

    first = await message_service.list_messages(conversation.id, alice, 1, 2, uow, broadcaster)
    last = await message_service.list_messages(conversation.id, alice, 3, 2, uow, broadcaster)

    assert [m.id for m in first.messages] == [sent[3].id, sent[4].id]
    assert (first.total, first.page, first.pages) == (5, 1, 3)
    assert [m.id for m in last.messages] == [sent[0].id]
    assert first.senders[alice.id] == alice


@pytest.mark.asyncio
async def test_list_messages_marks_page_read(uow, broadcaster, conversation, alice, bob):
    older = uow.add_message(make_message(conversation, alice.id, seconds=1))
    newer = uow.add_message(make_message(conversation, alice.id, seconds=2))

    page = await message_service.list_messages(conversation.id, bob, 1, 1, uow, broadcaster)

    assert [m.id for m in page.messages] == [newer.id]
    assert bob.id in page.messages[0].read_by
    stored = {m.id: m for m in uow.stored_messages(conversation.id)}
    assert bob.id in stored[newer.id].read_by
    assert bob.id not in stored[older.id].read_by

    (receipt,) = broadcaster.events("message_read")
    assert receipt.data["userId"] == bob.id
    assert receipt.data["messageIds"] == [str(newer.id)]


@pytest.mark.asyncio
async def test_list_messages_rejects_bad_paging(uow, broadcaster, conversation, alice):
    with pytest.raises(ValidationError):
        await message_service.list_messages(conversation.id, alice, 0, 10, uow, broadcaster)


@pytest.mark.asyncio
async def test_every_other_participant_is_notified_once(uow, broadcaster, alice, bob):
    carol = uow.add_account(make_account(3, first_name="Carol"))
    conv = uow.add_conversation(make_conversation(alice.id, bob.id, carol.id))

    await message_service.deliver_message(
        conv.id, bob, MessageDraft(content="hi all"), uow, broadcaster,
    )

    notifications = broadcaster.events("message_notification")
    assert sorted(n.target for n in notifications) == sorted([alice.id, carol.id])
    assert all(n.kind == "user" for n in notifications)
    assert all(n.data["message"]["sender"]["id"] == bob.id for n in notifications)
    (new_message,) = broadcaster.events("new_message")
    assert new_message.target == f"conversation:{conv.id}"
