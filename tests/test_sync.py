import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, call

import httpx
import pytest

from client.api_client import ApiError, ChatApiClient
from client.sync import ConversationSync, auto_conversation_name
from models import ConversationSummary, MessageExchange
from services.exceptions import GatewayError


@pytest.fixture
def sync(api_client):
    return ConversationSync(api_client)


def test_auto_conversation_name():
    now = datetime(2025, 6, 17, 9, 5)

    name = auto_conversation_name("What is a monad\nin Haskell?", now)

    assert name == "What is a monad in H - 17/6/2025 09:05"


def test_auto_conversation_name_short_message():
    assert auto_conversation_name("hi", datetime(2025, 12, 1, 15, 42)) == "hi - 1/12/2025 15:42"


@pytest.mark.asyncio
async def test_load_with_no_conversations(sync):
    await sync.load()

    assert sync.state.conversations == []
    assert sync.state.selected_conversation is None
    assert sync.state.messages == []


@pytest.mark.asyncio
async def test_load_selects_first_conversation(sync, conversation_service):
    conv = await conversation_service.create_conversation("Test")
    await conversation_service.add_message(conv.id, "hello")

    await sync.load()

    assert [c.id for c in sync.state.conversations] == [conv.id]
    assert sync.state.selected_conversation == conv.id
    assert [m.user for m in sync.state.messages] == ["hello"]


@pytest.mark.asyncio
async def test_send_without_selection_creates_conversation(sync, conversation_service):
    await sync.load()
    sync.state.pending_input = "hello"

    reply = await sync.send()

    assert reply == "hi there"
    assert sync.state.selected_conversation is not None
    assert [c.id for c in sync.state.conversations] == [sync.state.selected_conversation]
    assert sync.state.conversations[0].name.startswith("hello - ")
    assert [(m.user, m.bot) for m in sync.state.messages] == [("hello", "hi there")]
    assert sync.state.messages[0].id
    assert sync.state.pending_input == ""
    assert sync.state.is_sending is False
    assert sync.state.last_error is None
    stored = await conversation_service.list_conversations()
    assert [c.id for c in stored] == [sync.state.selected_conversation]


@pytest.mark.asyncio
async def test_send_to_selected_conversation(sync, conversation_service):
    conv = await conversation_service.create_conversation("Test")
    await sync.load()

    await sync.send("first")
    await sync.send("second")

    assert [m.user for m in sync.state.messages] == ["first", "second"]
    assert len(await conversation_service.list_conversations()) == 1


@pytest.mark.asyncio
async def test_send_blank_input_does_nothing(sync, llm_service):
    await sync.send("   ")

    llm_service.generate_reply.assert_not_awaited()
    assert sync.state.selected_conversation is None


@pytest.mark.asyncio
async def test_send_failure_sets_error_and_keeps_input(sync, conversation_service, llm_service):
    conv = await conversation_service.create_conversation("Test")
    await sync.load()
    llm_service.generate_reply.side_effect = GatewayError("quota exceeded")

    reply = await sync.send("hello")

    assert reply is None
    assert "quota exceeded" in sync.state.last_error
    assert sync.state.pending_input == "hello"
    assert sync.state.is_sending is False
    assert sync.state.messages == []


@pytest.mark.asyncio
async def test_delete_selected_conversation(sync, conversation_service):
    first = await conversation_service.create_conversation("First")
    await conversation_service.add_message(first.id, "hello")
    await sync.load()

    await sync.delete_conversation(first.id)

    assert sync.state.selected_conversation is None
    assert sync.state.messages == []
    assert sync.state.conversations == []


@pytest.mark.asyncio
async def test_delete_other_conversation_keeps_selection(sync, conversation_service):
    first = await conversation_service.create_conversation("First")
    await conversation_service.add_message(first.id, "hello")
    await sync.load()
    second = await sync.add_conversation("Second")

    await sync.delete_conversation(second)

    assert sync.state.selected_conversation == first.id
    assert [m.user for m in sync.state.messages] == ["hello"]
    assert [c.id for c in sync.state.conversations] == [first.id]


@pytest.mark.asyncio
async def test_add_conversation_ignores_blank_name(sync, conversation_service):
    assert await sync.add_conversation("  ") is None
    assert await conversation_service.list_conversations() == []


@pytest.mark.asyncio
async def test_delete_message(sync, conversation_service):
    conv = await conversation_service.create_conversation("Test")
    await conversation_service.add_message(conv.id, "a")
    await conversation_service.add_message(conv.id, "b")
    await sync.load()

    await sync.delete_message(sync.state.messages[0].id)

    assert [m.user for m in sync.state.messages] == ["b"]
    assert sync.state.last_error is None


@pytest.mark.asyncio
async def test_delete_unknown_message_sets_error(sync, conversation_service):
    conv = await conversation_service.create_conversation("Test")
    await sync.load()

    await sync.delete_message("nope")

    assert sync.state.last_error == "Failed to delete message"


@pytest.mark.asyncio
async def test_selecting_deleted_conversation_reports_error(sync):
    await sync.select("missing")

    assert sync.state.messages == []
    assert sync.state.last_error.startswith("Conversation not found")


def exchange(text):
    return MessageExchange(user=text, bot="reply")


@pytest.mark.asyncio
async def test_stale_message_fetch_is_discarded():
    first_release = asyncio.Event()
    api = AsyncMock(spec=ChatApiClient)

    async def list_messages(conversation_id):
        if conversation_id == "a":
            await first_release.wait()
            return [exchange("from a")]
        return [exchange("from b")]

    api.list_messages.side_effect = list_messages
    sync = ConversationSync(api)

    slow = asyncio.create_task(sync.select("a"))
    await asyncio.sleep(0)
    await sync.select("b")
    first_release.set()
    await slow

    assert sync.state.selected_conversation == "b"
    assert [m.user for m in sync.state.messages] == ["from b"]


def held_api(release_b):
    api = AsyncMock(spec=ChatApiClient)

    async def list_messages(conversation_id):
        if conversation_id == "b":
            await release_b.wait()
            return [exchange("from b")]
        return [exchange("from a")]

    api.list_messages.side_effect = list_messages
    return api


@pytest.mark.asyncio
async def test_send_finishing_after_switch_keeps_new_selection():
    release_send = asyncio.Event()
    release_b = asyncio.Event()
    api = held_api(release_b)

    async def send_message(conversation_id, text):
        await release_send.wait()
        return "reply"

    api.send_message.side_effect = send_message
    sync = ConversationSync(api)
    await sync.select("a")

    sending = asyncio.create_task(sync.send("hello"))
    await asyncio.sleep(0)
    switching = asyncio.create_task(sync.select("b"))
    await asyncio.sleep(0)
    release_send.set()
    assert await sending == "reply"
    release_b.set()
    await switching

    assert sync.state.selected_conversation == "b"
    assert [m.user for m in sync.state.messages] == ["from b"]
    api.list_messages.assert_has_awaits([call("a"), call("b")])
    assert api.list_messages.await_count == 2


@pytest.mark.asyncio
async def test_delete_message_finishing_after_switch_keeps_new_selection():
    release_delete = asyncio.Event()
    release_b = asyncio.Event()
    api = held_api(release_b)

    async def delete_message(conversation_id, message_id):
        await release_delete.wait()

    api.delete_message.side_effect = delete_message
    sync = ConversationSync(api)
    await sync.select("a")

    deleting = asyncio.create_task(sync.delete_message("m1"))
    await asyncio.sleep(0)
    switching = asyncio.create_task(sync.select("b"))
    await asyncio.sleep(0)
    release_delete.set()
    await deleting
    release_b.set()
    await switching

    api.delete_message.assert_awaited_once_with("a", "m1")
    assert sync.state.selected_conversation == "b"
    assert [m.user for m in sync.state.messages] == ["from b"]
    assert sync.state.last_error is None


@pytest.mark.asyncio
async def test_send_is_ignored_while_another_is_in_flight():
    release_send = asyncio.Event()
    api = AsyncMock(spec=ChatApiClient)
    api.list_messages.return_value = []

    async def send_message(conversation_id, text):
        await release_send.wait()
        return "reply"

    api.send_message.side_effect = send_message
    sync = ConversationSync(api)
    await sync.select("a")

    first = asyncio.create_task(sync.send("first"))
    await asyncio.sleep(0)
    assert sync.state.is_sending is True
    assert await sync.send("second") is None
    release_send.set()
    assert await first == "reply"

    api.send_message.assert_awaited_once_with("a", "first")
    assert sync.state.is_sending is False


@pytest.mark.asyncio
async def test_stale_conversation_list_is_discarded():
    first_release = asyncio.Event()
    calls = []
    now = datetime.now(timezone.utc)
    api = AsyncMock(spec=ChatApiClient)

    async def list_conversations():
        calls.append(len(calls))
        if len(calls) == 1:
            await first_release.wait()
            return [ConversationSummary(id="old", name="Old", created_at=now)]
        return [ConversationSummary(id="new", name="New", created_at=now)]

    api.list_conversations.side_effect = list_conversations
    sync = ConversationSync(api)

    slow = asyncio.create_task(sync.refresh_conversations())
    await asyncio.sleep(0)
    assert await sync.refresh_conversations() is True
    first_release.set()
    assert await slow is False

    assert [c.id for c in sync.state.conversations] == ["new"]


@pytest.mark.asyncio
async def test_non_json_response_is_an_error():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(502, text="<html>Bad Gateway</html>")
    )
    async with httpx.AsyncClient(transport=transport) as http_client:
        api = ChatApiClient(base_url="http://backend", http_client=http_client)
        with pytest.raises(ApiError) as exc_info:
            await api.list_conversations()

    assert exc_info.value.status_code == 502
    assert "non-JSON" in exc_info.value.message


@pytest.mark.asyncio
async def test_unreachable_backend_is_an_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as http_client:
        sync = ConversationSync(ChatApiClient(base_url="http://backend", http_client=http_client))
        await sync.load()

    assert sync.state.conversations == []
    assert "Failed to reach backend" in sync.state.last_error
