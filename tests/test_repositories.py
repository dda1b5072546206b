"""Test suite for the stores and the write queue."""

import asyncio

import pytest

from nexodus_api.domain.errors import ConflictError, NotFoundError, StoreUnavailableError
from nexodus_api.domain.models import Chat, Message, User, utcnow
from nexodus_api.repositories import InMemoryChatRepository, InMemoryUserRepository
from nexodus_api.repositories.bounded import BoundedChatRepository
from nexodus_api.services.write_queue import ChatWriteQueue


def new_chat(user_id: str = "u1") -> Chat:
    return Chat(user_id=user_id, messages=[Message(role="user", content="hello")])


@pytest.mark.asyncio
async def test_user_email_is_unique():
    users = InMemoryUserRepository()
    await users.create(User(name="Ann", email="ann@example.com", password="x"))
    with pytest.raises(ConflictError):
        await users.create(User(name="Ann2", email="ann@example.com", password="y"))


@pytest.mark.asyncio
async def test_set_token_replaces_previous_token():
    users = InMemoryUserRepository()
    user = await users.create(User(name="Ann", email="ann@example.com", password="x", token="old"))
    await users.set_token(user.id, "new")

    assert await users.find_by_token("old") == []
    assert [u.id for u in await users.find_by_token("new")] == [user.id]


@pytest.mark.asyncio
async def test_returned_documents_are_copies():
    chats = InMemoryChatRepository()
    chat = await chats.create(new_chat())
    chat.messages.append(Message(role="assistant", content="local only"))

    stored = await chats.get(chat.id)
    assert len(stored.messages) == 1


@pytest.mark.asyncio
async def test_replace_from_stale_snapshot_conflicts():
    chats = InMemoryChatRepository()
    chat = await chats.create(new_chat())
    first = await chats.get(chat.id)
    second = await chats.get(chat.id)

    first.messages.append(Message(role="assistant", content="one"))
    saved = await chats.replace(first)
    assert saved.version == 1

    second.messages.append(Message(role="assistant", content="two"))
    with pytest.raises(ConflictError):
        await chats.replace(second)

    stored = await chats.get(chat.id)
    assert [m.content for m in stored.messages] == ["hello", "one"]


@pytest.mark.asyncio
async def test_replace_keeps_owner():
    chats = InMemoryChatRepository()
    chat = await chats.create(new_chat("owner"))
    chat.user_id = "intruder"
    saved = await chats.replace(chat)
    assert saved.user_id == "owner"


@pytest.mark.asyncio
async def test_replace_deleted_chat():
    chats = InMemoryChatRepository()
    chat = await chats.create(new_chat())
    assert await chats.delete(chat.id)
    assert not await chats.delete(chat.id)
    with pytest.raises(NotFoundError):
        await chats.replace(chat)


@pytest.mark.asyncio
async def test_list_newest_first():
    chats = InMemoryChatRepository()
    ids = []
    for _ in range(3):
        ids.append((await chats.create(new_chat())).id)
        await asyncio.sleep(0.001)
    await chats.create(new_chat("someone-else"))

    listed = await chats.list_for_user("u1")
    assert [c.id for c in listed] == list(reversed(ids))


@pytest.mark.asyncio
async def test_list_orders_same_instant_by_creation():
    chats = InMemoryChatRepository()
    created_at = utcnow()
    ids = []
    for _ in range(3):
        chat = new_chat().model_copy(update={"created_at": created_at})
        ids.append((await chats.create(chat)).id)

    listed = await chats.list_for_user("u1")
    assert [c.id for c in listed] == list(reversed(ids))


class SlowChatRepository(InMemoryChatRepository):
    async def get(self, chat_id):
        await asyncio.sleep(1)
        return await super().get(chat_id)


@pytest.mark.asyncio
async def test_bounded_store_times_out():
    chats = BoundedChatRepository(SlowChatRepository(), timeout=0.05)
    with pytest.raises(StoreUnavailableError):
        await chats.get("anything")


@pytest.mark.asyncio
async def test_write_queue_serializes_per_chat():
    queue = ChatWriteQueue()
    events = []

    def make_write(tag: str):
        async def write():
            events.append(f"start-{tag}")
            await asyncio.sleep(0.01)
            events.append(f"end-{tag}")
            return tag

        return write

    results = await asyncio.gather(*[queue.submit("chat", make_write(str(i))) for i in range(3)])

    assert results == ["0", "1", "2"]
    assert events == ["start-0", "end-0", "start-1", "end-1", "start-2", "end-2"]
    assert await queue.pending() == 0


@pytest.mark.asyncio
async def test_write_queue_propagates_errors():
    queue = ChatWriteQueue()

    async def failing():
        raise NotFoundError()

    with pytest.raises(NotFoundError):
        await queue.submit("chat", failing)


@pytest.mark.asyncio
async def test_write_queue_times_out_waiting_writes_only():
    queue = ChatWriteQueue(write_timeout=0.05)
    applied = []

    async def slow():
        await asyncio.sleep(0.2)
        applied.append("slow")
        return "slow"

    async def queued():
        applied.append("queued")

    first = asyncio.create_task(queue.submit("chat", slow))
    await asyncio.sleep(0)
    with pytest.raises(StoreUnavailableError):
        await queue.submit("chat", queued)

    # The running write outlives the timeout and still reports its result.
    assert await first == "slow"
    assert applied == ["slow"]
    await asyncio.sleep(0.01)
    assert await queue.pending() == 0
