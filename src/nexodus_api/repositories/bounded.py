"""Repositories that put a deadline on every store call."""

import asyncio
from typing import Awaitable, List, Optional, TypeVar

import structlog

from ..domain.errors import StoreUnavailableError
from ..domain.models import Chat, User
from .base import ChatRepository, UserRepository

logger = structlog.get_logger()

T = TypeVar("T")


async def bounded(operation: str, awaitable: Awaitable[T], timeout: float) -> T:
    """Await a store call, turning a timeout into StoreUnavailableError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("store_timeout", operation=operation, timeout=timeout)
        raise StoreUnavailableError()


class BoundedUserRepository(UserRepository):
    """Wraps a user store so no call blocks longer than ``timeout``."""

    def __init__(self, inner: UserRepository, timeout: float) -> None:
        self.inner = inner
        self.timeout = timeout

    async def create(self, user: User) -> User:
        return await bounded("user.create", self.inner.create(user), self.timeout)

    async def get(self, user_id: str) -> Optional[User]:
        return await bounded("user.get", self.inner.get(user_id), self.timeout)

    async def get_by_email(self, email: str) -> Optional[User]:
        return await bounded("user.get_by_email", self.inner.get_by_email(email), self.timeout)

    async def find_by_token(self, token: str) -> List[User]:
        return await bounded("user.find_by_token", self.inner.find_by_token(token), self.timeout)

    async def set_token(self, user_id: str, token: str) -> None:
        await bounded("user.set_token", self.inner.set_token(user_id, token), self.timeout)

    async def add_chat(self, user_id: str, chat_id: str) -> None:
        await bounded("user.add_chat", self.inner.add_chat(user_id, chat_id), self.timeout)

    async def remove_chat(self, user_id: str, chat_id: str) -> None:
        await bounded("user.remove_chat", self.inner.remove_chat(user_id, chat_id), self.timeout)


class BoundedChatRepository(ChatRepository):
    """Wraps a chat store so no call blocks longer than ``timeout``."""

    def __init__(self, inner: ChatRepository, timeout: float) -> None:
        self.inner = inner
        self.timeout = timeout

    async def create(self, chat: Chat) -> Chat:
        return await bounded("chat.create", self.inner.create(chat), self.timeout)

    async def get(self, chat_id: str) -> Optional[Chat]:
        return await bounded("chat.get", self.inner.get(chat_id), self.timeout)

    async def exists_owned(self, chat_id: str, user_id: str) -> bool:
        return await bounded(
            "chat.exists_owned", self.inner.exists_owned(chat_id, user_id), self.timeout
        )

    async def list_for_user(self, user_id: str) -> List[Chat]:
        return await bounded("chat.list_for_user", self.inner.list_for_user(user_id), self.timeout)

    async def replace(self, chat: Chat) -> Chat:
        return await bounded("chat.replace", self.inner.replace(chat), self.timeout)

    async def delete(self, chat_id: str) -> bool:
        return await bounded("chat.delete", self.inner.delete(chat_id), self.timeout)
