"""In-memory repository implementations.

Documents are copied on the way in and on the way out, so callers never share
mutable state with the store, as with a real document database.
"""

import asyncio
import itertools
from typing import Dict, List, Optional
from uuid import uuid4

import structlog

from ..domain.errors import ConflictError, NotFoundError
from ..domain.models import Chat, User, utcnow
from .base import ChatRepository, UserRepository

logger = structlog.get_logger()


def _new_id() -> str:
    return uuid4().hex


class InMemoryUserRepository(UserRepository):
    """Async-safe in-memory user store."""

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}
        self._lock = asyncio.Lock()
        logger.info("user_repository_initialized")

    async def create(self, user: User) -> User:
        """Insert a user, enforcing email uniqueness under the store lock."""
        async with self._lock:
            if any(u.email == user.email for u in self._users.values()):
                logger.warning("user_email_conflict")
                raise ConflictError("A user with this email already exists.")
            stored = user.model_copy(deep=True, update={"id": _new_id()})
            self._users[stored.id] = stored
            logger.info("user_created", user_id=stored.id)
            return stored.model_copy(deep=True)

    async def get(self, user_id: str) -> Optional[User]:
        async with self._lock:
            user = self._users.get(user_id)
            return user.model_copy(deep=True) if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy(deep=True)
            return None

    async def find_by_token(self, token: str) -> List[User]:
        async with self._lock:
            return [
                u.model_copy(deep=True)
                for u in self._users.values()
                if u.token is not None and u.token == token
            ]

    async def set_token(self, user_id: str, token: str) -> None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError("Requested user doesn't exist.")
            self._users[user_id] = user.model_copy(
                update={"token": token, "updated_at": utcnow()}
            )

    async def add_chat(self, user_id: str, chat_id: str) -> None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError("Requested user doesn't exist.")
            if chat_id not in user.chat_ids:
                self._users[user_id] = user.model_copy(
                    update={"chat_ids": [*user.chat_ids, chat_id], "updated_at": utcnow()}
                )

    async def remove_chat(self, user_id: str, chat_id: str) -> None:
        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return
            self._users[user_id] = user.model_copy(
                update={
                    "chat_ids": [c for c in user.chat_ids if c != chat_id],
                    "updated_at": utcnow(),
                }
            )


class InMemoryChatRepository(ChatRepository):
    """Async-safe in-memory chat store with versioned replace."""

    def __init__(self) -> None:
        self._chats: Dict[str, Chat] = {}
        # Insertion order breaks ties between equal creation times.
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = asyncio.Lock()
        logger.info("chat_repository_initialized")

    async def create(self, chat: Chat) -> Chat:
        async with self._lock:
            stored = chat.model_copy(deep=True, update={"id": _new_id(), "version": 0})
            self._chats[stored.id] = stored
            self._sequence[stored.id] = next(self._counter)
            logger.info("chat_created", chat_id=stored.id, user_id=stored.user_id)
            return stored.model_copy(deep=True)

    async def get(self, chat_id: str) -> Optional[Chat]:
        async with self._lock:
            chat = self._chats.get(chat_id)
            return chat.model_copy(deep=True) if chat else None

    async def exists_owned(self, chat_id: str, user_id: str) -> bool:
        async with self._lock:
            chat = self._chats.get(chat_id)
            return chat is not None and chat.user_id == user_id

    async def list_for_user(self, user_id: str) -> List[Chat]:
        async with self._lock:
            chats = sorted(
                (c for c in self._chats.values() if c.user_id == user_id),
                key=lambda c: (c.created_at, self._sequence[c.id]),
                reverse=True,
            )
            return [c.model_copy(deep=True) for c in chats]

    async def replace(self, chat: Chat) -> Chat:
        async with self._lock:
            current = self._chats.get(chat.id)
            if current is None:
                raise NotFoundError("Requested chat doesn't exist.")
            if current.version != chat.version:
                logger.warning(
                    "chat_replace_stale",
                    chat_id=chat.id,
                    expected_version=chat.version,
                    stored_version=current.version,
                )
                raise ConflictError()
            # Owner and creation time are never rewritten.
            stored = chat.model_copy(
                deep=True,
                update={
                    "user_id": current.user_id,
                    "created_at": current.created_at,
                    "version": current.version + 1,
                },
            )
            self._chats[chat.id] = stored
            return stored.model_copy(deep=True)

    async def delete(self, chat_id: str) -> bool:
        async with self._lock:
            removed = self._chats.pop(chat_id, None)
            self._sequence.pop(chat_id, None)
            if removed is not None:
                logger.info("chat_deleted", chat_id=chat_id)
            return removed is not None
