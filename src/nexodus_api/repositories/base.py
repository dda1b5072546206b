"""Base repository interfaces."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain.models import Chat, User


class UserRepository(ABC):
    """Abstract user store."""

    @abstractmethod
    async def create(self, user: User) -> User:
        """Insert a user and return it with its generated id.

        Raises ConflictError when the email is already taken.
        """
        pass

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]:
        """Retrieve a user by ID."""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Retrieve a user by normalized email."""
        pass

    @abstractmethod
    async def find_by_token(self, token: str) -> List[User]:
        """Return every user holding exactly this token."""
        pass

    @abstractmethod
    async def set_token(self, user_id: str, token: str) -> None:
        """Replace the user's token in a single update."""
        pass

    @abstractmethod
    async def add_chat(self, user_id: str, chat_id: str) -> None:
        pass

    @abstractmethod
    async def remove_chat(self, user_id: str, chat_id: str) -> None:
        pass


class ChatRepository(ABC):
    """Abstract chat store."""

    @abstractmethod
    async def create(self, chat: Chat) -> Chat:
        """Insert a chat and return it with its generated id."""
        pass

    @abstractmethod
    async def get(self, chat_id: str) -> Optional[Chat]:
        """Retrieve a chat by ID."""
        pass

    @abstractmethod
    async def exists_owned(self, chat_id: str, user_id: str) -> bool:
        """True iff a chat with this id and this owner exists, in one query."""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Chat]:
        """List the user's chats, newest first."""
        pass

    @abstractmethod
    async def replace(self, chat: Chat) -> Chat:
        """Replace the whole chat document if its version is current.

        Raises NotFoundError if the chat is gone and ConflictError if the
        stored version differs from ``chat.version``.
        """
        pass

    @abstractmethod
    async def delete(self, chat_id: str) -> bool:
        """Delete a chat, returning whether it existed."""
        pass
