"""Chat operations scoped to their owner."""

from typing import List, Optional

import structlog

from ..domain.errors import AuthorizationError, NotFoundError, ValidationError
from ..domain.models import USER_ROLE, Chat, ChatSummary
from ..repositories.base import ChatRepository, UserRepository
from ..security.authorizer import OwnershipAuthorizer
from . import validation
from .write_queue import ChatWriteQueue

logger = structlog.get_logger()


class ChatService:
    """Create, read, rename, append to and delete chats.

    Every chat-scoped call checks existence first (404) and then ownership
    (403). Mutations of one chat run one at a time through the write queue,
    and each replace is additionally guarded by the chat's version.
    """

    def __init__(
        self,
        chats: ChatRepository,
        users: UserRepository,
        authorizer: OwnershipAuthorizer,
        write_queue: ChatWriteQueue,
    ) -> None:
        self.chats = chats
        self.users = users
        self.authorizer = authorizer
        self.write_queue = write_queue

    async def _load_owned(self, user_id: str, chat_id: Optional[str]) -> Chat:
        if not chat_id:
            raise ValidationError("Chat id is missing.")
        chat = await self.chats.get(chat_id)
        if chat is None:
            raise NotFoundError("Requested chat doesn't exist.")
        if not await self.authorizer.authorize(user_id, chat_id):
            raise AuthorizationError()
        return chat

    async def create(self, user_id: str, role: Optional[str], content: Optional[str]) -> Chat:
        """Open a chat with the user's first message."""
        message = validation.clean_message(role, content, allowed=(USER_ROLE,))
        chat = await self.chats.create(Chat(user_id=user_id, messages=[message]))
        await self.users.add_chat(user_id, chat.id)
        return chat

    async def get(self, user_id: str, chat_id: Optional[str]) -> Chat:
        return await self._load_owned(user_id, chat_id)

    async def list(self, user_id: str) -> List[ChatSummary]:
        """Summaries of the user's chats, newest first."""
        chats = await self.chats.list_for_user(user_id)
        return [ChatSummary(id=c.id, title=c.title) for c in chats]

    async def rename(self, user_id: str, chat_id: Optional[str], title: Optional[str]) -> Chat:
        clean_title = validation.clean_title(title)

        async def write() -> Chat:
            chat = await self._load_owned(user_id, chat_id)
            chat.title = clean_title
            return await self.chats.replace(chat)

        await self._load_owned(user_id, chat_id)
        renamed = await self.write_queue.submit(chat_id, write)
        logger.info("chat_renamed", chat_id=chat_id, user_id=user_id)
        return renamed

    async def append(
        self, user_id: str, chat_id: Optional[str], role: Optional[str], content: Optional[str]
    ) -> Chat:
        message = validation.clean_message(role, content)

        async def write() -> Chat:
            chat = await self._load_owned(user_id, chat_id)
            chat.messages.append(message)
            return await self.chats.replace(chat)

        await self._load_owned(user_id, chat_id)
        updated = await self.write_queue.submit(chat_id, write)
        logger.info(
            "message_appended",
            chat_id=chat_id,
            user_id=user_id,
            message_role=message.role,
            messages=len(updated.messages),
        )
        return updated

    async def delete(self, user_id: str, chat_id: Optional[str]) -> None:
        async def write() -> None:
            await self._load_owned(user_id, chat_id)
            if not await self.chats.delete(chat_id):
                raise NotFoundError("Requested chat doesn't exist.")
            await self.users.remove_chat(user_id, chat_id)

        await self._load_owned(user_id, chat_id)
        await self.write_queue.submit(chat_id, write)
        logger.info("chat_deleted_by_owner", chat_id=chat_id, user_id=user_id)
