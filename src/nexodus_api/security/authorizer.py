"""Per-chat ownership checks."""

import structlog

from ..repositories.base import ChatRepository

logger = structlog.get_logger()


class OwnershipAuthorizer:
    """Decides whether a user may act on a chat.

    The decision is re-evaluated on every call and never cached.
    """

    def __init__(self, chats: ChatRepository) -> None:
        self.chats = chats

    async def authorize(self, user_id: str, chat_id: str) -> bool:
        allowed = await self.chats.exists_owned(chat_id, user_id)
        if not allowed:
            logger.warning("authorization_denied", user_id=user_id, chat_id=chat_id)
        return allowed
