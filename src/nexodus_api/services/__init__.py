"""Application services."""

from .chats import ChatService
from .users import UserService
from .write_queue import ChatWriteQueue

__all__ = ["ChatService", "ChatWriteQueue", "UserService"]
