"""Stores consumed by the core."""

from .base import ChatRepository, UserRepository
from .memory import InMemoryChatRepository, InMemoryUserRepository

__all__ = [
    "ChatRepository",
    "UserRepository",
    "InMemoryChatRepository",
    "InMemoryUserRepository",
]
