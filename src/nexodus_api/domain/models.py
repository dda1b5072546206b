"""Domain models for the chat application."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
MESSAGE_ROLES = (USER_ROLE, ASSISTANT_ROLE)

DEFAULT_CHAT_TITLE = "New chat"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """Message model."""

    role: str
    content: str


class Chat(BaseModel):
    """Chat model.

    ``version`` is bumped by the store on every replace so concurrent
    read-modify-write cycles can be detected.
    """

    id: str = ""
    user_id: str
    title: str = DEFAULT_CHAT_TITLE
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    version: int = 0


class ChatSummary(BaseModel):
    """Entry of the chat list."""

    id: str
    title: str


class User(BaseModel):
    """User model."""

    id: str = ""
    name: str
    email: str
    password: str
    token: Optional[str] = None
    chat_ids: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserProfile(BaseModel):
    """Public view of a user, without credentials."""

    id: str
    name: str
    email: str
    chat_ids: List[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            chat_ids=list(user.chat_ids),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
