"""Request and response bodies.

Request fields are optional at this level so missing values reach the
services, which answer with their own validation messages.
"""

from typing import Optional

from pydantic import BaseModel


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class Credentials(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(BaseModel):
    token: str


class MessageCreate(BaseModel):
    """Defines the structure for message creation requests"""

    role: Optional[str] = None
    content: Optional[str] = None


class ChatRename(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None


class ChatRef(BaseModel):
    id: str


class ChatRenamed(BaseModel):
    id: str
    title: str
