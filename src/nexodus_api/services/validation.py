"""Input normalization for user and chat fields."""

import html
from typing import Optional

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import ValidationError
from ..domain.models import MESSAGE_ROLES, Message

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100
TITLE_MAX_LENGTH = 50
CONTENT_MAX_LENGTH = 32_000

_email_adapter = TypeAdapter(EmailStr)


def escape(value: str) -> str:
    """HTML-escape and trim a user-supplied string."""
    return html.escape(value).strip()


def require(*values: Optional[str]) -> None:
    if any(v is None or not v.strip() for v in values):
        raise ValidationError("Some data is missing.")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def clean_name(name: str) -> str:
    cleaned = escape(name)
    if not NAME_MIN_LENGTH <= len(cleaned) <= NAME_MAX_LENGTH:
        raise ValidationError(
            f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters."
        )
    return cleaned


def clean_email(email: str) -> str:
    normalized = normalize_email(email)
    if len(normalized) > EMAIL_MAX_LENGTH:
        raise ValidationError("Email is not valid.")
    try:
        _email_adapter.validate_python(normalized)
    except PydanticValidationError:
        raise ValidationError("Email is not valid.")
    return normalized


def clean_title(title: Optional[str]) -> str:
    require(title)
    cleaned = escape(title)
    if len(cleaned) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters.")
    return cleaned


def clean_message(role: Optional[str], content: Optional[str], allowed=MESSAGE_ROLES) -> Message:
    """Validate a role/content pair and return the escaped message."""
    if role not in allowed:
        raise ValidationError("Some parameters are either incorrect or missing.")
    require(content)
    cleaned = escape(content)
    if len(cleaned) > CONTENT_MAX_LENGTH:
        raise ValidationError(f"Content must be at most {CONTENT_MAX_LENGTH} characters.")
    return Message(role=role, content=cleaned)
