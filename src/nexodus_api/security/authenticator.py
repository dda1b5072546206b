"""Resolve bearer headers to user identities."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from ..repositories.base import UserRepository
from .tokens import TokenService

logger = structlog.get_logger()


class AuthReason(str, Enum):
    """Why a header did or did not resolve to a user."""

    AUTHENTICATED = "authenticated"
    MALFORMED_HEADER = "malformed_header"
    UNKNOWN_TOKEN = "unknown_token"
    AMBIGUOUS_TOKEN = "ambiguous_token"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of resolving a bearer header."""

    reason: AuthReason
    user_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is AuthReason.AUTHENTICATED


class CredentialAuthenticator:
    """Looks a bearer token up in the user store."""

    def __init__(self, users: UserRepository, tokens: TokenService) -> None:
        self.users = users
        self.tokens = tokens

    async def resolve(self, header: Optional[str]) -> AuthResult:
        """Resolve a header, keeping the failure reason."""
        token = self.tokens.parse(header)
        if token is None:
            logger.info("authentication_failed", reason=AuthReason.MALFORMED_HEADER.value)
            return AuthResult(AuthReason.MALFORMED_HEADER)

        matches = await self.users.find_by_token(token)
        if not matches:
            logger.info("authentication_failed", reason=AuthReason.UNKNOWN_TOKEN.value)
            return AuthResult(AuthReason.UNKNOWN_TOKEN)
        if len(matches) > 1:
            logger.error(
                "authentication_failed",
                reason=AuthReason.AMBIGUOUS_TOKEN.value,
                matches=len(matches),
            )
            return AuthResult(AuthReason.AMBIGUOUS_TOKEN)

        return AuthResult(AuthReason.AUTHENTICATED, matches[0].id)

    async def authenticate(self, header: Optional[str]) -> Optional[str]:
        """Return the user id for a header, or None when unauthenticated."""
        result = await self.resolve(header)
        return result.user_id if result.ok else None
