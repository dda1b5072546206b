"""Registration, login and profile reads."""

import asyncio
from typing import Optional

import structlog

from ..domain.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..domain.models import User, UserProfile
from ..repositories.base import UserRepository
from ..security.passwords import PASSWORD_POLICY_MESSAGE, PasswordHasher, meets_policy
from ..security.tokens import TokenService
from . import validation

logger = structlog.get_logger()

BAD_CREDENTIALS = "Invalid email or password."


class UserService:
    """User account operations.

    Hashing runs in a worker thread so the event loop is not blocked by the
    key derivation.
    """

    def __init__(self, users: UserRepository, hasher: PasswordHasher, tokens: TokenService) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens

    async def register(
        self, name: Optional[str], email: Optional[str], password: Optional[str]
    ) -> str:
        """Create a user and return its first token."""
        validation.require(name, email, password)
        clean_name = validation.clean_name(name)
        clean_email = validation.clean_email(email)
        if not meets_policy(password):
            raise ValidationError(PASSWORD_POLICY_MESSAGE)

        if await self.users.get_by_email(clean_email) is not None:
            logger.info("registration_conflict")
            raise ConflictError("A user with this email already exists.")

        password_hash = await asyncio.to_thread(self.hasher.hash, password)
        token = self.tokens.issue()
        user = await self.users.create(
            User(name=clean_name, email=clean_email, password=password_hash, token=token)
        )
        logger.info("user_registered", user_id=user.id)
        return token

    async def login(self, email: Optional[str], password: Optional[str]) -> str:
        """Check credentials and replace the user's token with a new one."""
        validation.require(email, password)
        user = await self.users.get_by_email(validation.normalize_email(email))
        if user is None:
            logger.info("login_failed", reason="unknown_email")
            raise AuthenticationError(BAD_CREDENTIALS)

        if not await asyncio.to_thread(self.hasher.verify, password, user.password):
            logger.info("login_failed", reason="wrong_password", user_id=user.id)
            raise AuthenticationError(BAD_CREDENTIALS)

        token = self.tokens.issue()
        await self.users.set_token(user.id, token)
        logger.info("user_logged_in", user_id=user.id)
        return token

    async def get_profile(self, user_id: str) -> UserProfile:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("Requested user doesn't exist.")
        return UserProfile.from_user(user)
