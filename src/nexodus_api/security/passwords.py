"""Password hashing and password policy."""

import base64
import binascii
import hashlib
import hmac
import re
import secrets

import structlog

from ..config import MIN_HASH_ITERATIONS
from ..domain.errors import CorruptedHashError

logger = structlog.get_logger()

SALT_SIZE = 16
DIGEST_SIZE = 32

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[\W_]).{8,}$")
PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters long and contain at least one "
    "uppercase letter, one lowercase letter, one number, and one special character."
)


def meets_policy(password: str) -> bool:
    """Check the password strength rule enforced at registration."""
    return bool(PASSWORD_PATTERN.match(password))


class PasswordHasher:
    """PBKDF2-HMAC-SHA256 hasher producing ``base64(salt || digest)``."""

    def __init__(self, iterations: int = MIN_HASH_ITERATIONS) -> None:
        if iterations < MIN_HASH_ITERATIONS:
            raise ValueError(f"iterations must be at least {MIN_HASH_ITERATIONS}")
        self.iterations = iterations

    def _derive(self, password: str, salt: bytes) -> bytes:
        return hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), salt, self.iterations, dklen=DIGEST_SIZE
        )

    def hash(self, password: str) -> str:
        """Hash a password with a fresh random salt."""
        salt = secrets.token_bytes(SALT_SIZE)
        digest = self._derive(password, salt)
        return base64.b64encode(salt + digest).decode("ascii")

    def verify(self, password: str, stored: str) -> bool:
        """Check a password against a stored hash.

        Returns False for a wrong password. Raises CorruptedHashError when
        ``stored`` is not a hash this class could have produced, so a broken
        record is never mistaken for bad credentials.
        """
        try:
            raw = base64.b64decode(stored, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            logger.error("password_hash_undecodable", error=str(e))
            raise CorruptedHashError() from e

        if len(raw) != SALT_SIZE + DIGEST_SIZE:
            logger.error("password_hash_bad_length", length=len(raw))
            raise CorruptedHashError()

        salt, expected = raw[:SALT_SIZE], raw[SALT_SIZE:]
        return hmac.compare_digest(self._derive(password, salt), expected)
