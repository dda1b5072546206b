"""Bearer token issuance and header parsing."""

import secrets
from typing import Optional

TOKEN_PREFIX = "Nexodus "
TOKEN_BYTES = 32


class TokenService:
    """Issues random session tokens and reads them back from headers.

    Tokens are opaque and stored server-side on the user record. A new token
    is issued at registration and at every login, replacing the previous one.
    """

    def __init__(self, prefix: str = TOKEN_PREFIX, nbytes: int = TOKEN_BYTES) -> None:
        self.prefix = prefix
        self.nbytes = nbytes

    def issue(self) -> str:
        return secrets.token_urlsafe(self.nbytes)

    def parse(self, header: Optional[str]) -> Optional[str]:
        """Strip the literal prefix, or return None if it is not there."""
        if not header or not header.startswith(self.prefix):
            return None
        token = header[len(self.prefix):]
        return token or None

    def header_for(self, token: str) -> str:
        return f"{self.prefix}{token}"
