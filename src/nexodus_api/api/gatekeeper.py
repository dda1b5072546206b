"""Perimeter check that only lets the fronting proxy through.

The proxy adds a header carrying ``base64(secret)`` to every request it
forwards. Requests without it are rejected before reaching any route, except
for routes registered on the public router.
"""

import base64
import binascii
import hmac
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.routing import BaseRoute, Match
from structlog import get_logger

from .metrics import PROXY_REJECTIONS

logger = get_logger()

REJECTION_MESSAGE = "We couldn't make sure your request is authorized."


class ProxyGatekeeper:
    """HTTP middleware validating the shared-secret proxy header."""

    def __init__(self, secret: str, header: str, exempt_routes: Iterable[BaseRoute] = ()) -> None:
        self._secret = secret.encode("utf-8")
        self.header = header
        self.exempt_routes: List[BaseRoute] = list(exempt_routes)

    def is_exempt(self, request: Request) -> bool:
        """True when the request targets a route of the public group."""
        for route in self.exempt_routes:
            match, _ = route.matches(request.scope)
            if match is Match.FULL:
                return True
        return False

    def _check(self, value: Optional[str]) -> Optional[str]:
        """Return the rejection reason, or None if the value is valid."""
        if value is None:
            return "missing_header"
        if not value:
            return "empty_header"
        try:
            decoded = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.error(
                "proxy_token_decode_error",
                at=datetime.now(timezone.utc).isoformat(),
                error=str(e),
            )
            return "undecodable_token"
        if not hmac.compare_digest(decoded, self._secret):
            return "wrong_secret"
        return None

    def validate(self, value: Optional[str]) -> bool:
        return self._check(value) is None

    async def __call__(self, request: Request, call_next):
        if self.is_exempt(request):
            return await call_next(request)

        reason = self._check(request.headers.get(self.header))
        if reason is not None:
            PROXY_REJECTIONS.labels(reason=reason).inc()
            logger.warning(
                "unauthorized_access_attempt",
                at=datetime.now(timezone.utc).isoformat(),
                path=request.url.path,
                reason=reason,
            )
            return JSONResponse(status_code=401, content={"detail": REJECTION_MESSAGE})

        return await call_next(request)
