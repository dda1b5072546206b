"""Error taxonomy shared by the core and the HTTP layer.

Every error carries the status code the transport should answer with and a
message that is safe to return to the client. Internal detail belongs in the
logs, never in ``message``.
"""

from typing import Optional


class NexodusError(Exception):
    """Base class for errors raised by the core."""

    status_code = 500
    default_message = "An internal error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(NexodusError):
    """Malformed, missing or oversized input."""

    status_code = 400
    default_message = "Some parameters are either incorrect or missing."


class AuthenticationError(NexodusError):
    """Bad, missing or malformed token or credentials."""

    status_code = 401
    default_message = "Invalid format or unknown user."


class AuthorizationError(NexodusError):
    """Authenticated, but not the owner of the resource."""

    status_code = 403
    default_message = "User doesn't have permission to access this resource."


class NotFoundError(NexodusError):
    """Resource id did not resolve."""

    status_code = 404
    default_message = "Requested resource doesn't exist."


class ConflictError(NexodusError):
    """Duplicate key or stale write."""

    status_code = 409
    default_message = "The resource was modified concurrently."


class InternalError(NexodusError):
    """Store failure or broken invariant."""

    status_code = 500


class CorruptedHashError(InternalError):
    """A stored password hash does not have the expected format."""


class StoreUnavailableError(NexodusError):
    """The store did not answer in time; the request may be retried."""

    status_code = 503
    default_message = "The service is temporarily unavailable, please retry."
