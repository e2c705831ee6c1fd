"""
Domain Exceptions

Errors raised by the service layer. Endpoints translate them to
HTTP responses; nothing below the API layer knows about status codes.
"""


class ZordError(Exception):
    """Base exception for service errors."""
    pass


class NotFoundError(ZordError):
    """Referenced post, user, comment or notification does not exist."""
    pass


class AccessDeniedError(ZordError):
    """Actor lacks ownership or role for the requested mutation."""
    pass


class AuthorizationContextMissingError(ZordError):
    """Viewer identity could not be resolved; visibility cannot be applied."""
    pass


class ValidationFailedError(ZordError):
    """Input is well-formed but not acceptable (e.g. following yourself)."""
    pass


class DeliveryBestEffortFailure(ZordError):
    """A realtime push could not reach a connection. Logged, never surfaced."""
    pass
