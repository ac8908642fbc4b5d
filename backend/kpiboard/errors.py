"""Domain error taxonomy.

These exceptions describe *what* went wrong, never how to render it.
The transport layer (`kpiboard.middleware.exceptions`) owns the mapping
to HTTP status codes.
"""


class KpiBoardError(Exception):
    """Base class for all domain errors raised by the core."""

    error_code = "KPIBOARD_ERROR"

    def __init__(self, message: str, details: dict | list | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class AuthenticationRequired(KpiBoardError):
    """No identified caller."""

    error_code = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AccessDenied(KpiBoardError):
    """Caller is identified but lacks permission."""

    error_code = "ACCESS_DENIED"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFound(KpiBoardError):
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ValidationError(KpiBoardError):
    error_code = "VALIDATION_ERROR"


class InvalidOrExpiredToken(KpiBoardError):
    error_code = "INVALID_OR_EXPIRED_TOKEN"

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class Conflict(KpiBoardError):
    error_code = "CONFLICT"
